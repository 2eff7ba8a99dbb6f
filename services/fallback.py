import asyncio
from typing import AsyncIterator, Optional

FALLBACK_TEMPLATE = (
    "Runtime fallback response: {detail}."
    " Infrastructure is running; model path can be retried automatically."
)


def fallback_message(exc: Optional[BaseException] = None) -> str:
    detail = str(exc) if exc is not None and str(exc) else "temporary backend issue"
    return FALLBACK_TEMPLATE.format(detail=detail)


async def stream_words(text: str, delay_ms: int) -> AsyncIterator[str]:
    """Yield text one word at a time (word + space), pausing after each word."""
    delay = max(delay_ms, 0) / 1000.0
    for word in text.split(" "):
        yield f"{word} "
        await asyncio.sleep(delay)
