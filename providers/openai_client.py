import logging
from typing import AsyncIterator, Dict, List, Sequence

import httpx

from app.config import GatewayConfig
from providers.errors import UpstreamError
from providers.framing import SseDecoder
from routing.window import ChatMessage

logger = logging.getLogger("campus-api.cloud")


def build_input(messages: Sequence[ChatMessage]) -> List[Dict]:
    return [
        {"role": m.role or "user", "content": [{"type": "input_text", "text": m.content}]}
        for m in messages
    ]


async def stream_cloud(
    client: httpx.AsyncClient,
    cfg: GatewayConfig,
    model: str,
    messages: Sequence[ChatMessage],
) -> AsyncIterator[str]:
    """
    Relay `response.output_text.delta` events from a streaming Responses API call.

    Fails before touching the network when no API key is configured, and
    surfaces the upstream error body as the message on non-2xx replies.
    """
    if not cfg.cloud_api_key:
        raise UpstreamError("CLOUD_API_KEY not set", "cloud")

    url = f"{cfg.cloud_base_url.rstrip('/')}/responses"
    headers = {
        "Authorization": f"Bearer {cfg.cloud_api_key}",
        "Content-Type": "application/json",
    }
    body = {"model": model, "input": build_input(messages), "stream": True}

    async with client.stream("POST", url, json=body, headers=headers) as response:
        if not response.is_success:
            await response.aread()
            detail = response.text.strip()
            logger.warning(f"Responses API error {response.status_code}: {detail[:200]}")
            raise UpstreamError(detail or f"Cloud error {response.status_code}", "cloud", response.status_code)

        decoder = SseDecoder()
        async for text in response.aiter_text():
            for delta in decoder.feed(text):
                yield delta
            if decoder.done:
                break
        for delta in decoder.flush():
            yield delta
