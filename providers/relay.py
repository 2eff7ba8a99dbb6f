from typing import AsyncIterator, List, Sequence

import httpx

from app.config import GatewayConfig
from providers.ollama_client import stream_ollama
from providers.openai_client import stream_cloud
from routing.router import RouteDecision
from routing.window import ChatMessage


class RelayedStream:
    """
    Pass-through over a provider's increments that remembers what it emitted.

    `text` is the exact concatenation of everything yielded so far, which is
    the full generation once iteration has finished.
    """

    def __init__(self, source: AsyncIterator[str]):
        self._source = source
        self._parts: List[str] = []

    def __aiter__(self) -> AsyncIterator[str]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[str]:
        async for chunk in self._source:
            self._parts.append(chunk)
            yield chunk

    @property
    def text(self) -> str:
        return "".join(self._parts)


def open_relay(
    client: httpx.AsyncClient,
    cfg: GatewayConfig,
    route: RouteDecision,
    messages: Sequence[ChatMessage],
) -> RelayedStream:
    if route.provider == "cloud":
        source = stream_cloud(client, cfg, route.model, messages)
    else:
        source = stream_ollama(client, cfg, route.model, messages)
    return RelayedStream(source)
