import logging
from typing import AsyncIterator, List, Sequence

import httpx

from app.config import GatewayConfig
from providers.errors import UpstreamError
from providers.framing import NdjsonDecoder
from routing.window import ChatMessage

logger = logging.getLogger("campus-api.ollama")

READY_TIMEOUT_SEC = 4.0


def _url(cfg: GatewayConfig, path: str) -> str:
    return f"{cfg.local_base_url.rstrip('/')}{path}"


def build_payload(cfg: GatewayConfig, model: str, messages: Sequence[ChatMessage]) -> dict:
    return {
        "model": model,
        "stream": True,
        "messages": [m.model_dump() for m in messages],
        "options": {
            "temperature": cfg.local_temperature,
            "top_p": cfg.local_top_p,
            "num_ctx": cfg.local_num_ctx,
        },
    }


async def stream_ollama(
    client: httpx.AsyncClient,
    cfg: GatewayConfig,
    model: str,
    messages: Sequence[ChatMessage],
) -> AsyncIterator[str]:
    """Relay `message.content` increments from a streaming /api/chat call."""
    payload = build_payload(cfg, model, messages)
    async with client.stream("POST", _url(cfg, "/api/chat"), json=payload) as response:
        if not response.is_success:
            raise UpstreamError(f"Ollama error {response.status_code}", "local", response.status_code)

        decoder = NdjsonDecoder()
        async for text in response.aiter_text():
            for chunk in decoder.feed(text):
                yield chunk
        for chunk in decoder.flush():
            yield chunk


async def list_models(client: httpx.AsyncClient, cfg: GatewayConfig) -> List[str]:
    resp = await client.get(_url(cfg, "/api/tags"), timeout=READY_TIMEOUT_SEC)
    if not resp.is_success:
        raise UpstreamError(f"Ollama error {resp.status_code}", "local", resp.status_code)
    data = resp.json()
    return [m.get("name", "") for m in data.get("models", []) if isinstance(m, dict)]


async def validate_model_id(client: httpx.AsyncClient, cfg: GatewayConfig, model_name: str) -> bool:
    """
    True if the local runtime has the model pulled.
    Accepts bare names, so "llama3.1" matches "llama3.1:latest".
    """
    try:
        names = await list_models(client, cfg)
    except (httpx.HTTPError, UpstreamError, ValueError) as e:
        logger.warning(f"Ollama model listing failed: {type(e).__name__}: {e}")
        return False
    return any(n == model_name or n.startswith(model_name + ":") for n in names)
