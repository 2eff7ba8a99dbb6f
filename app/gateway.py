import logging
from typing import AsyncIterator, Optional, Tuple

import httpx

from app.config import GatewayConfig
from providers.ollama_client import list_models
from providers.relay import open_relay
from routing.planner import ChatPlan, build_chat_planner
from services import metrics
from services.fallback import fallback_message, stream_words
from services.response_cache import ResponseCache
from services.state import ServerState

logger = logging.getLogger("campus-api")


class Gateway:
    """
    Everything a chat request needs: config, shared ServerState, the compiled
    planner graph and one pooled upstream HTTP client.
    """

    def __init__(
        self,
        config: GatewayConfig,
        state: Optional[ServerState] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.state = state or ServerState(cache=ResponseCache(config.response_cache_size, config.response_cache_ttl_seconds))
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None
        self._planner = build_chat_planner(config, self.state)

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            timeout = self.config.upstream_timeout_sec or None
            self._http = httpx.AsyncClient(timeout=httpx.Timeout(timeout), transport=self._transport)
        return self._http

    async def aclose(self) -> None:
        if self._http is not None and not self._http.is_closed:
            await self._http.aclose()

    async def plan_chat(self, raw_messages) -> ChatPlan:
        metrics.CHAT_REQUESTS.inc()
        return await self._planner.ainvoke({"raw_messages": raw_messages})

    async def stream_chat(self, plan: ChatPlan) -> AsyncIterator[str]:
        cached = plan.get("cached")
        if cached:
            async for word in stream_words(cached, self.config.cache_replay_delay_ms):
                yield word
            return

        route = plan["route"]
        relay = open_relay(self.http, self.config, route, plan["window"])
        try:
            async for chunk in relay:
                yield chunk
        except Exception as e:
            logger.warning(f"Upstream {route.provider}:{route.model} failed after {len(relay.text)} chars: {e}")
            async for word in self.fallback_stream(e):
                yield word
            return

        full_text = relay.text
        if full_text and len(full_text) < self.config.cache_max_chars:
            self.state.cache.put(plan["cache_key"], full_text)

    async def fallback_stream(self, exc: Optional[BaseException] = None) -> AsyncIterator[str]:
        metrics.FALLBACKS.inc()
        async for word in stream_words(fallback_message(exc), self.config.fallback_delay_ms):
            yield word

    async def check_ready(self) -> Tuple[bool, str]:
        if self.config.mode == "cloud":
            if not self.config.cloud_api_key:
                return False, "cloud mode configured but CLOUD_API_KEY is missing"
            return True, ""
        try:
            await list_models(self.http, self.config)
        except Exception as e:
            logger.debug(f"Local runtime readiness probe failed: {e}")
            return False, "local model runtime is not ready"
        return True, ""
