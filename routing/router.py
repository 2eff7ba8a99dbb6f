"""
Provider/model selection.

1. resolve_route() -> forced cloud mode short-circuits everything
2. choose_route()  -> smart routing off means the default local model
3. route_for_score() -> pure mapping from complexity score to a tier
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Sequence

from app.config import GatewayConfig
from routing.complexity import score_query_complexity
from routing.window import ChatMessage, latest_content

ESCALATE_SCORE = 10
QUALITY_SCORE = 8
BALANCED_SCORE = 4
CACHE_KEY_PREFIX_CHARS = 500


@dataclass(frozen=True)
class RouteDecision:
    provider: str  # "local" or "cloud"
    model: str
    tier: str
    reason: str

    def describe(self) -> str:
        return f"{self.provider}:{self.model}:{self.tier}:{self.reason}"

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def route_for_score(score: int, cfg: GatewayConfig) -> RouteDecision:
    reason = f"complexity={score}"
    if score >= ESCALATE_SCORE and cfg.cloud_escalation and cfg.cloud_api_key:
        return RouteDecision("cloud", cfg.cloud_model, "escalated", reason)
    if score >= QUALITY_SCORE:
        return RouteDecision("local", cfg.local_model_quality, "quality", reason)
    if score >= BALANCED_SCORE:
        return RouteDecision("local", cfg.local_model_balanced, "balanced", reason)
    return RouteDecision("local", cfg.local_model_fast, "fast", reason)


def choose_route(messages: Sequence[ChatMessage], cfg: GatewayConfig) -> RouteDecision:
    if not cfg.smart_routing:
        return RouteDecision("local", cfg.ollama_model, "default", "smart-routing-disabled")
    return route_for_score(score_query_complexity(messages), cfg)


def resolve_route(messages: Sequence[ChatMessage], cfg: GatewayConfig) -> RouteDecision:
    if cfg.mode == "cloud":
        return RouteDecision("cloud", cfg.cloud_model, "forced-cloud", "mode=cloud")
    return choose_route(messages, cfg)


def response_cache_key(model: str, messages: Sequence[ChatMessage]) -> str:
    # Prompts sharing the first 500 chars share a key.
    latest = latest_content(messages).strip()
    return f"{model}::{latest[:CACHE_KEY_PREFIX_CHARS]}"
