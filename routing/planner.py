"""
Pre-stream planning for /api/chat as a LangGraph state machine.

Graph flow:
1. trim_window -> normalize messages, apply the input budget, record last query
2. select_route -> forced cloud mode or complexity routing, record last route
3. check_cache  -> build the cache key and look up a stored answer

Nodes are coroutines without awaits, so every ServerState mutation happens on
the event loop in a single step.
"""

import json
import logging
from typing import Any, List, Optional, TypedDict

from langgraph.graph import END, StateGraph

from app.config import GatewayConfig
from routing.router import RouteDecision, resolve_route, response_cache_key
from routing.window import ChatMessage, build_window, latest_content
from services import metrics
from services.state import ServerState

logger = logging.getLogger("campus-api.routing")


class ChatPlan(TypedDict, total=False):
    raw_messages: Any
    window: List[ChatMessage]
    route: RouteDecision
    cache_key: str
    cached: Optional[str]


def build_chat_planner(cfg: GatewayConfig, state: ServerState):
    async def _node_trim(plan: ChatPlan) -> ChatPlan:
        window = build_window(plan.get("raw_messages"), cfg.max_input_chars, cfg.system_prompt)
        state.record_query(latest_content(window))
        return {"window": window}

    async def _node_route(plan: ChatPlan) -> ChatPlan:
        route = resolve_route(plan["window"], cfg)
        state.record_route(route.describe())
        metrics.ROUTES.labels(provider=route.provider, tier=route.tier).inc()
        return {"route": route}

    async def _node_cache(plan: ChatPlan) -> ChatPlan:
        route = plan["route"]
        key = response_cache_key(route.model, plan["window"])
        cached = state.cache.get(key)
        metrics.CACHE_LOOKUPS.labels(result="hit" if cached else "miss").inc()
        logger.info(json.dumps({
            "evt": "chat_routed",
            "provider": route.provider,
            "model": route.model,
            "tier": route.tier,
            "reason": route.reason,
            "cache": "hit" if cached else "miss",
            "messages": len(plan["window"]),
        }))
        return {"cache_key": key, "cached": cached}

    g = StateGraph(ChatPlan)

    g.add_node("trim_window", _node_trim)
    g.add_node("select_route", _node_route)
    g.add_node("check_cache", _node_cache)

    g.set_entry_point("trim_window")
    g.add_edge("trim_window", "select_route")
    g.add_edge("select_route", "check_cache")
    g.add_edge("check_cache", END)

    return g.compile()
