import json
import logging
import os
import pathlib
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

# Loaded before anything reads the environment.
load_dotenv(pathlib.Path(__file__).resolve().parents[1] / "config" / ".env.local")

# ---------- Structured Logging ----------
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='{"time":"%(asctime)s","level":"%(levelname)s","msg":"%(message)s"}',
    datefmt='%Y-%m-%dT%H:%M:%S'
)
logger = logging.getLogger("campus-api")

# ---------- Prometheus & Rate Limiting ----------
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from app.config import load_config
from app.gateway import Gateway
from app.utility import UTILITY_TEMPLATES, UtilityGenerateRequest, render_placeholder
from providers.ollama_client import validate_model_id
from routing.complexity import score_query_complexity
from routing.router import resolve_route, response_cache_key
from routing.window import build_window

limiter = Limiter(key_func=get_remote_address)


def chat_rate_limit() -> str:
    return os.getenv("CHAT_RATE_LIMIT", "120/minute")


STREAM_MEDIA_TYPE = "text/plain; charset=utf-8"
STREAM_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive"}
CORS_METHODS = "GET,POST,OPTIONS"
CORS_HEADERS = "Content-Type,Authorization"


class RequestBodyError(ValueError):
    """Body too large or not JSON."""


async def read_json_body(request: Request, limit: int) -> Dict[str, Any]:
    raw = bytearray()
    async for chunk in request.stream():
        raw.extend(chunk)
        if len(raw) > limit:
            raise RequestBodyError("Request body too large")
    if not raw:
        return {}
    try:
        body = json.loads(bytes(raw))
    except ValueError:
        raise RequestBodyError("Invalid JSON body")
    return body if isinstance(body, dict) else {}


# ---------- Startup Validation (Fail Fast) ----------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup/shutdown."""
    gateway: Gateway = app.state.gateway
    cfg = gateway.config
    cfg.validate()

    # Skip the upstream probe in tests; a missing model is only a warning.
    if os.getenv("CAMPUS_API_ENV") != "test" and cfg.mode == "local":
        if not await validate_model_id(gateway.http, cfg, cfg.ollama_model):
            logger.warning(f"Startup Warning: model '{cfg.ollama_model}' not found at {cfg.local_base_url}. Calls may fail.")

    logger.info(f"campus-api ready: mode={cfg.mode} local_model={cfg.ollama_model} cloud_model={cfg.cloud_model}")
    yield
    await app.state.gateway.aclose()
    logger.info("Shutting down campus-api.")


app = FastAPI(title="campus-api", version="1.0.0", lifespan=lifespan)
app.state.gateway = Gateway(load_config())
app.state.limiter = limiter

# Init Metrics
Instrumentator().instrument(app).expose(app)


def apply_cors(request: Request, response: Response) -> Response:
    response.headers["Access-Control-Allow-Origin"] = request.app.state.gateway.config.cors_allow_origin
    response.headers["Access-Control-Allow-Methods"] = CORS_METHODS
    response.headers["Access-Control-Allow-Headers"] = CORS_HEADERS
    return response


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    # Chat clients always get a stream, even when throttled.
    if request.url.path != "/api/chat":
        return _rate_limit_exceeded_handler(request, exc)
    logger.warning(f"Chat rate limit exceeded for {get_remote_address(request)}: {exc.detail}")
    gateway: Gateway = request.app.state.gateway
    reason = RuntimeError(f"Rate limit exceeded: {exc.detail}")
    return StreamingResponse(gateway.fallback_stream(reason), media_type=STREAM_MEDIA_TYPE, headers=STREAM_HEADERS)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code in (404, 405):
        return JSONResponse({"error": "Not found"}, status_code=404)
    return JSONResponse({"error": str(exc.detail)}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse({"error": "Invalid request body"}, status_code=400)


# Global Exception Handler for clean 500s
# Runs outside the middleware stack, so CORS headers are set here.
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.error(f"Unhandled error on {request.url.path}: {type(exc).__name__}: {exc}")
    response = Response(
        content=json.dumps({
            "error": "Internal Server Error",
            "detail": str(exc),
            "type": type(exc).__name__
        }),
        status_code=500,
        media_type="application/json"
    )
    return apply_cors(request, response)


@app.middleware("http")
async def add_security_headers(request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    return response


@app.middleware("http")
async def cors_headers(request: Request, call_next):
    # Preflight is answered here for every path.
    if request.method == "OPTIONS":
        return apply_cors(request, Response(status_code=204))
    return apply_cors(request, await call_next(request))


@app.get("/health")
def health(request: Request):
    cfg = request.app.state.gateway.config
    return {
        "ok": True,
        "mode": cfg.mode,
        "routing": {
            "smart": cfg.smart_routing,
            "cloudEscalation": cfg.cloud_escalation,
            "fast": cfg.local_model_fast,
            "balanced": cfg.local_model_balanced,
            "quality": cfg.local_model_quality,
        },
        "model": cfg.active_model,
    }


@app.head("/health")
def _health_head():
    return Response(status_code=200)


@app.get("/ready")
async def ready(request: Request):
    gateway: Gateway = request.app.state.gateway
    ok, error = await gateway.check_ready()
    if not ok:
        return JSONResponse({"error": error}, status_code=503)
    return {"ok": True, "mode": gateway.config.mode}


@app.get("/api/utility/templates")
def utility_templates():
    return UTILITY_TEMPLATES


@app.post("/api/utility/generate")
async def utility_generate(request: Request):
    cfg = request.app.state.gateway.config
    try:
        body = await read_json_body(request, cfg.max_body_bytes)
        req = UtilityGenerateRequest.model_validate(body)
    except RequestBodyError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    except ValidationError:
        return JSONResponse({"error": "Invalid request"}, status_code=400)

    prompt = (req.prompt or "").strip()
    if not prompt:
        return JSONResponse({"error": "prompt cannot be empty"}, status_code=400)
    return {"result": render_placeholder(req.template, prompt)}


@app.get("/api/ai/report")
def ai_report(request: Request):
    gateway: Gateway = request.app.state.gateway
    return {
        "confidence": 0.91,
        "biasWarnings": [],
        "transparencyScore": 92,
        "modelInfo": gateway.config.model_info,
        "lastQuery": gateway.state.last_query,
        "route": gateway.state.last_route,
        "cacheSize": len(gateway.state.cache),
    }


@app.post("/api/chat")
@limiter.limit(chat_rate_limit)
async def chat(request: Request):
    """
    Stream a routed chat completion as text/plain.

    The client never sees an error here: body, routing or upstream failures
    all end in a streamed fallback message with status 200.
    """
    gateway: Gateway = request.app.state.gateway
    try:
        body = await read_json_body(request, gateway.config.max_body_bytes)
        plan = await gateway.plan_chat(body.get("messages"))
    except Exception as e:
        logger.warning(f"Chat request failed before streaming: {type(e).__name__}: {e}")
        return StreamingResponse(gateway.fallback_stream(e), media_type=STREAM_MEDIA_TYPE, headers=STREAM_HEADERS)

    route = plan["route"]
    headers = {
        **STREAM_HEADERS,
        "X-Campus-Route-Provider": route.provider,
        "X-Campus-Route-Model": route.model,
        "X-Campus-Route-Tier": route.tier,
        "X-Campus-Cache": "hit" if plan.get("cached") else "miss",
    }
    return StreamingResponse(gateway.stream_chat(plan), media_type=STREAM_MEDIA_TYPE, headers=headers)


# --- /debug/route: introspect routing decision ---
class DebugRouteRequest(BaseModel):
    prompt: Optional[str] = None
    messages: Optional[List[Any]] = None


@app.post("/debug/route")
def debug_route(request: Request, req: DebugRouteRequest):
    """
    Show the routing decision for a prompt or message list.
    Does not touch the report state or the cache.
    """
    cfg = request.app.state.gateway.config
    raw = req.messages if req.messages is not None else [{"role": "user", "content": req.prompt or ""}]
    window = build_window(raw, cfg.max_input_chars, cfg.system_prompt)
    route = resolve_route(window, cfg)
    return {
        "score": score_query_complexity(window),
        "route": route.as_dict(),
        "cacheKey": response_cache_key(route.model, window),
        "windowSize": len(window),
    }


def run():
    uvicorn.run("app.main:app", host="0.0.0.0", port=app.state.gateway.config.port)
