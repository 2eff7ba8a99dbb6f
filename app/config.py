"""
Gateway configuration.

Defaults live in config/gateway_config.yaml (path overridable with
GATEWAY_CONFIG). Environment variables win over the YAML values, so a
container can be tuned without touching the file.
"""

import logging
import os
import pathlib
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import yaml

logger = logging.getLogger("campus-api.config")

ROOT = pathlib.Path(__file__).resolve().parents[1]
DEFAULT_CONFIG_PATH = str(ROOT / "config" / "gateway_config.yaml")

DEFAULT_SYSTEM_PROMPT = " ".join([
    "You are a precise, practical assistant.",
    "Prioritize correctness over verbosity.",
    "When uncertain, clearly state assumptions.",
    "For technical tasks, give structured answers with actionable steps.",
    "Avoid filler and avoid hallucinated facts.",
])


class ConfigError(ValueError):
    """Raised when the gateway configuration cannot be used."""


@dataclass(frozen=True)
class GatewayConfig:
    port: int = 8000
    mode: str = "local"

    local_base_url: str = "http://local-model:11434"
    ollama_model: str = "qwen2.5:3b"
    local_model_fast: str = "qwen2.5:3b"
    local_model_balanced: str = "qwen2.5:3b"
    local_model_quality: str = "qwen2.5:3b"

    cloud_base_url: str = "https://api.openai.com/v1"
    cloud_model: str = "gpt-4.1-mini"
    cloud_api_key: str = ""

    smart_routing: bool = True
    cloud_escalation: bool = False
    max_input_chars: int = 12000

    response_cache_size: int = 120
    cache_max_chars: int = 6000
    response_cache_ttl_seconds: int = 900

    local_temperature: float = 0.2
    local_top_p: float = 0.9
    local_num_ctx: int = 4096

    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    max_body_bytes: int = 1_000_000
    fallback_delay_ms: int = 16
    cache_replay_delay_ms: int = 8
    upstream_timeout_sec: float = 0.0
    cors_allow_origin: str = "*"

    @property
    def active_model(self) -> str:
        return self.ollama_model if self.mode == "local" else self.cloud_model

    @property
    def model_info(self) -> str:
        return f"{self.mode}:{self.active_model}"

    def validate(self) -> None:
        if self.port <= 0:
            raise ConfigError("PORT must be greater than 0")
        if self.mode not in ("local", "cloud"):
            raise ConfigError("MODE must be either 'local' or 'cloud'")
        if self.max_input_chars < 1000:
            raise ConfigError("MAX_INPUT_CHARS is too low; expected >= 1000")
        if self.response_cache_size <= 0:
            raise ConfigError("RESPONSE_CACHE_SIZE must be greater than 0")
        if self.response_cache_ttl_seconds <= 0:
            raise ConfigError("RESPONSE_CACHE_TTL_SECONDS must be greater than 0")
        if self.fallback_delay_ms < 0 or self.cache_replay_delay_ms < 0:
            raise ConfigError("stream delays must not be negative")
        if self.upstream_timeout_sec < 0:
            raise ConfigError("UPSTREAM_TIMEOUT_SEC must not be negative")


def _section(cfg: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = cfg.get(name) or {}
    return value if isinstance(value, dict) else {}


def _read_yaml(path: str) -> Dict[str, Any]:
    fp = pathlib.Path(path)
    if not fp.exists():
        logger.info(f"No gateway config at {fp}; using built-in defaults")
        return {}
    with open(fp, "r") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def _env_str(env: Mapping[str, str], key: str, default: Any) -> str:
    val = env.get(key)
    if val is None or val == "":
        return "" if default is None else str(default)
    return val


def _env_bool(env: Mapping[str, str], key: str, default: bool) -> bool:
    val = env.get(key)
    if val is None or val.strip() == "":
        return bool(default)
    return val.strip().lower() in ("true", "1", "yes")


def _env_number(env: Mapping[str, str], key: str, default: Any, cast):
    val = env.get(key)
    if val is None or val.strip() == "":
        return cast(default)
    try:
        return cast(val)
    except ValueError:
        logger.warning(f"Ignoring invalid {key}={val!r}; using {default}")
        return cast(default)


def load_config(path: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> GatewayConfig:
    """Merge YAML defaults with environment overrides."""
    env = os.environ if env is None else env
    cfg = _read_yaml(path or env.get("GATEWAY_CONFIG") or DEFAULT_CONFIG_PATH)

    server = _section(cfg, "server")
    local = _section(cfg, "local")
    tiers = _section(local, "tiers")
    options = _section(local, "options")
    cloud = _section(cfg, "cloud")
    routing = _section(cfg, "routing")
    cache = _section(cfg, "cache")
    streaming = _section(cfg, "streaming")

    ollama_model = _env_str(env, "OLLAMA_MODEL", local.get("model") or GatewayConfig.ollama_model)

    return GatewayConfig(
        port=_env_number(env, "PORT", server.get("port", 8000), int),
        mode=_env_str(env, "MODE", server.get("mode", "local")).lower(),
        local_base_url=_env_str(env, "LOCAL_MODEL_BASE_URL", local.get("base_url") or GatewayConfig.local_base_url),
        ollama_model=ollama_model,
        local_model_fast=_env_str(env, "LOCAL_MODEL_FAST", tiers.get("fast") or ollama_model),
        local_model_balanced=_env_str(env, "LOCAL_MODEL_BALANCED", tiers.get("balanced") or ollama_model),
        local_model_quality=_env_str(env, "LOCAL_MODEL_QUALITY", tiers.get("quality") or ollama_model),
        cloud_base_url=_env_str(env, "CLOUD_API_BASE_URL", cloud.get("base_url") or GatewayConfig.cloud_base_url),
        cloud_model=_env_str(env, "CLOUD_MODEL", cloud.get("model") or GatewayConfig.cloud_model),
        cloud_api_key=_env_str(env, "CLOUD_API_KEY", ""),
        smart_routing=_env_bool(env, "SMART_ROUTING", routing.get("smart", True)),
        cloud_escalation=_env_bool(env, "CLOUD_ESCALATION", routing.get("cloud_escalation", False)),
        max_input_chars=_env_number(env, "MAX_INPUT_CHARS", routing.get("max_input_chars", 12000), int),
        response_cache_size=_env_number(env, "RESPONSE_CACHE_SIZE", cache.get("size", 120), int),
        cache_max_chars=_env_number(env, "RESPONSE_CACHE_MAX_CHARS", cache.get("max_entry_chars", 6000), int),
        response_cache_ttl_seconds=_env_number(env, "RESPONSE_CACHE_TTL_SECONDS", cache.get("ttl_seconds", 900), int),
        local_temperature=_env_number(env, "LOCAL_TEMPERATURE", options.get("temperature", 0.2), float),
        local_top_p=_env_number(env, "LOCAL_TOP_P", options.get("top_p", 0.9), float),
        local_num_ctx=_env_number(env, "LOCAL_NUM_CTX", options.get("num_ctx", 4096), int),
        system_prompt=_env_str(env, "QUALITY_SYSTEM_PROMPT", cfg.get("system_prompt") or DEFAULT_SYSTEM_PROMPT),
        max_body_bytes=_env_number(env, "MAX_BODY_BYTES", server.get("max_body_bytes", 1_000_000), int),
        fallback_delay_ms=_env_number(env, "FALLBACK_DELAY_MS", streaming.get("fallback_delay_ms", 16), int),
        cache_replay_delay_ms=_env_number(env, "CACHE_REPLAY_DELAY_MS", streaming.get("cache_replay_delay_ms", 8), int),
        upstream_timeout_sec=_env_number(env, "UPSTREAM_TIMEOUT_SEC", streaming.get("upstream_timeout_sec", 0), float),
        cors_allow_origin=_env_str(env, "CORS_ALLOW_ORIGIN", server.get("cors_allow_origin") or "*"),
    )
