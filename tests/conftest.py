import dataclasses
import os

import httpx
import pytest
from fastapi.testclient import TestClient

# Must be set before app.main is imported (skips the startup model probe).
os.environ["CAMPUS_API_ENV"] = "test"


@pytest.fixture(scope="session", autouse=True)
def setup_global_env():
    """
    Set baseline environment variables for the entire test session.
    Used to prevent accidental upstream connectivity.
    """
    os.environ["CAMPUS_API_ENV"] = "test"


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """
    Ensure every test runs with a clean/known environment.
    Routing toggles and the cloud key are removed so each test opts in.
    """
    for key in ("CLOUD_API_KEY", "MODE", "SMART_ROUTING", "CLOUD_ESCALATION", "GATEWAY_CONFIG"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    yield


@pytest.fixture
def make_config():
    """Build a GatewayConfig with zero stream delays plus overrides."""
    from app.config import GatewayConfig

    def _make(**overrides):
        base = GatewayConfig(fallback_delay_ms=0, cache_replay_delay_ms=0)
        return dataclasses.replace(base, **overrides)

    return _make


@pytest.fixture
def install_gateway():
    """
    Swap the app's Gateway for one backed by an httpx.MockTransport.
    The original gateway is restored after the test.
    """
    from app import main as m
    from app.gateway import Gateway

    original = m.app.state.gateway

    def _install(config, handler=None):
        transport = httpx.MockTransport(handler) if handler is not None else None
        gateway = Gateway(config, transport=transport)
        m.app.state.gateway = gateway
        return gateway

    yield _install
    m.app.state.gateway = original


@pytest.fixture
def client():
    """
    Create a TestClient with the FastAPI app.
    Lazy import ensures app is initialized with test env vars.
    """
    from app.main import app
    with TestClient(app) as test_client:
        yield test_client
