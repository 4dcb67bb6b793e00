"""Shared test fixtures."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from tests.helpers.gate import TENANT_ENV, FakeClock


@pytest.fixture(autouse=True)
def _mock_settings(monkeypatch):
    """Provide default settings and a fresh gate for all tests."""
    monkeypatch.setenv("GATE_LOG_JSON", "false")
    monkeypatch.setenv("GATE_LOG_LEVEL", "debug")

    # Reset cached settings and process-wide state
    import edgegate.config.loader as loader
    import edgegate.engine.gate as gate_module
    import edgegate.main as main_module
    from edgegate.middleware.security_headers import reset_presets_cache

    loader._settings = None
    gate_module.reset_gate()
    main_module._pipeline = None
    reset_presets_cache()
    yield
    loader._settings = None
    gate_module.reset_gate()
    main_module._pipeline = None


@pytest.fixture
def tenant_env(monkeypatch):
    """Tenant variables shared by the HTTP-level tests."""
    for name, value in TENANT_ENV.items():
        monkeypatch.setenv(name, value)
    return dict(TENANT_ENV)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client(tenant_env):
    """Create a FastAPI test client speaking HTTPS."""
    from edgegate.main import app

    with TestClient(app, base_url="https://public.example.com", raise_server_exceptions=False) as c:
        yield c
