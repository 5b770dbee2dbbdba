"""Production smoke tests — app wiring, settings and telemetry.

Run:
    pytest tests/test_production_smoke.py -v
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from starlette.websockets import WebSocketDisconnect

from voice_relay.config import Settings
from voice_relay.main import create_app
from voice_relay.telemetry import current_trace_id, get_tracer, init_telemetry
from voice_relay.utils import generate_connection_id, resolve_session_id


# ---------------------------------------------------------------------------
# 1. Health endpoint
# ---------------------------------------------------------------------------


class TestHealthEndpoint:
    @pytest.mark.asyncio
    async def test_health_reports_configuration(self):
        app = create_app(Settings(openai_api_key="sk-test"))

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/health")

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["openai_configured"] is True
        assert body["realtime"] is True
        assert body["automation_loaded"] is False
        assert body["timestamp"]

    @pytest.mark.asyncio
    async def test_health_without_key(self):
        app = create_app(Settings())

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/health")

        assert resp.json()["openai_configured"] is False


# ---------------------------------------------------------------------------
# 2. Realtime WebSocket without credentials
# ---------------------------------------------------------------------------


class TestRealtimeEndpoint:
    def test_missing_key_sends_error_and_closes_1011(self):
        app = create_app(Settings(automation_load_timeout=0.01))
        client = TestClient(app)

        with client.websocket_connect("/realtime?sessionId=abc") as ws:
            error = ws.receive_json()
            assert error["type"] == "error"
            assert error["code"] == "E_UPSTREAM_REJECTED"
            assert error["session_id"] == "abc"
            with pytest.raises(WebSocketDisconnect) as exc_info:
                ws.receive_text()

        assert exc_info.value.code == 1011


# ---------------------------------------------------------------------------
# 3. Settings
# ---------------------------------------------------------------------------


class TestSettings:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("OPENAI_REALTIME_MODEL", "gpt-realtime")
        monkeypatch.setenv("AUTOMATION_ID", "auto-7")
        monkeypatch.setenv("OPENAI_API_BASE", "https://proxy.example.test/v1/")
        monkeypatch.setenv("OTEL_EXPORTER", "none")

        settings = Settings.from_env(load_env_file=False)

        assert settings.openai_configured
        assert settings.port == 8080
        assert settings.automation_id == "auto-7"
        assert settings.api_base == "https://proxy.example.test/v1"
        assert settings.realtime_endpoint == "wss://api.openai.com/v1/realtime?model=gpt-realtime"
        assert settings.otel_exporter == "none"

    def test_invalid_numbers_fall_back(self, monkeypatch):
        monkeypatch.setenv("PORT", "eighty")
        monkeypatch.setenv("AUTOMATION_LOAD_TIMEOUT", "soon")
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        settings = Settings.from_env(load_env_file=False)

        assert settings.port == 3000
        assert settings.automation_load_timeout == 5.0
        assert not settings.openai_configured


# ---------------------------------------------------------------------------
# 4. Session ids
# ---------------------------------------------------------------------------


class TestSessionIds:
    def test_resolve_prefers_first_non_blank(self):
        assert resolve_session_id(None, "  ", " header-id ") == "header-id"
        assert resolve_session_id("query-id", "header-id") == "query-id"
        assert resolve_session_id(None, None) == "default"

    def test_connection_id_format(self):
        assert len(generate_connection_id()) == 8
        assert generate_connection_id("rt").startswith("rt-")


# ---------------------------------------------------------------------------
# 5. Telemetry
# ---------------------------------------------------------------------------


class TestTelemetryInit:
    def test_get_tracer_returns_tracer(self):
        assert get_tracer() is not None

    def test_init_telemetry_is_idempotent(self):
        first = init_telemetry("none")
        assert init_telemetry("console") is first

    def test_trace_id_inside_span(self):
        init_telemetry("none")
        assert current_trace_id() == ""
        with get_tracer().start_as_current_span("relay.test"):
            assert len(current_trace_id()) == 32
