"""Tests for the automation config fetch and the snapshot store.

Run:
    pytest tests/test_automation_loader.py -v
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from voice_relay.automation.loader import AutomationConfigStore, fetch_automation_config

WEBHOOK = "https://hooks.example.test/webhook/config"


def _mock_client(*, payload=None, error=None, status_error=None):
    response = MagicMock()
    if status_error is not None:
        response.raise_for_status = MagicMock(side_effect=status_error)
    else:
        response.raise_for_status = MagicMock()
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload

    client = AsyncMock()
    if error is not None:
        client.get.side_effect = error
    else:
        client.get.return_value = response
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    return client


class TestFetchAutomationConfig:
    @pytest.mark.asyncio
    async def test_successful_fetch(self):
        client = _mock_client(payload={"voice": "shimmer", "tools": ["weather"]})

        with patch("httpx.AsyncClient", return_value=client):
            config = await fetch_automation_config("auto-1", WEBHOOK)

        assert config.voice == "shimmer"
        assert config.tools == ["weather"]
        client.get.assert_awaited_once_with(
            WEBHOOK,
            params={"automationId": "auto-1"},
            headers={"Accept": "application/json"},
        )

    @pytest.mark.asyncio
    async def test_network_error_yields_none(self):
        client = _mock_client(error=httpx.ConnectError("connection refused"))

        with patch("httpx.AsyncClient", return_value=client):
            assert await fetch_automation_config("auto-1", WEBHOOK) is None

    @pytest.mark.asyncio
    async def test_non_2xx_yields_none(self):
        status_error = httpx.HTTPStatusError("boom", request=MagicMock(), response=MagicMock(status_code=404))
        client = _mock_client(payload={}, status_error=status_error)

        with patch("httpx.AsyncClient", return_value=client):
            assert await fetch_automation_config("auto-1", WEBHOOK) is None

    @pytest.mark.asyncio
    async def test_invalid_json_yields_none(self):
        client = _mock_client(payload=ValueError("Expecting value"))

        with patch("httpx.AsyncClient", return_value=client):
            assert await fetch_automation_config("auto-1", WEBHOOK) is None

    @pytest.mark.asyncio
    async def test_non_object_body_yields_none(self):
        client = _mock_client(payload=[{"voice": "shimmer"}])

        with patch("httpx.AsyncClient", return_value=client):
            assert await fetch_automation_config("auto-1", WEBHOOK) is None


class TestAutomationConfigStore:
    @pytest.mark.asyncio
    async def test_load_without_id_uses_defaults(self):
        store = AutomationConfigStore()
        with patch("voice_relay.automation.loader.fetch_automation_config", new=AsyncMock()) as fetch:
            assert await store.load("", WEBHOOK) is None
        fetch.assert_not_awaited()
        assert store.is_loaded
        assert store.get() is None

    @pytest.mark.asyncio
    async def test_load_swaps_snapshot(self):
        store = AutomationConfigStore()
        client = _mock_client(payload={"voice": "alloy"})

        with patch("httpx.AsyncClient", return_value=client):
            await store.load("auto-1", WEBHOOK)

        assert store.is_loaded
        assert store.get().voice == "alloy"

    @pytest.mark.asyncio
    async def test_wait_loaded_times_out_with_current_value(self):
        store = AutomationConfigStore()
        assert await store.wait_loaded(0.01) is None
        assert not store.is_loaded

    @pytest.mark.asyncio
    async def test_wait_loaded_returns_once_set(self):
        store = AutomationConfigStore()
        store.set(None)
        assert await store.wait_loaded(1.0) is None
        assert store.is_loaded
