"""Automation config fetch + process-wide snapshot cell."""

from __future__ import annotations

import asyncio
import logging

import httpx

from voice_relay.automation.models import AutomationConfig
from voice_relay.constants import AUTOMATION_FETCH_TIMEOUT
from voice_relay.telemetry import get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer()


async def fetch_automation_config(
    automation_id: str,
    webhook_url: str,
    *,
    timeout: float = AUTOMATION_FETCH_TIMEOUT,
) -> AutomationConfig | None:
    """GET the automation document for *automation_id* from the config webhook.

    Any failure (network, non-2xx, invalid JSON, non-object body) is logged
    and yields None so the caller falls back to defaults.
    """
    with tracer.start_as_current_span("relay.automation.fetch", attributes={"automation.id": automation_id}):
        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                response = await client.get(
                    webhook_url,
                    params={"automationId": automation_id},
                    headers={"Accept": "application/json"},
                )
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as exc:
            logger.error("[Config] Config webhook returned %d for automation %s", exc.response.status_code, automation_id)
            return None
        except httpx.HTTPError as exc:
            logger.error("[Config] Config webhook request failed: %s", exc)
            return None
        except ValueError as exc:
            logger.error("[Config] Config webhook returned invalid JSON: %s", exc)
            return None

    config = AutomationConfig.from_payload(payload)
    if config is not None:
        logger.info("[Config] Automation %s loaded", automation_id)
    return config


class AutomationConfigStore:
    """Snapshot cell holding the current AutomationConfig (or None).

    Written only by :meth:`load` / :meth:`set` via reference swap; readers get
    whatever snapshot is current at the time of the call.
    """

    def __init__(self) -> None:
        self._config: AutomationConfig | None = None
        self._loaded = asyncio.Event()

    def get(self) -> AutomationConfig | None:
        return self._config

    def set(self, config: AutomationConfig | None) -> None:
        self._config = config
        self._loaded.set()

    @property
    def is_loaded(self) -> bool:
        return self._loaded.is_set()

    async def wait_loaded(self, timeout: float) -> AutomationConfig | None:
        """Wait up to *timeout* seconds for the first load, then return the snapshot."""
        if not self._loaded.is_set():
            try:
                await asyncio.wait_for(self._loaded.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning("[Config] Automation config not loaded after %.1fs — using defaults.", timeout)
        return self._config

    async def load(self, automation_id: str, webhook_url: str) -> AutomationConfig | None:
        if not automation_id:
            logger.info("[Config] AUTOMATION_ID not set — using default session config.")
            self.set(None)
            return None

        config = await fetch_automation_config(automation_id, webhook_url)
        self.set(config)
        return config
