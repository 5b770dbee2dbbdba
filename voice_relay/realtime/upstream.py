"""Upstream Session Manager — one realtime WebSocket connection per client.

Lifecycle::

    CONNECTING → AWAITING_READY → READY → CONFIGURED → ACTIVE → CLOSED

The upstream ignores configuration sent before it announces the session, so
``session.update`` is only sent after ``session.created``. Client events that
arrive earlier are held in a bounded queue and replayed right after the
configuration, in submission order. Every transition that sends happens under
one lock so the replay cannot interleave with fresh client events.
"""

from __future__ import annotations

import asyncio
import base64
import enum
import json
import logging
from collections import deque
from typing import Any, AsyncIterator

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, ConnectionClosedOK, WebSocketException

from voice_relay.automation.loader import AutomationConfigStore
from voice_relay.automation.session_config import SessionConfig, build_session_config
from voice_relay.config import Settings
from voice_relay.constants import (
    EVENT_ERROR,
    EVENT_INPUT_AUDIO_APPEND,
    EVENT_SESSION_CREATED,
    EVENT_SESSION_UPDATED,
    PENDING_EVENTS_MAX,
    REALTIME_BETA_HEADER,
    UPSTREAM_MAX_MESSAGE_BYTES,
)
from voice_relay.errors import UpstreamConnectError
from voice_relay.realtime.frames import Frame, TextFrame, classify
from voice_relay.telemetry import get_tracer
from voice_relay.utils import generate_connection_id

logger = logging.getLogger(__name__)
tracer = get_tracer()


class UpstreamState(str, enum.Enum):
    CONNECTING = "connecting"
    AWAITING_READY = "awaiting_ready"
    READY = "ready"
    CONFIGURED = "configured"
    ACTIVE = "active"
    CLOSED = "closed"


_QUEUEING_STATES = frozenset({UpstreamState.CONNECTING, UpstreamState.AWAITING_READY, UpstreamState.READY})
_READY_STATES = frozenset({UpstreamState.READY, UpstreamState.CONFIGURED, UpstreamState.ACTIVE})


class UpstreamSession:
    """Owns the upstream realtime connection for one client session."""

    def __init__(self, session_id: str, settings: Settings, automation_store: AutomationConfigStore) -> None:
        self.session_id = session_id
        self.connection_id = generate_connection_id("rt")
        self.state = UpstreamState.CONNECTING
        self.last_config: SessionConfig | None = None

        self._settings = settings
        self._automation_store = automation_store
        self._ws: Any = None
        self._lock = asyncio.Lock()
        self._pending: deque[str] = deque()
        self._failed = False

    @property
    def ready(self) -> bool:
        return self.state in _READY_STATES

    @property
    def failed(self) -> bool:
        """True when the session ended abnormally."""
        return self._failed

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def connect(self) -> None:
        """Open the upstream connection; raises UpstreamConnectError on any failure."""
        await self._automation_store.wait_loaded(self._settings.automation_load_timeout)

        if not self._settings.openai_api_key:
            self._mark_failed()
            raise UpstreamConnectError("OPENAI_API_KEY is not configured")

        headers = [
            ("Authorization", f"Bearer {self._settings.openai_api_key}"),
            ("OpenAI-Beta", REALTIME_BETA_HEADER),
        ]
        url = self._settings.realtime_endpoint
        logger.info("[Upstream] %s connecting to %s (session=%s)", self.connection_id, url, self.session_id)

        with tracer.start_as_current_span("relay.upstream.connect", attributes={"session.id": self.session_id}):
            try:
                self._ws = await websockets.connect(
                    url,
                    additional_headers=headers,
                    max_size=UPSTREAM_MAX_MESSAGE_BYTES,
                )
            except (WebSocketException, OSError, asyncio.TimeoutError) as exc:
                logger.error("[Upstream] %s connection failed: %s", self.connection_id, exc)
                self._mark_failed()
                raise UpstreamConnectError(str(exc) or type(exc).__name__) from exc

        self.state = UpstreamState.AWAITING_READY
        logger.info("[Upstream] %s connected — awaiting session.created", self.connection_id)

    async def send_text(self, text: str) -> bool:
        """Forward a client event, queueing it until the session is configured.

        Returns False when the event was dropped (closed session or full queue).
        """
        async with self._lock:
            if self.state is UpstreamState.CLOSED:
                return False
            if self.state in _QUEUEING_STATES:
                if len(self._pending) >= PENDING_EVENTS_MAX:
                    logger.warning(
                        "[Upstream] %s pending queue full (%d) — dropping client event",
                        self.connection_id,
                        PENDING_EVENTS_MAX,
                    )
                    return False
                self._pending.append(text)
                return True
            return await self._send_raw(text)

    async def send_event(self, event: dict[str, Any]) -> bool:
        return await self.send_text(json.dumps(event))

    async def send_audio(self, chunk: bytes) -> bool:
        return await self.send_event({
            "type": EVENT_INPUT_AUDIO_APPEND,
            "audio": base64.b64encode(chunk).decode("ascii"),
        })

    async def frames(self) -> AsyncIterator[Frame]:
        """Read loop: yield classified upstream frames until the connection ends."""
        ws = self._ws
        if ws is None:
            return
        try:
            async for message in ws:
                # websockets yields bytes only for binary frames.
                frame = classify(message, binary=isinstance(message, (bytes, bytearray)))
                if frame is None:
                    continue
                if isinstance(frame, TextFrame) and frame.event is not None:
                    await self._on_event(frame.event)
                yield frame
        except ConnectionClosedOK:
            logger.info("[Upstream] %s closed by remote", self.connection_id)
        except ConnectionClosedError as exc:
            logger.error("[Upstream] %s connection error: %s", self.connection_id, exc)
            self._failed = True
        finally:
            self.state = UpstreamState.CLOSED

    async def close(self) -> None:
        """Close the upstream connection. Safe to call more than once."""
        self.state = UpstreamState.CLOSED
        self._pending.clear()
        ws, self._ws = self._ws, None
        if ws is None:
            return
        try:
            await ws.close()
        except (WebSocketException, OSError) as exc:
            logger.debug("[Upstream] %s close error: %s", self.connection_id, exc)
        logger.info("[Upstream] %s closed (session=%s)", self.connection_id, self.session_id)

    async def _on_event(self, event: dict[str, Any]) -> None:
        event_type = event.get("type")
        if event_type == EVENT_SESSION_CREATED:
            if self.state is UpstreamState.AWAITING_READY:
                await self._configure()
            else:
                logger.debug("[Upstream] %s ignoring repeated session.created", self.connection_id)
        elif event_type == EVENT_SESSION_UPDATED:
            if self.state is UpstreamState.CONFIGURED:
                self.state = UpstreamState.ACTIVE
                logger.info("[Upstream] %s session configured and active", self.connection_id)
        elif event_type == EVENT_ERROR:
            logger.warning("[Upstream] %s error event: %s", self.connection_id, event.get("error"))

    async def _configure(self) -> None:
        async with self._lock:
            self.state = UpstreamState.READY
            config = build_session_config(self._automation_store.get())
            self.last_config = config

            if not await self._send_raw(json.dumps(config.to_event())):
                return
            if self.state is not UpstreamState.READY:
                # Closed while session.update was in flight.
                return
            self.state = UpstreamState.CONFIGURED
            logger.info(
                "[Upstream] %s sent session.update (voice=%s, tools=%d), replaying %d queued events",
                self.connection_id,
                config.voice,
                len(config.tools),
                len(self._pending),
            )

            while self._pending:
                if not await self._send_raw(self._pending.popleft()):
                    break

    async def _send_raw(self, text: str) -> bool:
        ws = self._ws
        if ws is None:
            return False
        try:
            await ws.send(text)
        except ConnectionClosed as exc:
            logger.warning("[Upstream] %s send after close: %s", self.connection_id, exc)
            self._failed = self._failed or not isinstance(exc, ConnectionClosedOK)
            self.state = UpstreamState.CLOSED
            return False
        return True

    def _mark_failed(self) -> None:
        self._failed = True
        self.state = UpstreamState.CLOSED
