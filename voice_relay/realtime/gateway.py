"""Session Gateway — bridges one browser WebSocket with one upstream session.

Two tasks run per session (client read loop, upstream read loop). Whichever
finishes first ends the session: the other task is cancelled and both legs
are closed best-effort.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping

from fastapi import WebSocket

from voice_relay.constants import (
    ASSISTANT_TEXT_MESSAGE,
    CLOSE_NORMAL,
    CLOSE_REASON_CONNECT_FAILED,
    CLOSE_REASON_UPSTREAM_ERROR,
    CLOSE_UPSTREAM_ERROR,
)
from voice_relay.errors import ErrorCode, RelayError, UpstreamConnectError, send_error
from voice_relay.realtime.frames import (
    BinaryFrame,
    Frame,
    TextFrame,
    classify,
    extract_assistant_text,
    extract_audio_delta,
    validate_pcm,
)
from voice_relay.realtime.upstream import UpstreamSession

logger = logging.getLogger(__name__)


class ClientState(str, enum.Enum):
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class ClientSession:
    session_id: str
    websocket: WebSocket
    upstream: UpstreamSession
    state: ClientState = ClientState.OPEN


class SessionGateway:
    def __init__(self, websocket: WebSocket, upstream: UpstreamSession, *, session_id: str) -> None:
        self.session = ClientSession(session_id=session_id, websocket=websocket, upstream=upstream)
        self._client_connected = True

    @property
    def upstream(self) -> UpstreamSession:
        return self.session.upstream

    async def run(self) -> None:
        """Connect upstream, relay until either leg ends, then shut down."""
        session_id = self.session.session_id
        try:
            await self.upstream.connect()
        except UpstreamConnectError as exc:
            logger.error("[Gateway] Upstream rejected session %s: %s", session_id, exc)
            await send_error(
                self.session.websocket,
                RelayError(
                    code=ErrorCode.E_UPSTREAM_REJECTED,
                    message=str(exc),
                    recoverable=False,
                    session_id=session_id,
                ),
            )
            await self.shutdown(CLOSE_UPSTREAM_ERROR, CLOSE_REASON_CONNECT_FAILED)
            return

        client_task = asyncio.create_task(self._client_loop(), name=f"client-{session_id}")
        upstream_task = asyncio.create_task(self._upstream_loop(), name=f"upstream-{session_id}")
        tasks = {client_task, upstream_task}
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task

        for task in done:
            if not task.cancelled() and task.exception() is not None:
                logger.error("[Gateway] %s ended with error: %s", task.get_name(), task.exception())

        if upstream_task in done and self.upstream.failed:
            if self._can_send():
                await send_error(
                    self.session.websocket,
                    RelayError(
                        code=ErrorCode.E_UPSTREAM_CLOSED,
                        message=CLOSE_REASON_UPSTREAM_ERROR,
                        recoverable=False,
                        session_id=session_id,
                    ),
                )
            await self.shutdown(CLOSE_UPSTREAM_ERROR, CLOSE_REASON_UPSTREAM_ERROR)
        else:
            await self.shutdown(CLOSE_NORMAL)

    async def handle_client_message(self, message: Mapping[str, Any]) -> None:
        """Route one ASGI ``websocket.receive`` message to the upstream."""
        data = message.get("bytes")
        if data is not None:
            chunk = validate_pcm(data)
            if chunk is not None:
                await self.upstream.send_audio(chunk)
            return

        frame = classify(message.get("text"))
        if not isinstance(frame, TextFrame) or frame.event_type is None:
            logger.debug("[Gateway] Dropping client frame without an event type")
            return
        await self.upstream.send_text(frame.text)

    async def handle_upstream_frame(self, frame: Frame) -> None:
        """Deliver one upstream frame to the client, deriving audio and text."""
        if isinstance(frame, BinaryFrame):
            chunk = validate_pcm(frame.data)
            if chunk is not None:
                await self._send_bytes(chunk)
            return

        event = frame.event
        if event is None:
            await self._send_text(frame.text)
            return

        audio = extract_audio_delta(event)
        if audio is not None:
            await self._send_bytes(audio)
            return

        text = extract_assistant_text(event)
        if text is not None:
            await self._send_text(json.dumps({"type": ASSISTANT_TEXT_MESSAGE, "text": text}, ensure_ascii=False))
        await self._send_text(frame.text)

    async def shutdown(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        """Close both legs once. Later calls are no-ops."""
        if self.session.state is not ClientState.OPEN:
            return
        self.session.state = ClientState.CLOSING

        await self.upstream.close()
        if self._client_connected:
            self._client_connected = False
            try:
                await self.session.websocket.close(code=code, reason=reason)
            except Exception as exc:
                logger.debug("[Gateway] Client close failed: %s", exc)

        self.session.state = ClientState.CLOSED
        logger.info("[Gateway] Session %s closed (code=%d)", self.session.session_id, code)

    async def _client_loop(self) -> None:
        websocket = self.session.websocket
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                self._client_connected = False
                logger.info("[Gateway] Client disconnected (session=%s)", self.session.session_id)
                return
            await self.handle_client_message(message)

    async def _upstream_loop(self) -> None:
        async for frame in self.upstream.frames():
            await self.handle_upstream_frame(frame)

    async def _send_bytes(self, data: bytes) -> bool:
        if not self._can_send():
            return False
        try:
            await self.session.websocket.send_bytes(data)
        except Exception as exc:
            self._on_send_failed(exc)
            return False
        return True

    async def _send_text(self, text: str) -> bool:
        if not self._can_send():
            return False
        try:
            await self.session.websocket.send_text(text)
        except Exception as exc:
            self._on_send_failed(exc)
            return False
        return True

    def _can_send(self) -> bool:
        return self._client_connected and self.session.state is ClientState.OPEN

    def _on_send_failed(self, exc: Exception) -> None:
        logger.warning("[Gateway] Send to client failed (session=%s): %s", self.session.session_id, exc)
        self._client_connected = False
