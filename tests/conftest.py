"""Shared fakes for relay tests: scripted upstream and client sockets."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from voice_relay.automation.loader import AutomationConfigStore
from voice_relay.automation.models import AutomationConfig
from voice_relay.config import Settings

_END = object()


class FakeUpstreamSocket:
    """Stands in for a ``websockets`` client connection.

    Messages pushed with :meth:`feed` are yielded by ``async for``; :meth:`finish`
    ends iteration normally or by raising the given exception.
    """

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.closed = False
        self._incoming: asyncio.Queue[Any] = asyncio.Queue()

    def feed(self, message: Any) -> None:
        if isinstance(message, dict):
            message = json.dumps(message)
        self._incoming.put_nowait(message)

    def finish(self, error: BaseException | None = None) -> None:
        self._incoming.put_nowait(error if error is not None else _END)

    def sent_events(self) -> list[dict[str, Any]]:
        return [json.loads(message) for message in self.sent]

    async def send(self, message: str) -> None:
        self.sent.append(message)

    async def close(self) -> None:
        self.closed = True
        self._incoming.put_nowait(_END)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._incoming.get()
        if item is _END:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item


class FakeClientSocket:
    """Stands in for a Starlette ``WebSocket`` on the browser side."""

    def __init__(self) -> None:
        self.sent_bytes: list[bytes] = []
        self.sent_text: list[str] = []
        self.close_code: int | None = None
        self.close_reason: str | None = None
        self._incoming: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

    def push_text(self, text: str) -> None:
        self._incoming.put_nowait({"type": "websocket.receive", "text": text})

    def push_bytes(self, data: bytes) -> None:
        self._incoming.put_nowait({"type": "websocket.receive", "bytes": data})

    def disconnect(self) -> None:
        self._incoming.put_nowait({"type": "websocket.disconnect", "code": 1000})

    def sent_json(self) -> list[dict[str, Any]]:
        return [json.loads(text) for text in self.sent_text]

    async def receive(self) -> dict[str, Any]:
        return await self._incoming.get()

    async def send_bytes(self, data: bytes) -> None:
        self.sent_bytes.append(data)

    async def send_text(self, text: str) -> None:
        self.sent_text.append(text)

    async def send_json(self, data: Any) -> None:
        self.sent_text.append(json.dumps(data))

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.close_code = code
        self.close_reason = reason


@pytest.fixture
def settings() -> Settings:
    return Settings(openai_api_key="sk-test", automation_load_timeout=0.01)


def make_store(config: dict[str, Any] | None = None) -> AutomationConfigStore:
    store = AutomationConfigStore()
    store.set(AutomationConfig.from_payload(config) if config is not None else None)
    return store
