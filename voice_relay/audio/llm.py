"""Streaming chat-completions client — yields content deltas as they arrive."""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator

import httpx

from voice_relay.constants import LLM_TIMEOUT
from voice_relay.errors import GenerationError
from voice_relay.telemetry import get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer()

_SSE_PREFIX = "data:"
_SSE_DONE = "[DONE]"
_DONE = object()


class ChatStreamer:
    def __init__(
        self,
        api_key: str,
        *,
        api_base: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini",
        timeout: float = LLM_TIMEOUT,
    ) -> None:
        self._api_key = api_key
        self._url = f"{api_base.rstrip('/')}/chat/completions"
        self._model = model
        self._timeout = timeout

    async def stream(self, messages: list[dict[str, str]]) -> AsyncIterator[str]:
        """POST *messages* with ``stream: true`` and yield each content delta.

        Raises GenerationError on HTTP or transport failure.
        """
        body = {"model": self._model, "messages": messages, "stream": True}
        headers = {"Authorization": f"Bearer {self._api_key}", "Accept": "text/event-stream"}

        # Not a context manager: the span outlives individual yields.
        span = tracer.start_span("relay.llm", attributes={"llm.model": self._model, "llm.messages": len(messages)})
        token_count = 0
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                async with client.stream("POST", self._url, headers=headers, json=body) as response:
                    if response.status_code >= 400:
                        detail = (await response.aread()).decode("utf-8", "replace")
                        logger.error("[LLM] Chat completion failed %d: %s", response.status_code, detail)
                        raise GenerationError(f"Generation rejected ({response.status_code})")

                    async for line in response.aiter_lines():
                        token = _parse_sse_line(line)
                        if token is None:
                            continue
                        if token is _DONE:
                            break
                        token_count += 1
                        yield token
        except httpx.HTTPError as exc:
            logger.error("[LLM] Chat completion stream error: %s", exc)
            raise GenerationError("Generation failed") from exc
        finally:
            span.set_attribute("llm.tokens", token_count)
            span.end()


def _parse_sse_line(line: str) -> Any:
    """Return the content delta of one SSE line, ``_DONE`` or None."""
    line = line.strip()
    if not line.startswith(_SSE_PREFIX):
        return None
    data = line[len(_SSE_PREFIX):].strip()
    if data == _SSE_DONE:
        return _DONE
    try:
        chunk = json.loads(data)
        content = chunk["choices"][0]["delta"].get("content")
    except (ValueError, KeyError, IndexError, TypeError, AttributeError):
        logger.debug("[LLM] Skipping unparseable stream line: %.120s", data)
        return None
    return content if isinstance(content, str) and content else None
