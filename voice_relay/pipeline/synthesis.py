"""Streaming Synthesis Pipeline — ordered audio from an incremental token stream.

Synthesis of each segment starts as soon as the segment is cut, so TTS latency
overlaps LLM latency. Output order is still strictly the order in which the
segments were submitted: the producer enqueues one task per segment and a
single consumer awaits them one after another.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import AsyncIterable, AsyncIterator, Awaitable, Callable

from voice_relay.constants import SYNTHESIS_MAX_IN_FLIGHT
from voice_relay.errors import EmptyResponseError, GenerationError, PipelineError, SynthesisError
from voice_relay.pipeline.segmenter import TextSegmenter
from voice_relay.telemetry import get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer()

SynthesizeFn = Callable[[str], Awaitable[bytes]]


class StreamingSynthesisPipeline:
    """Turns a token stream into audio chunks emitted in generation order.

    Args:
        synthesize:    ``async (segment_text) -> audio bytes``.
        segmenter:     Segmentation policy; a default TextSegmenter if omitted.
        max_in_flight: Upper bound on concurrent synthesis calls.
    """

    def __init__(
        self,
        synthesize: SynthesizeFn,
        *,
        segmenter: TextSegmenter | None = None,
        max_in_flight: int = SYNTHESIS_MAX_IN_FLIGHT,
    ) -> None:
        self._synthesize = synthesize
        self._segmenter = segmenter or TextSegmenter()
        self._max_in_flight = max(1, max_in_flight)
        self._parts: list[str] = []
        self._in_flight: set[asyncio.Task[bytes]] = set()
        self.segments: list[str] = []

    @property
    def full_text(self) -> str:
        """Everything generated so far, concatenated."""
        return "".join(self._parts)

    async def run(self, tokens: AsyncIterable[str]) -> AsyncIterator[bytes]:
        """Yield one audio chunk per segment, in submission order.

        Raises EmptyResponseError when generation produced no text,
        GenerationError / SynthesisError on provider failure. Closing the
        iterator cancels generation and every pending synthesis.
        """
        queue: asyncio.Queue[asyncio.Task[bytes] | None] = asyncio.Queue()
        slots = asyncio.Semaphore(self._max_in_flight)
        producer = asyncio.create_task(self._produce(tokens, queue, slots))

        try:
            while True:
                task = await queue.get()
                if task is None:
                    break
                audio = await task
                if audio:
                    yield audio

            await producer
            if not self.full_text.strip():
                raise EmptyResponseError("The model returned an empty response")
            logger.info("[Pipeline] Synthesized %d segments (%d chars)", len(self.segments), len(self.full_text))
        finally:
            await self._cancel(producer)

    async def _produce(
        self,
        tokens: AsyncIterable[str],
        queue: asyncio.Queue[asyncio.Task[bytes] | None],
        slots: asyncio.Semaphore,
    ) -> None:
        try:
            async for token in tokens:
                self._parts.append(token)
                for segment in self._segmenter.feed(token):
                    await self._submit(segment, queue, slots)

            remainder = self._segmenter.flush()
            if remainder is not None:
                await self._submit(remainder, queue, slots)
        except PipelineError:
            raise
        except Exception as exc:
            logger.error("[Pipeline] Token stream failed: %s", exc)
            raise GenerationError("Generation failed") from exc
        finally:
            queue.put_nowait(None)

    async def _submit(
        self,
        segment: str,
        queue: asyncio.Queue[asyncio.Task[bytes] | None],
        slots: asyncio.Semaphore,
    ) -> None:
        text = segment.strip()
        if not text:
            return
        await slots.acquire()
        task = asyncio.create_task(self._synthesize_segment(text, len(self.segments)))
        task.add_done_callback(lambda _: slots.release())
        task.add_done_callback(self._in_flight.discard)
        self._in_flight.add(task)
        self.segments.append(text)
        queue.put_nowait(task)

    async def _synthesize_segment(self, text: str, index: int) -> bytes:
        with tracer.start_as_current_span("relay.tts", attributes={"segment.index": index, "text.len": len(text)}):
            try:
                return await self._synthesize(text)
            except SynthesisError:
                raise
            except Exception as exc:
                logger.error("[Pipeline] Synthesis of segment %d failed: %s", index, exc)
                raise SynthesisError("Synthesis failed") from exc

    async def _cancel(self, producer: asyncio.Task[None]) -> None:
        pending = [producer, *self._in_flight]
        for task in pending:
            task.cancel()
        for task in pending:
            with contextlib.suppress(asyncio.CancelledError, Exception):
                await task
