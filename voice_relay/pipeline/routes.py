"""HTTP speech pipeline — upload → transcription → generation → streamed speech.

``POST /voice`` accepts a multipart ``audio`` file and an optional session id
(``sessionId`` form field or ``X-Session-Id`` header). The first audio chunk is
produced before the response starts, so every failure up to that point is a
proper HTTP error carrying the RelayError envelope. Once audio is flowing a
failure can only end the stream early.
"""

from __future__ import annotations

import functools
import logging
from typing import AsyncGenerator, AsyncIterator, Optional

from fastapi import APIRouter, File, Form, Header, Request, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse

from voice_relay.audio.llm import ChatStreamer
from voice_relay.audio.stt import OpenAITranscriber
from voice_relay.audio.tts import OpenAISpeech
from voice_relay.automation.session_config import build_session_config
from voice_relay.errors import (
    BadRequestError,
    ConfigMissingError,
    PipelineError,
    SynthesisError,
)
from voice_relay.pipeline.stt_phase import run_stt
from voice_relay.pipeline.synthesis import StreamingSynthesisPipeline
from voice_relay.telemetry import current_trace_id, get_tracer
from voice_relay.utils import resolve_session_id

logger = logging.getLogger(__name__)
tracer = get_tracer()

router = APIRouter(tags=["voice"])

AUDIO_MEDIA_TYPE = "audio/mpeg"


def _error_response(exc: PipelineError, session_id: str) -> JSONResponse:
    error = exc.to_error(session_id)
    trace_id = current_trace_id()
    if trace_id:
        error.details = {"trace_id": trace_id}
    return JSONResponse(status_code=exc.status_code, content=error.to_dict())


@router.post("/voice")
async def voice(
    request: Request,
    audio: Optional[UploadFile] = File(default=None),
    session_id: Optional[str] = Form(default=None, alias="sessionId"),
    x_session_id: Optional[str] = Header(default=None),
):
    settings = request.app.state.settings
    automation = request.app.state.automation
    history = request.app.state.history
    sid = resolve_session_id(session_id, x_session_id)

    with tracer.start_as_current_span("relay.pipeline", attributes={"session.id": sid}):
        try:
            if audio is None:
                raise BadRequestError("No audio file uploaded")
            data = await audio.read()
            if not data:
                raise BadRequestError("Audio file is empty")
            if not settings.openai_configured:
                raise ConfigMissingError("OPENAI_API_KEY is not configured")

            transcriber = OpenAITranscriber(
                settings.openai_api_key,
                api_base=settings.api_base,
                model=settings.stt_model,
                language=settings.stt_language,
            )
            transcript = await run_stt(
                data,
                transcriber,
                filename=audio.filename or "audio.webm",
                content_type=audio.content_type or "application/octet-stream",
            )
            history.append(sid, "user", transcript)

            session_config = build_session_config(automation.get())
            messages = [{"role": "system", "content": session_config.instructions}, *history.get(sid)]

            chat = ChatStreamer(settings.openai_api_key, api_base=settings.api_base, model=settings.chat_model)
            speech = OpenAISpeech(settings.openai_api_key, api_base=settings.api_base, model=settings.tts_model)
            pipeline = StreamingSynthesisPipeline(
                functools.partial(speech.synthesize, voice=session_config.voice, speed=session_config.speed or 1.0),
            )

            chunks = pipeline.run(chat.stream(messages))
            try:
                first_chunk = await chunks.__anext__()
            except StopAsyncIteration:
                raise SynthesisError("Synthesis produced no audio") from None
        except PipelineError as exc:
            logger.warning("[Pipeline] Request failed for session %s: %s (%d)", sid, exc, exc.status_code)
            return _error_response(exc, sid)

    logger.info("[Pipeline] Streaming audio for session %s", sid)
    return StreamingResponse(
        _stream_body(first_chunk, chunks, pipeline, history, sid),
        media_type=AUDIO_MEDIA_TYPE,
    )


async def _stream_body(
    first_chunk: bytes,
    chunks: AsyncGenerator[bytes, None],
    pipeline: StreamingSynthesisPipeline,
    history,
    session_id: str,
) -> AsyncIterator[bytes]:
    try:
        yield first_chunk
        async for chunk in chunks:
            yield chunk
    except PipelineError as exc:
        logger.error("[Pipeline] Stream for session %s aborted after start: %s", session_id, exc)
        return
    finally:
        await chunks.aclose()

    history.append(session_id, "assistant", pipeline.full_text)
