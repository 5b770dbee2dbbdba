"""STT phase — transcribe an uploaded audio file via OpenAI."""

from __future__ import annotations

import logging

from voice_relay.audio.stt import OpenAITranscriber
from voice_relay.errors import BadRequestError, EmptyTranscriptError
from voice_relay.telemetry import get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer()


async def run_stt(
    audio: bytes,
    stt_client: OpenAITranscriber,
    *,
    filename: str = "audio.webm",
    content_type: str = "application/octet-stream",
) -> str:
    """Transcribe *audio* and return the transcript string.

    Raises BadRequestError for an empty upload and EmptyTranscriptError when
    the provider returns no text. Provider failures surface as
    TranscriptionError from the client.
    """
    with tracer.start_as_current_span("relay.stt", attributes={"audio.bytes": len(audio)}):
        if not audio:
            logger.warning("[STT] Empty audio upload — rejecting.")
            raise BadRequestError("Audio file is empty")

        transcript = await stt_client.transcribe(audio, filename=filename, content_type=content_type)

        if not transcript.strip():
            logger.info("[STT] Empty transcript — user may have been silent.")
            raise EmptyTranscriptError("Could not recognise any speech")

        logger.info("[STT] Transcript: %s", transcript)
        return transcript.strip()
