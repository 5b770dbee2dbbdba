"""OpenAI transcription client for uploaded audio files."""

from __future__ import annotations

import asyncio
import logging

import httpx

from voice_relay.constants import STT_TIMEOUT
from voice_relay.errors import TranscriptionError

logger = logging.getLogger(__name__)


class OpenAITranscriber:
    """Sends a complete audio file to ``/audio/transcriptions`` and returns the text.

    Parameters
    ----------
    api_key : str
        OpenAI API key (from OPENAI_API_KEY env var).
    api_base : str
        Base URL of the OpenAI REST API.
    model : str
        Transcription model (default ``whisper-1``).
    language : str
        Optional ISO-639-1 hint; empty lets the model detect the language.
    """

    def __init__(
        self,
        api_key: str,
        *,
        api_base: str = "https://api.openai.com/v1",
        model: str = "whisper-1",
        language: str = "",
        timeout: float = STT_TIMEOUT,
    ) -> None:
        self._api_key = api_key
        self._url = f"{api_base.rstrip('/')}/audio/transcriptions"
        self._model = model
        self._language = language
        self._timeout = timeout

    async def transcribe(
        self,
        audio: bytes,
        *,
        filename: str = "audio.webm",
        content_type: str = "application/octet-stream",
        max_retries: int = 2,
    ) -> str:
        """Transcribe *audio* and return the stripped transcript.

        Retries up to ``max_retries`` times on network errors and 5xx
        responses with linear backoff. Raises TranscriptionError when the
        request ultimately fails.
        """
        headers = {"Authorization": f"Bearer {self._api_key}"}
        data = {"model": self._model, "response_format": "json"}
        if self._language:
            data["language"] = self._language

        last_error: Exception | None = None
        for attempt in range(max_retries + 1):
            try:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(
                        self._url,
                        headers=headers,
                        data=data,
                        files={"file": (filename, audio, content_type)},
                    )
                    response.raise_for_status()
                    payload = response.json()

                text = payload.get("text", "") if isinstance(payload, dict) else ""
                return text.strip() if isinstance(text, str) else ""

            except httpx.HTTPStatusError as exc:
                last_error = exc
                # 4xx will not improve on retry
                if exc.response.status_code < 500:
                    logger.error("[STT] OpenAI client error %d: %s", exc.response.status_code, exc.response.text)
                    raise TranscriptionError(f"Transcription rejected ({exc.response.status_code})") from exc
                logger.warning(
                    "[STT] OpenAI server error %d (attempt %d/%d)",
                    exc.response.status_code,
                    attempt + 1,
                    max_retries + 1,
                )
            except (httpx.TransportError, ValueError) as exc:
                last_error = exc
                logger.warning("[STT] Transcription request failed (attempt %d/%d): %s", attempt + 1, max_retries + 1, exc)

            if attempt < max_retries:
                await asyncio.sleep(1.0 * (attempt + 1))

        logger.error("[STT] All %d transcription attempts failed: %s", max_retries + 1, last_error)
        raise TranscriptionError("Transcription failed") from last_error
