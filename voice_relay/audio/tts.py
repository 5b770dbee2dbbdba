"""OpenAI speech synthesis client returning complete MP3 segments."""

from __future__ import annotations

import logging

import httpx

from voice_relay.constants import TTS_TIMEOUT
from voice_relay.errors import SynthesisError

logger = logging.getLogger(__name__)


class OpenAISpeech:
    """Synthesizes short text segments via ``/audio/speech``.

    Parameters
    ----------
    api_key : str
        OpenAI API key (from OPENAI_API_KEY env var).
    model : str
        TTS model id (default ``tts-1``).
    response_format : str
        Container returned by the API; the HTTP pipeline streams ``mp3``.
    """

    def __init__(
        self,
        api_key: str,
        *,
        api_base: str = "https://api.openai.com/v1",
        model: str = "tts-1",
        response_format: str = "mp3",
        timeout: float = TTS_TIMEOUT,
    ) -> None:
        self._api_key = api_key
        self._url = f"{api_base.rstrip('/')}/audio/speech"
        self._model = model
        self._response_format = response_format
        self._timeout = timeout

    async def synthesize(self, text: str, *, voice: str, speed: float = 1.0) -> bytes:
        """Synthesize *text* and return the encoded audio bytes."""
        body = {
            "model": self._model,
            "input": text,
            "voice": voice,
            "speed": speed,
            "response_format": self._response_format,
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    self._url,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    json=body,
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error("[TTS] OpenAI speech error %d: %s", exc.response.status_code, exc.response.text)
            raise SynthesisError(f"Synthesis rejected ({exc.response.status_code})") from exc
        except httpx.HTTPError as exc:
            logger.error("[TTS] Speech request failed: %s", exc)
            raise SynthesisError("Synthesis failed") from exc

        logger.debug("[TTS] Synthesized %d bytes for %.40s", len(response.content), text)
        return response.content
