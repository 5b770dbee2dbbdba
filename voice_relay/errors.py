"""RelayError envelope — structured error reporting to clients.

Every error sent to a browser client (over the realtime WebSocket or as the
body of a failed HTTP pipeline request) follows the same JSON shape so the UI
can render it and the backend logs remain machine-parseable.

Error codes
-----------
E_UPSTREAM_REJECTED   Upstream realtime connection or auth handshake failed.
E_UPSTREAM_CLOSED     Upstream realtime session ended abnormally.
E_CONFIG_MISSING      Required API credential is not configured.
E_BAD_REQUEST         Client request is missing data (e.g. no audio file).
E_STT_FAILED          Transcription call failed.
E_EMPTY_TRANSCRIPT    Transcription succeeded but produced no text.
E_LLM_FAILED          Generation call failed.
E_EMPTY_RESPONSE      Generation finished without producing any text.
E_TTS_FAILED          Synthesis call failed.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ErrorCode(str, enum.Enum):
    E_UPSTREAM_REJECTED = "E_UPSTREAM_REJECTED"
    E_UPSTREAM_CLOSED = "E_UPSTREAM_CLOSED"
    E_CONFIG_MISSING = "E_CONFIG_MISSING"
    E_BAD_REQUEST = "E_BAD_REQUEST"
    E_STT_FAILED = "E_STT_FAILED"
    E_EMPTY_TRANSCRIPT = "E_EMPTY_TRANSCRIPT"
    E_LLM_FAILED = "E_LLM_FAILED"
    E_EMPTY_RESPONSE = "E_EMPTY_RESPONSE"
    E_TTS_FAILED = "E_TTS_FAILED"


@dataclass
class RelayError:
    code: str
    message: str
    recoverable: bool = True
    session_id: str = ""
    details: dict[str, Any] | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        code = self.code.value if isinstance(self.code, ErrorCode) else self.code
        d: dict[str, Any] = {
            "type": "error",
            "code": code,
            "message": self.message,
            "recoverable": self.recoverable,
            "session_id": self.session_id,
        }
        if self.details:
            d["details"] = self.details
        return d


async def send_error(websocket: WebSocket, error: RelayError) -> None:
    """Serialize *error* and send it as a JSON message on *websocket*.

    Silently catches send failures (the socket may already be closed).
    """
    try:
        await websocket.send_json(error.to_dict())
        logger.warning(
            "[RelayError] Sent %s to client: %s (session=%s)",
            error.to_dict()["code"],
            error.message,
            error.session_id,
        )
    except Exception as exc:
        logger.debug("[RelayError] Failed to send error to client: %s", exc)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class RelayException(Exception):
    """Base class for every error raised by the relay."""


class UpstreamConnectError(RelayException):
    """The upstream realtime connection could not be established."""


class PipelineError(RelayException):
    """A failure in the HTTP speech pipeline.

    ``status_code`` is the HTTP status reported when the failure happens
    before any audio has been streamed.
    """

    code: ErrorCode = ErrorCode.E_LLM_FAILED
    status_code: int = 502
    recoverable: bool = True

    def to_error(self, session_id: str = "") -> RelayError:
        return RelayError(
            code=self.code,
            message=str(self) or self.code.value,
            recoverable=self.recoverable,
            session_id=session_id,
        )


class ConfigMissingError(PipelineError):
    code = ErrorCode.E_CONFIG_MISSING
    status_code = 500
    recoverable = False


class BadRequestError(PipelineError):
    code = ErrorCode.E_BAD_REQUEST
    status_code = 400


class TranscriptionError(PipelineError):
    code = ErrorCode.E_STT_FAILED
    status_code = 502


class EmptyTranscriptError(PipelineError):
    code = ErrorCode.E_EMPTY_TRANSCRIPT
    status_code = 422


class GenerationError(PipelineError):
    code = ErrorCode.E_LLM_FAILED
    status_code = 502


class EmptyResponseError(PipelineError):
    code = ErrorCode.E_EMPTY_RESPONSE
    status_code = 422


class SynthesisError(PipelineError):
    code = ErrorCode.E_TTS_FAILED
    status_code = 502
