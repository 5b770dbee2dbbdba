"""Tests for the RelayError envelope, send_error and the pipeline exceptions.

Run:
    pytest tests/test_error_envelope.py -v
"""

from unittest.mock import AsyncMock

import pytest

from voice_relay.errors import (
    BadRequestError,
    ConfigMissingError,
    EmptyResponseError,
    EmptyTranscriptError,
    ErrorCode,
    GenerationError,
    RelayError,
    SynthesisError,
    TranscriptionError,
    send_error,
)


class TestRelayErrorSerialization:
    """RelayError.to_dict() produces the expected JSON shape."""

    def test_basic_serialization(self):
        err = RelayError(
            code=ErrorCode.E_UPSTREAM_REJECTED,
            message="401 Unauthorized",
            recoverable=False,
            session_id="session-abc123",
        )
        d = err.to_dict()
        assert d == {
            "type": "error",
            "code": "E_UPSTREAM_REJECTED",
            "message": "401 Unauthorized",
            "recoverable": False,
            "session_id": "session-abc123",
        }

    def test_serialization_with_details(self):
        err = RelayError(
            code=ErrorCode.E_TTS_FAILED,
            message="Synthesis failed",
            details={"trace_id": "abc"},
        )
        assert err.to_dict()["details"] == {"trace_id": "abc"}

    def test_plain_string_code(self):
        assert RelayError(code="E_CUSTOM", message="x").to_dict()["code"] == "E_CUSTOM"

    def test_all_error_codes_are_strings(self):
        for code in ErrorCode:
            assert isinstance(code.value, str)
            assert code.value.startswith("E_")


class TestSendError:
    """send_error() calls websocket.send_json() with the correct payload."""

    @pytest.mark.asyncio
    async def test_send_error_calls_send_json(self):
        ws = AsyncMock()
        err = RelayError(code=ErrorCode.E_UPSTREAM_CLOSED, message="Upstream went away", session_id="s1")
        await send_error(ws, err)
        ws.send_json.assert_called_once()
        payload = ws.send_json.call_args[0][0]
        assert payload["code"] == "E_UPSTREAM_CLOSED"
        assert payload["session_id"] == "s1"

    @pytest.mark.asyncio
    async def test_send_error_swallows_send_failure(self):
        ws = AsyncMock()
        ws.send_json.side_effect = RuntimeError("WebSocket closed")
        # Should NOT raise
        await send_error(ws, RelayError(code=ErrorCode.E_UPSTREAM_REJECTED, message="nope"))


class TestPipelineErrors:
    @pytest.mark.parametrize(
        "exc_type, code, status",
        [
            (BadRequestError, "E_BAD_REQUEST", 400),
            (ConfigMissingError, "E_CONFIG_MISSING", 500),
            (TranscriptionError, "E_STT_FAILED", 502),
            (EmptyTranscriptError, "E_EMPTY_TRANSCRIPT", 422),
            (GenerationError, "E_LLM_FAILED", 502),
            (EmptyResponseError, "E_EMPTY_RESPONSE", 422),
            (SynthesisError, "E_TTS_FAILED", 502),
        ],
    )
    def test_code_and_status(self, exc_type, code, status):
        exc = exc_type("boom")
        assert exc.status_code == status
        envelope = exc.to_error("s1").to_dict()
        assert envelope["code"] == code
        assert envelope["message"] == "boom"
        assert envelope["session_id"] == "s1"

    def test_message_defaults_to_code(self):
        assert SynthesisError().to_error().message == "E_TTS_FAILED"

    def test_config_missing_is_not_recoverable(self):
        assert ConfigMissingError("no key").to_error().recoverable is False
