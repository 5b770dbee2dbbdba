"""Frame classification for both legs of the relay.

Pure functions only — no sockets, no state. The gateway and the upstream
session decide what to do with the classified result.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from typing import Any, Union

from voice_relay.constants import (
    AUDIO_DELTA_EVENTS,
    AUDIO_TRANSCRIPT_DONE_EVENTS,
    OUTPUT_TEXT_DONE_EVENT,
    PCM_SAMPLE_WIDTH,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextFrame:
    """A text frame; ``event`` is set when the text is a JSON object."""

    text: str
    event: dict[str, Any] | None = None

    @property
    def event_type(self) -> str | None:
        if self.event is None:
            return None
        event_type = self.event.get("type")
        if isinstance(event_type, str) and event_type:
            return event_type
        return None


@dataclass(frozen=True)
class BinaryFrame:
    data: bytes


Frame = Union[TextFrame, BinaryFrame]


def _parse_object(text: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(text)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def classify(payload: str | bytes | bytearray | None, *, binary: bool | None = None) -> Frame | None:
    """Classify one received payload.

    ``binary=True`` means the transport tagged the frame as binary and it is
    returned as audio without inspection. Untagged bytes are decoded and
    treated as text when they hold valid JSON, otherwise as opaque PCM.
    Empty payloads yield None.
    """
    if not payload:
        return None

    if isinstance(payload, str):
        return TextFrame(payload, _parse_object(payload))

    data = bytes(payload)
    if binary:
        return BinaryFrame(data)

    try:
        text = data.decode("utf-8")
        json.loads(text)
    except ValueError:
        # UnicodeDecodeError is a ValueError too.
        return BinaryFrame(data)
    return TextFrame(text, _parse_object(text))


def validate_pcm(data: bytes | None) -> bytes | None:
    """Return *data* if it is a non-empty whole number of 16-bit samples."""
    if not data:
        return None
    if len(data) % PCM_SAMPLE_WIDTH:
        logger.warning("[Frames] Dropping PCM chunk with odd length %d", len(data))
        return None
    return data


def extract_audio_delta(event: dict[str, Any]) -> bytes | None:
    """Decode the base64 ``delta`` of an audio-delta event into a PCM chunk."""
    if event.get("type") not in AUDIO_DELTA_EVENTS:
        return None
    delta = event.get("delta")
    if not isinstance(delta, str) or not delta:
        return None
    try:
        audio = base64.b64decode(delta, validate=True)
    except (binascii.Error, ValueError) as exc:
        logger.warning("[Frames] Malformed base64 in %s: %s", event.get("type"), exc)
        return None
    return validate_pcm(audio)


def extract_assistant_text(event: dict[str, Any]) -> str | None:
    """Return the final assistant text carried by a *done* event, if any."""
    event_type = event.get("type")
    text: Any = None

    if event_type == OUTPUT_TEXT_DONE_EVENT:
        text = event.get("text")
        if not text:
            try:
                text = event["output"][0]["content"][0]["text"]
            except (KeyError, IndexError, TypeError):
                text = None
    elif event_type in AUDIO_TRANSCRIPT_DONE_EVENTS:
        text = event.get("transcript")

    if isinstance(text, str) and text:
        return text
    return None
