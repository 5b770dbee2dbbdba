"""Token stream → synthesis-sized text segments."""

from __future__ import annotations

from voice_relay.constants import (
    SEGMENT_FIRST_MIN_CHARS,
    SEGMENT_MAX_CHARS,
    SEGMENT_MIN_CHARS,
    SEGMENT_PUNCTUATION,
)


class TextSegmenter:
    """Accumulates tokens and cuts them into segments for synthesis.

    A segment is emitted when the buffer ends in punctuation and has reached
    the minimum length (lower for the first segment of a turn, so the first
    audio arrives sooner), or when the buffer reaches ``max_chars``. Whatever
    remains is returned by :meth:`flush` at the end of the stream.
    """

    def __init__(
        self,
        *,
        min_chars: int = SEGMENT_MIN_CHARS,
        first_min_chars: int = SEGMENT_FIRST_MIN_CHARS,
        max_chars: int = SEGMENT_MAX_CHARS,
        punctuation: str = SEGMENT_PUNCTUATION,
    ) -> None:
        self._min_chars = min_chars
        self._first_min_chars = first_min_chars
        self._max_chars = max_chars
        self._punctuation = frozenset(punctuation)
        self._buffer = ""
        self._emitted = 0

    @property
    def emitted(self) -> int:
        return self._emitted

    def feed(self, token: str) -> list[str]:
        """Add *token* and return any segments that became ready."""
        if not token:
            return []
        self._buffer += token

        segments: list[str] = []
        while self._buffer:
            segment = self._take_ready()
            if segment is None:
                break
            segments.append(segment)
        return segments

    def flush(self) -> str | None:
        """Return the trailing remainder, or None if nothing is buffered."""
        remainder, self._buffer = self._buffer, ""
        if not remainder.strip():
            return None
        self._emitted += 1
        return remainder

    def _take_ready(self) -> str | None:
        threshold = self._first_min_chars if self._emitted == 0 else self._min_chars
        stripped = self._buffer.rstrip()

        if stripped and stripped[-1] in self._punctuation and len(stripped) >= threshold:
            segment, self._buffer = self._buffer, ""
        elif len(self._buffer) >= self._max_chars:
            segment, self._buffer = self._buffer[: self._max_chars], self._buffer[self._max_chars:]
        else:
            return None

        self._emitted += 1
        return segment
