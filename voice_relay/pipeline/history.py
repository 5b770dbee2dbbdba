"""Conversation History Store — bounded per-session turn log (in memory only)."""

from __future__ import annotations

import logging
from collections import deque

from voice_relay.constants import HISTORY_MAX_TURNS

logger = logging.getLogger(__name__)


class ConversationHistory:
    """Keeps the most recent ``max_turns`` ``{role, content}`` turns per session."""

    def __init__(self, max_turns: int = HISTORY_MAX_TURNS) -> None:
        self._max_turns = max_turns
        self._turns: dict[str, deque[dict[str, str]]] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def append(self, session_id: str, role: str, content: str) -> None:
        """Append a turn; the oldest turn is evicted once the cap is reached."""
        turns = self._turns.get(session_id)
        if turns is None:
            turns = self._turns[session_id] = deque(maxlen=self._max_turns)
        turns.append({"role": role, "content": content})
        logger.debug("[History] %s: %d turns", session_id, len(turns))

    def get(self, session_id: str) -> list[dict[str, str]]:
        """Return a copy of the session's turns, oldest first."""
        return [dict(turn) for turn in self._turns.get(session_id, ())]

    def clear(self, session_id: str) -> None:
        self._turns.pop(session_id, None)

    def sessions(self) -> list[str]:
        return list(self._turns)

    def __len__(self) -> int:
        return len(self._turns)
