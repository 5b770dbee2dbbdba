"""Centralized ID and session-identifier helpers."""

import uuid

from voice_relay.constants import DEFAULT_SESSION_ID


def generate_connection_id(prefix: str = "") -> str:
    """Generate a short unique id for one upstream connection.

    Args:
        prefix: Optional prefix for the ID (e.g. 'rt', 'http').

    Returns:
        An 8-character hex string, optionally prefixed with hyphen separator.
    """
    unique_part = uuid.uuid4().hex[:8]
    if prefix:
        return f"{prefix}-{unique_part}"
    return unique_part


def resolve_session_id(*candidates: str | None) -> str:
    """Return the first non-blank candidate, stripped, or ``"default"``."""
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()
    return DEFAULT_SESSION_ID
