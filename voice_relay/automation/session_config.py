"""Session config builder — AutomationConfig → realtime session parameters.

``build_session_config`` is pure and total: it never performs I/O and never
raises. Every field is resolved on its own, so a partial or partly-invalid
automation config still overrides whatever it gets right.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Optional

from voice_relay.automation.models import AutomationConfig
from voice_relay.constants import (
    EVENT_SESSION_UPDATE,
    PCM_AUDIO_FORMAT,
    SPEED_MAX,
    SPEED_MIN,
    TOOL_CHOICE_MODES,
    TURN_DETECTION_MODES,
)
from voice_relay.tools.catalog import map_tools_to_definitions

logger = logging.getLogger(__name__)

DEFAULT_INSTRUCTIONS = "Ты голосовой ассистент и всегда отвечаешь по-русски, кратко и дружелюбно."
DEFAULT_VOICE = "echo"
DEFAULT_TURN_DETECTION = "server_vad"


@dataclass(frozen=True)
class SessionConfig:
    """Parameters of one realtime ``session.update``."""

    instructions: str = DEFAULT_INSTRUCTIONS
    voice: str = DEFAULT_VOICE
    input_audio_format: str = PCM_AUDIO_FORMAT
    output_audio_format: str = PCM_AUDIO_FORMAT
    speed: Optional[float] = None
    turn_detection: str = DEFAULT_TURN_DETECTION
    tools: tuple[dict[str, Any], ...] = ()
    tool_choice: Optional[Any] = None

    def to_payload(self) -> dict[str, Any]:
        """Return the ``session`` object of a ``session.update`` event."""
        payload: dict[str, Any] = {
            "instructions": self.instructions,
            "input_audio_format": self.input_audio_format,
            "output_audio_format": self.output_audio_format,
            "voice": self.voice,
            "turn_detection": None if self.turn_detection == "none" else {"type": self.turn_detection},
        }
        if self.speed is not None:
            payload["speed"] = self.speed
        if self.tools:
            payload["tools"] = [dict(tool) for tool in self.tools]
        if self.tool_choice is not None:
            payload["tool_choice"] = self.tool_choice
        return payload

    def to_event(self) -> dict[str, Any]:
        return {"type": EVENT_SESSION_UPDATE, "session": self.to_payload()}


DEFAULT_SESSION_CONFIG = SessionConfig()


def _resolve_text(name: str, value: Any, default: str) -> str:
    if value is None:
        return default
    if isinstance(value, str) and value.strip():
        return value.strip()
    logger.warning("[Config] Invalid %s %r — using default.", name, value)
    return default


def _resolve_speed(value: Any) -> Optional[float]:
    if value is None:
        return DEFAULT_SESSION_CONFIG.speed
    if not math.isfinite(value):
        logger.warning("[Config] Invalid speed %r — using default.", value)
        return DEFAULT_SESSION_CONFIG.speed
    if not SPEED_MIN <= value <= SPEED_MAX:
        logger.warning("[Config] Speed %s outside [%s, %s] — ignoring override.", value, SPEED_MIN, SPEED_MAX)
        return DEFAULT_SESSION_CONFIG.speed
    return float(value)


def _resolve_turn_detection(value: Any) -> str:
    if value is None:
        return DEFAULT_TURN_DETECTION
    if value in TURN_DETECTION_MODES:
        return value
    logger.warning("[Config] Unknown turn detection mode %r — using %s.", value, DEFAULT_TURN_DETECTION)
    return DEFAULT_TURN_DETECTION


def _resolve_tool_choice(value: Any, tools: tuple[dict[str, Any], ...]) -> Optional[Any]:
    if not tools:
        if value is not None:
            logger.warning("[Config] tool_choice %r given without usable tools — ignoring.", value)
        return None
    if value is None:
        return "auto"
    if isinstance(value, str) and value in TOOL_CHOICE_MODES:
        return value
    if (
        isinstance(value, dict)
        and value.get("type") == "function"
        and any(tool["name"] == value.get("name") for tool in tools)
    ):
        return {"type": "function", "name": value["name"]}
    logger.warning("[Config] Invalid tool_choice %r — using auto.", value)
    return "auto"


def build_session_config(config: AutomationConfig | None) -> SessionConfig:
    """Map an optional automation config onto realtime session parameters."""
    if config is None:
        return DEFAULT_SESSION_CONFIG

    tools = tuple(map_tools_to_definitions(config.tools))
    if tools:
        logger.info("[Config] Mapped %d tools to the realtime session", len(tools))

    return SessionConfig(
        instructions=_resolve_text("systemPrompt", config.system_prompt, DEFAULT_INSTRUCTIONS),
        voice=_resolve_text("voice", config.voice, DEFAULT_VOICE),
        speed=_resolve_speed(config.speed),
        turn_detection=_resolve_turn_detection(config.turn_detection),
        tools=tools,
        tool_choice=_resolve_tool_choice(config.tool_choice, tools),
    )
