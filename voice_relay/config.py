"""Process settings read from the environment.

``.env`` values are loaded by ``python-dotenv`` before the environment is read,
so a local ``.env`` file can supply anything not already exported.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_DEFAULT_WEBHOOK_URL = "https://dev-115-n8n.aitency.net/webhook/config"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("[Config] %s=%r is not a number — using %s.", name, raw, default)
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("[Config] %s=%r is not an integer — using %s.", name, raw, default)
        return default


@dataclass(frozen=True)
class Settings:
    """Immutable snapshot of every environment-driven setting."""

    host: str = "0.0.0.0"
    port: int = 3000
    openai_api_key: str = ""
    realtime_url: str = "wss://api.openai.com/v1/realtime"
    realtime_model: str = "gpt-4o-realtime-preview"
    api_base: str = "https://api.openai.com/v1"
    chat_model: str = "gpt-4o-mini"
    tts_model: str = "tts-1"
    stt_model: str = "whisper-1"
    stt_language: str = ""
    config_webhook_url: str = _DEFAULT_WEBHOOK_URL
    automation_id: str = ""
    automation_load_timeout: float = 5.0
    log_level: str = "INFO"
    otel_exporter: str = "console"
    otel_endpoint: str = ""

    @property
    def openai_configured(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def realtime_endpoint(self) -> str:
        return f"{self.realtime_url}?model={self.realtime_model}"

    @classmethod
    def from_env(cls, *, load_env_file: bool = True) -> "Settings":
        """Build settings from ``os.environ`` (after loading ``.env`` if asked)."""
        if load_env_file:
            load_dotenv()

        settings = cls(
            host=os.environ.get("HOST", cls.host),
            port=_env_int("PORT", cls.port),
            openai_api_key=os.environ.get("OPENAI_API_KEY", ""),
            realtime_url=os.environ.get("OPENAI_REALTIME_URL", cls.realtime_url),
            realtime_model=os.environ.get("OPENAI_REALTIME_MODEL", cls.realtime_model),
            api_base=os.environ.get("OPENAI_API_BASE", cls.api_base).rstrip("/"),
            chat_model=os.environ.get("OPENAI_CHAT_MODEL", cls.chat_model),
            tts_model=os.environ.get("OPENAI_TTS_MODEL", cls.tts_model),
            stt_model=os.environ.get("OPENAI_STT_MODEL", cls.stt_model),
            stt_language=os.environ.get("OPENAI_STT_LANGUAGE", ""),
            config_webhook_url=os.environ.get("N8N_CONFIG_WEBHOOK_URL", _DEFAULT_WEBHOOK_URL),
            automation_id=os.environ.get("AUTOMATION_ID", ""),
            automation_load_timeout=_env_float("AUTOMATION_LOAD_TIMEOUT", cls.automation_load_timeout),
            log_level=os.environ.get("LOG_LEVEL", cls.log_level),
            otel_exporter=os.environ.get("OTEL_EXPORTER", cls.otel_exporter),
            otel_endpoint=os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT", ""),
        )

        if not settings.openai_api_key:
            logger.warning("[Config] OPENAI_API_KEY is not set — upstream and HTTP pipeline calls will fail.")
        return settings
