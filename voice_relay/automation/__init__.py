from voice_relay.automation.loader import AutomationConfigStore, fetch_automation_config
from voice_relay.automation.models import AutomationConfig
from voice_relay.automation.session_config import (
    DEFAULT_SESSION_CONFIG,
    SessionConfig,
    build_session_config,
)

__all__ = [
    "AutomationConfig",
    "AutomationConfigStore",
    "DEFAULT_SESSION_CONFIG",
    "SessionConfig",
    "build_session_config",
    "fetch_automation_config",
]
