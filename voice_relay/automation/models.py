"""AutomationConfig — per-deployment override of assistant behaviour.

The webhook returns a loosely-typed JSON document. Each field is validated on
its own: a malformed value is logged and replaced by ``None`` so the rest of
the document still applies.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictFloat,
    StrictInt,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
)

logger = logging.getLogger(__name__)


class AutomationConfig(BaseModel):
    """Immutable snapshot of the remote automation configuration."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    system_prompt: Optional[str] = Field(default=None, alias="systemPrompt")
    voice: Optional[str] = None
    # Strict: booleans and numeric strings are rejected, not coerced.
    speed: Optional[Union[StrictFloat, StrictInt]] = None
    tools: Optional[list[Any]] = None
    tool_choice: Optional[Any] = None
    turn_detection: Optional[str] = Field(default=None, alias="turnDetection")

    @field_validator("*", mode="wrap")
    @classmethod
    def _drop_invalid(cls, value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo) -> Any:
        try:
            return handler(value)
        except ValidationError:
            logger.warning("[Config] Ignoring invalid automation field %s=%r", info.field_name, value)
            return None

    @classmethod
    def from_payload(cls, payload: Any) -> "AutomationConfig | None":
        """Parse a webhook payload; anything but a JSON object yields None."""
        if not isinstance(payload, dict):
            logger.warning("[Config] Automation payload is not an object (%s) — ignoring.", type(payload).__name__)
            return None
        return cls.model_validate(payload)
