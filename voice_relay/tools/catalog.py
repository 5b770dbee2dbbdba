"""Static tool capability catalog for the realtime session.

Each entry is a function definition in the shape the realtime ``session.update``
event expects (``type``, ``name``, ``description``, ``parameters``). The catalog
is read-only at runtime: automation configs select tools from it by name.
"""

from __future__ import annotations

import copy
import logging
from types import MappingProxyType
from typing import Any, Iterable, Mapping

logger = logging.getLogger(__name__)


def _function(name: str, description: str, properties: dict[str, Any], required: list[str]) -> dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "description": description,
        "parameters": {
            "type": "object",
            "properties": properties,
            "required": required,
        },
    }


TOOL_DEFINITIONS: Mapping[str, Mapping[str, Any]] = MappingProxyType({
    "calendar": _function(
        "calendar",
        "Manage the calendar: create, read, update and delete events.",
        {
            "action": {
                "type": "string",
                "enum": ["create", "read", "update", "delete"],
                "description": "Calendar action to perform.",
            },
            "title": {"type": "string", "description": "Event title."},
            "date": {"type": "string", "description": "Event date in ISO 8601 format."},
        },
        ["action"],
    ),
    "crm": _function(
        "crm",
        "Work with the CRM: look up clients, create and update client records.",
        {
            "action": {
                "type": "string",
                "enum": ["get_client", "create_client", "update_client", "search"],
                "description": "CRM action to perform.",
            },
            "client_id": {"type": "string", "description": "Client identifier."},
            "query": {"type": "string", "description": "Search query."},
        },
        ["action"],
    ),
    "weather": _function(
        "weather",
        "Get the weather for a city.",
        {
            "city": {"type": "string", "description": "City name."},
            "date": {"type": "string", "description": "Forecast date (optional)."},
        },
        ["city"],
    ),
})


def get_tool_definition(name: str) -> dict[str, Any] | None:
    """Return a private copy of the definition for *name*, or None if unknown."""
    definition = TOOL_DEFINITIONS.get(name)
    if definition is None:
        return None
    return copy.deepcopy(dict(definition))


def map_tools_to_definitions(names: Iterable[Any] | None) -> list[dict[str, Any]]:
    """Resolve tool *names* against the catalog, preserving order.

    Unknown or non-string names are skipped with a warning; duplicates are
    kept once. Never raises.
    """
    if not names:
        return []

    tools: list[dict[str, Any]] = []
    seen: set[str] = set()
    for name in names:
        if not isinstance(name, str):
            logger.warning("[Tools] Ignoring non-string tool entry %r in configuration", name)
            continue
        if name in seen:
            continue
        definition = get_tool_definition(name)
        if definition is None:
            logger.warning('[Tools] Unknown tool "%s" in configuration, skipping', name)
            continue
        seen.add(name)
        tools.append(definition)
    return tools
