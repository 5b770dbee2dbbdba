"""Tool capability catalog consumed by the session config builder."""

from voice_relay.tools.catalog import TOOL_DEFINITIONS, get_tool_definition, map_tools_to_definitions

__all__ = ["TOOL_DEFINITIONS", "get_tool_definition", "map_tools_to_definitions"]
