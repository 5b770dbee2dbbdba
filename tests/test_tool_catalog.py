"""Tests for the static tool capability catalog."""

import logging

from voice_relay.tools import TOOL_DEFINITIONS, get_tool_definition, map_tools_to_definitions


class TestToolCatalog:
    def test_catalog_entries_are_function_definitions(self):
        assert set(TOOL_DEFINITIONS) == {"calendar", "crm", "weather"}
        for name, definition in TOOL_DEFINITIONS.items():
            assert definition["type"] == "function"
            assert definition["name"] == name
            assert definition["parameters"]["type"] == "object"
            assert definition["parameters"]["required"]

    def test_returned_definition_is_a_private_copy(self):
        definition = get_tool_definition("weather")
        definition["parameters"]["properties"].clear()
        assert TOOL_DEFINITIONS["weather"]["parameters"]["properties"]

    def test_unknown_name(self):
        assert get_tool_definition("bogus") is None


class TestMapToolsToDefinitions:
    def test_order_preserved_and_duplicates_collapsed(self):
        tools = map_tools_to_definitions(["weather", "calendar", "weather"])
        assert [tool["name"] for tool in tools] == ["weather", "calendar"]

    def test_unknown_and_non_string_entries_skipped(self, caplog):
        caplog.set_level(logging.WARNING)
        tools = map_tools_to_definitions(["crm", "bogus", 42, None])
        assert [tool["name"] for tool in tools] == ["crm"]
        assert 'Unknown tool "bogus"' in caplog.text

    def test_empty_input(self):
        assert map_tools_to_definitions(None) == []
        assert map_tools_to_definitions([]) == []
