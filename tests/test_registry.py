"""Tests for the tools registry and tool definitions."""

import pytest
from pydantic import BaseModel, Field

from fpl_chat.exceptions import DuplicateToolError
from fpl_chat.tools.base import ToolDefinition, error_result, is_error_result
from fpl_chat.tools.registry import ToolsRegistry

EXPECTED_ORDER = [
    "get_my_squad",
    "search_players",
    "get_player_details",
    "compare_players",
    "get_fixtures",
    "get_captain_recommendations",
    "get_transfer_recommendations",
    "get_price_changes",
    "get_chip_advice",
    "get_gameweek_info",
    "get_league_analysis",
    "get_differentials",
    "get_watchlist",
]


class EchoInput(BaseModel):
    text: str = Field(..., description="Text to echo")


async def echo(params: EchoInput, context) -> str:
    return params.text


def echo_tool(name: str = "echo") -> ToolDefinition:
    return ToolDefinition(name=name, description="Echo text", input_schema_class=EchoInput, handler=echo)


class TestRegistry:
    """Tests for registration and lookup."""

    def test_default_catalogue_order(self):
        """Test that the default tools are listed in registration order."""
        registry = ToolsRegistry()
        assert registry.get_tool_names() == EXPECTED_ORDER
        assert [tool.name for tool in registry.list_tools()] == EXPECTED_ORDER

    def test_order_is_stable(self):
        """Test that listing twice gives the same order."""
        registry = ToolsRegistry()
        assert registry.get_tool_definitions() == registry.get_tool_definitions()

    def test_duplicate_registration_fails(self):
        """Test that registering a name twice raises."""
        registry = ToolsRegistry(tools=[echo_tool()])
        with pytest.raises(DuplicateToolError, match="echo"):
            registry.register_tool(echo_tool())

    def test_duplicate_in_constructor_fails(self):
        """Test that duplicates passed at construction also raise."""
        with pytest.raises(DuplicateToolError):
            ToolsRegistry(tools=[echo_tool(), echo_tool()])

    def test_custom_tools_replace_defaults(self):
        """Test that an explicit tool list is used instead of the defaults."""
        registry = ToolsRegistry(tools=[echo_tool()])
        assert registry.get_tool_names() == ["echo"]
        assert registry.has_tool("echo")
        assert not registry.has_tool("search_players")
        assert registry.get_tool("missing") is None


class TestToolSchemas:
    """Tests for the JSON catalogue shape sent to the model."""

    def test_definition_shape(self):
        """Test that each entry has name, description and an object input schema."""
        for definition in ToolsRegistry().get_tool_definitions():
            assert set(definition) == {"name", "description", "input_schema"}
            assert definition["input_schema"]["type"] == "object"
            assert isinstance(definition["input_schema"]["properties"], dict)

    def test_required_fields_listed(self):
        """Test that required inputs appear in required and optional ones do not."""
        definitions = {d["name"]: d for d in ToolsRegistry().get_tool_definitions()}

        assert definitions["compare_players"]["input_schema"]["required"] == ["player_names"]
        assert definitions["get_league_analysis"]["input_schema"]["required"] == ["league_id"]
        assert "required" not in definitions["search_players"]["input_schema"]

    def test_optional_fields_collapse_to_plain_types(self):
        """Test that optional fields are described without null unions or titles."""
        definitions = {d["name"]: d for d in ToolsRegistry().get_tool_definitions()}
        properties = definitions["search_players"]["input_schema"]["properties"]

        assert properties["query"] == {
            "type": "string",
            "description": "Player name to search for (partial match supported)",
        }
        assert properties["position"]["enum"] == ["GKP", "DEF", "MID", "FWD"]
        assert properties["limit"]["type"] == "integer"
        assert "anyOf" not in properties["min_price"]

    def test_array_items_described(self):
        """Test that list inputs carry an item type."""
        definitions = {d["name"]: d for d in ToolsRegistry().get_tool_definitions()}
        player_names = definitions["compare_players"]["input_schema"]["properties"]["player_names"]
        assert player_names["type"] == "array"
        assert player_names["items"] == {"type": "string"}

    def test_chip_enum(self):
        """Test that the chip advice tool lists every chip."""
        definitions = {d["name"]: d for d in ToolsRegistry().get_tool_definitions()}
        chip = definitions["get_chip_advice"]["input_schema"]["properties"]["chip"]
        assert chip["enum"] == ["wildcard", "freehit", "bboost", "3xc"]


class TestErrorResults:
    """Tests for the structured error payload."""

    def test_error_result_shape(self):
        """Test that errors are a single-key dict."""
        assert error_result("nope") == {"error": "nope"}

    def test_is_error_result(self):
        """Test that only single-key error dicts count as errors."""
        assert is_error_result({"error": "x"})
        assert not is_error_result({"error": "x", "data": 1})
        assert not is_error_result([{"error": "x"}])
        assert not is_error_result(None)
