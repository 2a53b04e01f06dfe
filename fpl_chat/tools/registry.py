"""Tools registry for managing AI assistant tools."""

from typing import Any

from fpl_chat.exceptions import DuplicateToolError
from fpl_chat.tools.base import ToolDefinition
from fpl_chat.tools.fixtures import create_fixtures_tool, create_gameweek_info_tool
from fpl_chat.tools.league import create_league_analysis_tool
from fpl_chat.tools.players import (
    create_compare_players_tool,
    create_differentials_tool,
    create_player_details_tool,
    create_search_players_tool,
    create_watchlist_tool,
)
from fpl_chat.tools.recommendations import (
    create_captain_recommendations_tool,
    create_chip_advice_tool,
    create_price_changes_tool,
    create_transfer_recommendations_tool,
)
from fpl_chat.tools.squad import create_my_squad_tool


def create_default_tools() -> list[ToolDefinition]:
    """The FPL tool catalogue, in the order it is advertised to the model."""
    return [
        create_my_squad_tool(),
        create_search_players_tool(),
        create_player_details_tool(),
        create_compare_players_tool(),
        create_fixtures_tool(),
        create_captain_recommendations_tool(),
        create_transfer_recommendations_tool(),
        create_price_changes_tool(),
        create_chip_advice_tool(),
        create_gameweek_info_tool(),
        create_league_analysis_tool(),
        create_differentials_tool(),
        create_watchlist_tool(),
    ]


class ToolsRegistry:
    """Registry for managing AI assistant tools.

    Registration order is preserved; names are unique.
    """

    def __init__(self, tools: list[ToolDefinition] | None = None):
        """Initialize the registry with ``tools`` or the default FPL catalogue."""
        self._tools: dict[str, ToolDefinition] = {}
        for tool in create_default_tools() if tools is None else tools:
            self.register_tool(tool)

    def register_tool(self, tool: ToolDefinition) -> None:
        """Register a new tool in the registry."""
        if tool.name in self._tools:
            raise DuplicateToolError(tool.name)
        self._tools[tool.name] = tool

    def list_tools(self) -> list[ToolDefinition]:
        return list(self._tools.values())

    def get_tool_definitions(self) -> list[dict[str, Any]]:
        """Catalogue entries (name, description, input_schema) for the model."""
        return [tool.to_api() for tool in self._tools.values()]

    def get_tool(self, name: str) -> ToolDefinition | None:
        return self._tools.get(name)

    def get_tool_names(self) -> list[str]:
        """Get list of all registered tool names."""
        return list(self._tools.keys())

    def has_tool(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools


_tools_registry: ToolsRegistry | None = None


def get_tools_registry() -> ToolsRegistry:
    """Get or create tools registry instance."""
    global _tools_registry

    if _tools_registry is None:
        _tools_registry = ToolsRegistry()

    return _tools_registry
