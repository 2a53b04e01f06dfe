"""Tools for the FPL chat assistant."""

from fpl_chat.tools.base import ToolDefinition, error_result
from fpl_chat.tools.context import ToolContext, create_tool_context
from fpl_chat.tools.dispatcher import ToolDispatcher
from fpl_chat.tools.registry import ToolsRegistry, get_tools_registry

__all__ = [
    "ToolContext",
    "ToolDefinition",
    "ToolDispatcher",
    "ToolsRegistry",
    "create_tool_context",
    "error_result",
    "get_tools_registry",
]
