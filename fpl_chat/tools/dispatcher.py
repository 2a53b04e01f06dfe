"""Tool dispatch: route a named call to its handler and never raise."""

import asyncio
from collections.abc import Sequence
from typing import Any

import httpx
from pydantic import ValidationError

from fpl_chat.exceptions import FPLApiError
from fpl_chat.tools.base import error_result
from fpl_chat.tools.context import ToolContext
from fpl_chat.tools.registry import ToolsRegistry, get_tools_registry
from fpl_chat.utils.logging import get_logger

logger = get_logger(__name__)


class ToolDispatcher:
    """Executes tool calls against a registry.

    Every failure mode (unknown name, invalid input, upstream error, handler
    bug) is converted into an ``{"error": ...}`` result so that a single bad
    call never aborts the conversation turn.
    """

    def __init__(self, registry: ToolsRegistry | None = None):
        self.registry = registry or get_tools_registry()

    async def execute(self, name: str, tool_input: dict[str, Any] | None, context: ToolContext) -> Any:
        tool = self.registry.get_tool(name)
        if tool is None:
            logger.warning(f"Model requested unknown tool: {name}")
            return error_result(f"Unknown tool: {name}")

        try:
            params = tool.parse_input(tool_input or {})
        except ValidationError as e:
            details = "; ".join(
                f"{'.'.join(str(part) for part in err['loc']) or 'input'}: {err['msg']}" for err in e.errors()
            )
            logger.info(f"Invalid input for {name}: {details}")
            return error_result(f"Invalid input for {name}: {details}")

        logger.debug(f"Executing tool {name} with {tool_input}")
        try:
            return await tool.handler(params, context)
        except (FPLApiError, httpx.HTTPError) as e:
            logger.warning(f"Tool {name} failed to reach the FPL API: {e}")
            return error_result(f"Failed to fetch data for {name}: {e}")
        except Exception as e:
            logger.error(f"Tool {name} raised an unexpected error: {e}", exc_info=True)
            return error_result(f"Tool {name} failed: {e}")

    async def execute_many(
        self, calls: Sequence[tuple[str, dict[str, Any] | None]], context: ToolContext
    ) -> list[Any]:
        """Run independent calls concurrently; results keep the order of ``calls``."""
        return list(await asyncio.gather(*(self.execute(name, tool_input, context) for name, tool_input in calls)))
