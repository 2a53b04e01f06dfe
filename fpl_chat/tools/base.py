"""Base types and definitions for tools."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

if TYPE_CHECKING:
    from fpl_chat.tools.context import ToolContext

ToolHandler = Callable[[Any, "ToolContext"], Awaitable[Any]]

SCHEMA_NOISE_KEYS = ("title", "default")


def error_result(message: str) -> dict[str, str]:
    """The structured payload every tool returns on failure."""
    return {"error": message}


def is_error_result(result: Any) -> bool:
    return isinstance(result, dict) and set(result) == {"error"}


def _clean_schema(node: Any) -> Any:
    """Strip pydantic bookkeeping and collapse ``X | None`` to ``X``."""
    if isinstance(node, list):
        return [_clean_schema(item) for item in node]
    if not isinstance(node, dict):
        return node

    any_of = node.get("anyOf")
    if any_of is not None:
        non_null = [option for option in any_of if option.get("type") != "null"]
        if len(non_null) == 1:
            merged = {**non_null[0], **{k: v for k, v in node.items() if k != "anyOf"}}
            return _clean_schema(merged)

    return {key: _clean_schema(value) for key, value in node.items() if key not in SCHEMA_NOISE_KEYS}


@dataclass(frozen=True)
class ToolDefinition:
    """Definition of a tool available to the AI assistant."""

    name: str
    description: str
    input_schema_class: type[BaseModel]
    handler: ToolHandler

    def get_json_schema(self) -> dict[str, Any]:
        """Input contract in the ``{type: object, properties, required?}`` shape."""
        schema = _clean_schema(self.input_schema_class.model_json_schema())
        result: dict[str, Any] = {"type": "object", "properties": schema.get("properties", {})}
        if schema.get("required"):
            result["required"] = schema["required"]
        return result

    def to_api(self) -> dict[str, Any]:
        """Catalogue entry sent to the model."""
        return {"name": self.name, "description": self.description, "input_schema": self.get_json_schema()}

    def parse_input(self, raw_input: dict[str, Any]) -> BaseModel:
        """Parse and validate tool input."""
        return self.input_schema_class.model_validate(raw_input)
