"""LLM-related data models and types (provider-agnostic)."""

from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel


class TextBlock(BaseModel):
    """Text content block."""

    type: Literal["text"] = "text"
    text: str

    class Config:
        extra = "ignore"  # Ignore any additional fields from Anthropic


class ThinkingBlock(BaseModel):
    """Extended thinking block; must be echoed back unchanged on the next turn."""

    type: Literal["thinking"] = "thinking"
    thinking: str
    signature: str

    class Config:
        extra = "ignore"


class RedactedThinkingBlock(BaseModel):
    """Encrypted thinking block."""

    type: Literal["redacted_thinking"] = "redacted_thinking"
    data: str

    class Config:
        extra = "ignore"


class ToolUseBlock(BaseModel):
    """Tool use content block."""

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any]

    class Config:
        extra = "ignore"


class ToolResultBlock(BaseModel):
    """Tool result content block."""

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str
    is_error: bool = False

    class Config:
        extra = "ignore"


ContentBlock = TextBlock | ThinkingBlock | RedactedThinkingBlock | ToolUseBlock | ToolResultBlock


class LLMMessage(BaseModel):
    """A message for LLM conversation."""

    role: Literal["user", "assistant"]
    content: str | list[ContentBlock]


@dataclass
class LLMUsage:
    """Token usage accumulated over a chat request."""

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class LLMResponse:
    """Final content of one streamed model turn."""

    content: list[ContentBlock]
    stop_reason: str | None
    model: str
    usage: LLMUsage = field(default_factory=LLMUsage)

    @property
    def tool_uses(self) -> list[ToolUseBlock]:
        """Tool use blocks requested in this turn, in order."""
        return [block for block in self.content if isinstance(block, ToolUseBlock)]
