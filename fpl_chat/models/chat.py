"""Chat message, tool call and stream event models."""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Literal

from cuid2 import cuid_wrapper
from pydantic import BaseModel, Field

cuid = cuid_wrapper()

MessageRole = Literal["user", "assistant"]


class ToolCallStatus(StrEnum):
    """Lifecycle of a tool call inside an assistant message."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class StreamEventType(StrEnum):
    """Event kinds carried by the chat stream."""

    TEXT_DELTA = "text_delta"
    THINKING_DELTA = "thinking_delta"
    TOOL_USE_START = "tool_use_start"
    TOOL_USE_END = "tool_use_end"
    ERROR = "error"
    DONE = "done"


class ToolCall(BaseModel):
    """A tool invocation tracked on an assistant message."""

    id: str
    name: str
    input: dict[str, Any] = Field(default_factory=dict)
    result: Any = None
    error: str | None = None
    status: ToolCallStatus = ToolCallStatus.PENDING

    class Config:
        frozen = True


class Message(BaseModel):
    """A single chat message, possibly still streaming.

    Instances are never mutated; state transitions produce copies.
    """

    id: str = Field(default_factory=lambda: cuid())
    role: MessageRole
    content: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    thinking: str | None = None
    tool_calls: list[ToolCall] = Field(default_factory=list)
    is_streaming: bool = False

    class Config:
        frozen = True

    @classmethod
    def user(cls, content: str) -> "Message":
        """Create a settled user message."""
        return cls(role="user", content=content)

    @classmethod
    def assistant_placeholder(cls) -> "Message":
        """Create the empty streaming assistant message a send starts with."""
        return cls(role="assistant", is_streaming=True)

    @property
    def has_content(self) -> bool:
        """Whether anything has been streamed into this message yet."""
        return bool(self.content or self.thinking or self.tool_calls)


class ToolCallPayload(BaseModel):
    """Partial tool call carried by ``tool_use_start`` / ``tool_use_end`` events."""

    id: str
    name: str = ""
    input: dict[str, Any] | None = None
    result: Any = None
    error: str | None = None

    class Config:
        extra = "ignore"


class StreamEvent(BaseModel):
    """One protocol event, the unit framed on the wire as ``data: <json>``."""

    type: StreamEventType
    content: str | None = None
    tool_call: ToolCallPayload | None = Field(default=None, alias="toolCall")

    class Config:
        extra = "ignore"
        populate_by_name = True

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict using the wire field names, omitting unset fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def text(cls, content: str) -> "StreamEvent":
        return cls(type=StreamEventType.TEXT_DELTA, content=content)

    @classmethod
    def thinking(cls, content: str) -> "StreamEvent":
        return cls(type=StreamEventType.THINKING_DELTA, content=content)

    @classmethod
    def tool_start(cls, tool_id: str, name: str) -> "StreamEvent":
        return cls(type=StreamEventType.TOOL_USE_START, tool_call=ToolCallPayload(id=tool_id, name=name))

    @classmethod
    def tool_end(
        cls,
        tool_id: str,
        name: str,
        input: dict[str, Any] | None = None,
        result: Any = None,
        error: str | None = None,
    ) -> "StreamEvent":
        return cls(
            type=StreamEventType.TOOL_USE_END,
            tool_call=ToolCallPayload(id=tool_id, name=name, input=input, result=result, error=error),
        )

    @classmethod
    def failure(cls, content: str) -> "StreamEvent":
        return cls(type=StreamEventType.ERROR, content=content)

    @classmethod
    def done(cls) -> "StreamEvent":
        return cls(type=StreamEventType.DONE)
