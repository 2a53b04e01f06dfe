"""Data models for the chat assistant."""

from fpl_chat.models.chat import (
    Message,
    StreamEvent,
    StreamEventType,
    ToolCall,
    ToolCallPayload,
    ToolCallStatus,
)

__all__ = [
    "Message",
    "StreamEvent",
    "StreamEventType",
    "ToolCall",
    "ToolCallPayload",
    "ToolCallStatus",
]
