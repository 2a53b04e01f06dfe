"""Persisted conversation history records."""

from datetime import datetime

from pydantic import BaseModel, Field

from fpl_chat.models.chat import Message, MessageRole

HISTORY_SCHEMA_VERSION = 1


class PersistedMessage(BaseModel):
    """A settled message as written to storage (no tool calls, no streaming flag)."""

    id: str
    role: MessageRole
    content: str
    timestamp: datetime
    thinking: str | None = None

    class Config:
        extra = "ignore"

    @classmethod
    def from_message(cls, message: Message) -> "PersistedMessage":
        """Strip the transient fields off a message."""
        return cls(
            id=message.id,
            role=message.role,
            content=message.content,
            timestamp=message.timestamp,
            thinking=message.thinking,
        )

    def to_message(self) -> Message:
        """Rebuild a settled message; tool calls are never restored."""
        return Message(
            id=self.id,
            role=self.role,
            content=self.content,
            timestamp=self.timestamp,
            thinking=self.thinking,
            tool_calls=[],
            is_streaming=False,
        )


class PersistedHistory(BaseModel):
    """The storage record for one conversation."""

    version: int
    updated_at: datetime = Field(alias="updatedAt")
    messages: list[PersistedMessage] = Field(default_factory=list)

    class Config:
        populate_by_name = True

    def to_json_bytes(self) -> bytes:
        """Encode the record exactly as it is written to storage."""
        return self.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")
