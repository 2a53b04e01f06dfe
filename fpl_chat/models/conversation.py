"""Request and response models for the HTTP API."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


class ChatRequestMessage(BaseModel):
    """Role and content of one prior message sent to the chat endpoint."""

    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """Body of ``POST /api/chat``."""

    messages: list[ChatRequestMessage]
    manager_id: int | None = Field(default=None, alias="managerId")
    show_thinking: bool | None = Field(default=None, alias="showThinking")
    api_key: str | None = Field(default=None, alias="apiKey")

    class Config:
        populate_by_name = True

    def to_wire(self) -> dict[str, Any]:
        """JSON body using the wire field names, omitting unset options."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ErrorResponse(BaseModel):
    """Error body returned before a stream is opened."""

    error: str
    code: str
    details: list[dict[str, Any]] | None = None


class ToolDefinitionResponse(BaseModel):
    """One entry of the tool catalogue exposed to the model."""

    name: str
    description: str
    input_schema: dict[str, Any]


class ToolCatalogResponse(BaseModel):
    """Response model for the tool catalogue endpoint."""

    tools: list[ToolDefinitionResponse]


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: datetime
    version: str
