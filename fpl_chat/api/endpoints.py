"""API endpoints for the FPL chat service."""

import json
import os
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError

from fpl_chat import __version__
from fpl_chat.models.conversation import (
    ChatRequest,
    ErrorResponse,
    HealthResponse,
    ToolCatalogResponse,
    ToolDefinitionResponse,
)
from fpl_chat.services.chat import ChatService, get_chat_service
from fpl_chat.streaming.encoder import encode_stream
from fpl_chat.tools.registry import ToolsRegistry, get_tools_registry
from fpl_chat.utils.logging import get_logger
from fpl_chat.utils.rate_limit import RequestRateLimiter, get_chat_rate_limiter

logger = get_logger(__name__)

router = APIRouter()

SSE_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive"}
API_KEY_MISSING_MESSAGE = "No API key configured. Please add your Anthropic API key using the 'API Key' button."


def _error_response(status_code: int, error: ErrorResponse, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error.model_dump(exclude_none=True), headers=headers)


@router.post("/api/chat", tags=["Chat"])
async def chat(
    request: Request,
    chat_service: ChatService = Depends(get_chat_service),
    rate_limiter: RequestRateLimiter = Depends(get_chat_rate_limiter),
):
    """Stream a tool-augmented chat response as ``text/event-stream``.

    Every frame is ``data: <StreamEvent JSON>`` followed by a blank line. The
    stream ends with a ``done`` event, or with a single ``error`` event when
    the request fails after the stream was opened.
    """
    client_id = request.client.host if request.client else "unknown"
    if not rate_limiter.hit(client_id):
        return _error_response(
            429,
            ErrorResponse(error="Too many requests. Please try again later.", code="RATE_LIMITED"),
            headers={"Retry-After": str(rate_limiter.retry_after(client_id))},
        )

    try:
        chat_request = ChatRequest.model_validate(await request.json())
    except ValidationError as e:
        logger.info(f"Rejected chat request from {client_id}: {e.error_count()} validation errors")
        return _error_response(
            400,
            ErrorResponse(error="Invalid request", code="INVALID_REQUEST", details=json.loads(e.json(include_url=False))),
        )
    except ValueError as e:
        logger.info(f"Rejected chat request from {client_id}: body is not JSON ({e})")
        return _error_response(400, ErrorResponse(error="Invalid request", code="INVALID_REQUEST"))

    api_key = chat_request.api_key or os.getenv("ANTHROPIC_API_KEY")
    if not api_key:
        return _error_response(401, ErrorResponse(error=API_KEY_MISSING_MESSAGE, code="API_KEY_MISSING"))

    try:
        chat_service.validate_request(chat_request, api_key)
    except ValueError as e:
        logger.warning(f"Message validation error for {client_id}: {e}")
        return _error_response(400, ErrorResponse(error=str(e), code="INVALID_REQUEST"))

    logger.info(
        f"Chat request from {client_id}: {len(chat_request.messages)} messages, "
        f"manager connected: {chat_request.manager_id is not None}"
    )
    return StreamingResponse(
        encode_stream(chat_service.stream_chat(chat_request, api_key)),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/api/tools", response_model=ToolCatalogResponse, tags=["Chat"])
async def list_tools(registry: ToolsRegistry = Depends(get_tools_registry)) -> ToolCatalogResponse:
    """Tool catalogue advertised to the model, in registry order."""
    return ToolCatalogResponse(
        tools=[ToolDefinitionResponse(**definition) for definition in registry.get_tool_definitions()]
    )


@router.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(UTC),
        version=__version__,
    )
