"""HTTP transport for the chat endpoint, used by the request controller."""

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx

from fpl_chat.exceptions import ChatTransportError
from fpl_chat.models.conversation import ChatRequest
from fpl_chat.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000"
CHAT_PATH = "/api/chat"


class ChatAPIClient:
    """Opens ``POST /api/chat`` and exposes the response body as a byte stream."""

    def __init__(self, base_url: str | None = None, http_client: httpx.AsyncClient | None = None):
        """Initialize chat transport.

        Args:
            base_url: Server root (defaults to FPL_CHAT_URL or localhost)
            http_client: Pre-built HTTP client, mainly for tests
        """
        self.base_url = base_url or os.getenv("FPL_CHAT_URL", DEFAULT_BASE_URL)
        # Streams stay open for the whole model turn, so no read timeout.
        self.http = http_client or httpx.AsyncClient(
            base_url=self.base_url, timeout=httpx.Timeout(10.0, read=None)
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    @asynccontextmanager
    async def stream_chat(self, request: ChatRequest) -> AsyncIterator[AsyncIterator[bytes]]:
        """Send a chat request and yield an iterator over the raw body chunks.

        Raises:
            ChatTransportError: If the server answers with a non-success status
        """
        async with self.http.stream("POST", CHAT_PATH, json=request.to_wire()) as response:
            if response.is_error:
                await response.aread()
                logger.warning(f"Chat endpoint returned {response.status_code}: {response.text[:200]}")
                raise ChatTransportError(f"HTTP error: {response.status_code}", status_code=response.status_code)
            yield response.aiter_bytes()
