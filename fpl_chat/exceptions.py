"""Exception hierarchy for the chat assistant.

Tool failures are never raised across the dispatcher boundary; they are
returned as ``{"error": ...}`` payloads. The exceptions below cover startup
errors, storage and transport failures.
"""


class FPLChatError(Exception):
    """Base exception for all chat assistant errors."""


class DuplicateToolError(FPLChatError):
    """Raised when two tools are registered under the same name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Tool already registered: {name}")


class StorageError(FPLChatError):
    """Errors from the key-value store backing conversation history."""


class StorageQuotaExceededError(StorageError):
    """The key-value store refused a write because it is out of capacity."""


class ChatTransportError(FPLChatError):
    """The chat endpoint answered with a non-success status or no body."""

    def __init__(self, message: str, *, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class FPLApiError(FPLChatError):
    """Non-success response from the Fantasy Premier League API."""

    def __init__(self, message: str, *, status_code: int, endpoint: str):
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)
