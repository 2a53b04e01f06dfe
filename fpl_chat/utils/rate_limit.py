"""Moving-window rate limiting for the chat endpoint."""

import os
import time

from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter

from fpl_chat.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CHAT_RATE_LIMIT = "10/minute"


class RequestRateLimiter:
    """Per-client request limiter backed by the limits library."""

    def __init__(self, limit: str | None = None, namespace: str = "chat"):
        """Initialize rate limiter.

        Args:
            limit: Rate limit string such as ``"10/minute"``
                (defaults to the CHAT_RATE_LIMIT env var)
            namespace: Prefix separating this limiter's counters from others
        """
        self.storage = MemoryStorage()
        self.limiter = MovingWindowRateLimiter(self.storage)
        self.limit = parse(limit or os.getenv("CHAT_RATE_LIMIT", DEFAULT_CHAT_RATE_LIMIT))
        self.namespace = namespace

    def hit(self, identifier: str) -> bool:
        """Record one request for ``identifier``; False when over the limit."""
        allowed = self.limiter.hit(self.limit, self.namespace, identifier)
        if not allowed:
            logger.warning(f"Rate limit exceeded for {self.namespace}:{identifier}")
        return allowed

    def retry_after(self, identifier: str) -> int:
        """Seconds until the window for ``identifier`` frees a slot."""
        stats = self.limiter.get_window_stats(self.limit, self.namespace, identifier)
        return max(1, int(stats.reset_time - time.time()))

    def reset(self) -> None:
        """Forget all recorded hits."""
        self.storage.reset()


_chat_rate_limiter: RequestRateLimiter | None = None


def get_chat_rate_limiter() -> RequestRateLimiter:
    """Get or create the chat endpoint rate limiter."""
    global _chat_rate_limiter
    if _chat_rate_limiter is None:
        _chat_rate_limiter = RequestRateLimiter()
    return _chat_rate_limiter
