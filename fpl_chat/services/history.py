"""Bounded, quota-aware persistence of conversation history."""

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from fpl_chat.exceptions import StorageError, StorageQuotaExceededError
from fpl_chat.models.chat import Message
from fpl_chat.models.history import HISTORY_SCHEMA_VERSION, PersistedHistory, PersistedMessage
from fpl_chat.services.storage import KeyValueStore
from fpl_chat.utils.logging import get_logger

logger = get_logger(__name__)


def is_current_version(data: Any) -> bool:
    """Whether a decoded record carries exactly the current schema version."""
    version = data.get("version") if isinstance(data, dict) else None
    # JSON true and 1.0 compare equal to 1 but are not version 1
    return type(version) is int and version == HISTORY_SCHEMA_VERSION


@dataclass(frozen=True)
class HistoryConfig:
    """Limits applied when persisting a conversation."""

    key_prefix: str = "fpl-chat-history"
    max_messages: int = 100
    max_bytes: int = 500 * 1024
    quota_fallback_messages: int = 20


class HistoryStore:
    """Persists one conversation under one key of a key-value store.

    Only settled messages are written. Tool calls and streaming flags are
    never stored and are reset on load.
    """

    def __init__(self, storage: KeyValueStore, conversation_id: str = "default", config: HistoryConfig | None = None):
        """Initialize history store.

        Args:
            storage: Backing key-value store
            conversation_id: Conversation whose history this store owns
            config: Size limits and key prefix
        """
        self.storage = storage
        self.config = config or HistoryConfig()
        self.key = f"{self.config.key_prefix}:{conversation_id}"

    def load(self) -> list[Message]:
        """Return the stored messages, clearing the record if it is unusable."""
        try:
            raw = self.storage.get(self.key)
        except StorageError as e:
            logger.error(f"Error loading chat history: {e}")
            return []
        if not raw:
            return []

        try:
            data = json.loads(raw)
            if not is_current_version(data):
                logger.warning("Chat history version mismatch, clearing")
                self.clear()
                return []
            history = PersistedHistory.model_validate(data)
        except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as e:
            logger.error(f"Error loading chat history, clearing corrupted data: {e}")
            self.clear()
            return []

        return [message.to_message() for message in history.messages]

    def save(self, messages: list[Message]) -> bool:
        """Persist the settled tail of ``messages``; returns whether anything was written."""
        settled = [m for m in messages if not m.is_streaming][-self.config.max_messages :]

        try:
            self.storage.set(self.key, self._encode_within_budget(settled))
            return True
        except StorageQuotaExceededError:
            logger.warning("Storage quota exceeded, trimming chat history")
            return self._save_fallback(settled)
        except StorageError as e:
            logger.error(f"Error saving chat history: {e}")
            return False

    def clear(self) -> None:
        try:
            self.storage.remove(self.key)
        except StorageError as e:
            logger.error(f"Error clearing chat history: {e}")

    def exists(self) -> bool:
        """Whether a readable record with at least one message is stored."""
        try:
            raw = self.storage.get(self.key)
            if not raw:
                return False
            data = json.loads(raw)
            if not is_current_version(data):
                return False
            return len(PersistedHistory.model_validate(data).messages) > 0
        except (StorageError, json.JSONDecodeError, UnicodeDecodeError, ValidationError):
            return False

    def _encode(self, messages: list[Message]) -> bytes:
        return PersistedHistory(
            version=HISTORY_SCHEMA_VERSION,
            updated_at=datetime.now(UTC),
            messages=[PersistedMessage.from_message(m) for m in messages],
        ).to_json_bytes()

    def _encode_within_budget(self, messages: list[Message]) -> bytes:
        """Drop the oldest pairs until the encoded record fits ``max_bytes``."""
        encoded = self._encode(messages)
        if len(encoded) <= self.config.max_bytes:
            return encoded

        original_count = len(messages)
        while messages and len(encoded) > self.config.max_bytes:
            messages = messages[2:]
            encoded = self._encode(messages)

        logger.warning(
            f"Chat history over {self.config.max_bytes} bytes, trimmed from {original_count} "
            f"to {len(messages)} messages"
        )
        return encoded

    def _save_fallback(self, settled: list[Message]) -> bool:
        try:
            self.storage.set(self.key, self._encode(settled[-self.config.quota_fallback_messages :]))
            return True
        except StorageError as e:
            logger.error(f"Error trimming chat history, clearing: {e}")
            self.clear()
            return False
