"""Key-value stores backing conversation history."""

import errno
import os
import re
from pathlib import Path
from typing import Protocol

from fpl_chat.exceptions import StorageError, StorageQuotaExceededError
from fpl_chat.utils.logging import get_logger

logger = get_logger(__name__)

QUOTA_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}
UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class KeyValueStore(Protocol):
    """Interface for the byte-oriented store used by the history store."""

    def get(self, key: str) -> bytes | None:
        """Return the stored value, or None if the key is absent."""
        ...

    def set(self, key: str, value: bytes) -> None:
        """Store a value.

        Raises:
            StorageQuotaExceededError: If the store is out of capacity
            StorageError: For any other write failure
        """
        ...

    def remove(self, key: str) -> None:
        """Delete a key; missing keys are ignored."""
        ...


class InMemoryKeyValueStore:
    """In-memory store with an optional total byte capacity."""

    def __init__(self, capacity_bytes: int | None = None):
        """Initialize the store.

        Args:
            capacity_bytes: Maximum total size of all values, unlimited if None
        """
        self.data: dict[str, bytes] = {}
        self.capacity_bytes = capacity_bytes

    def get(self, key: str) -> bytes | None:
        return self.data.get(key)

    def set(self, key: str, value: bytes) -> None:
        if self.capacity_bytes is not None:
            used = sum(len(v) for k, v in self.data.items() if k != key)
            if used + len(value) > self.capacity_bytes:
                raise StorageQuotaExceededError(
                    f"Writing {len(value)} bytes to {key} exceeds capacity of {self.capacity_bytes} bytes"
                )
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class FileKeyValueStore:
    """One file per key under a directory."""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory).expanduser()

    def _path(self, key: str) -> Path:
        return self.directory / f"{UNSAFE_KEY_CHARS.sub('_', key)}.json"

    def get(self, key: str) -> bytes | None:
        try:
            return self._path(key).read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {e}") from e

    def set(self, key: str, value: bytes) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(value)
            os.replace(tmp_path, path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            if e.errno in QUOTA_ERRNOS:
                raise StorageQuotaExceededError(f"No space left to write {key}: {e}") from e
            raise StorageError(f"Failed to write {key}: {e}") from e

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to remove {key}: {e}")
