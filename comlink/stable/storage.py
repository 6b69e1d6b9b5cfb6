"""Durable key/value storage for state that must survive a restart.

Storage holds everything that is not part of the ordered message
stream: conversation and replica identity, membership snapshots,
checkpoints and the mask state. It offers one-key-at-a-time
get/put/delete; a successful put must survive a process kill on
disk-backed implementations.
"""

from __future__ import annotations

import abc
import re
from types import TracebackType

_KEY_PATTERN = re.compile(r"[A-Za-z0-9_.-]{1,255}")


class StorageError(Exception):
    """Base class for storage failures."""


class NotFoundError(StorageError):
    """No value is stored under the requested key."""


class InvalidKeyError(StorageError):
    """The key violates the permitted key syntax."""


class StorageClosedError(StorageError):
    """The storage has been closed."""


def valid_key(key: str) -> bool:
    """Report whether key is permitted.

    Keys are 1 to 255 characters from ``[A-Za-z0-9_.-]`` so that
    file-backed implementations can use them directly as file names.
    """
    return _KEY_PATTERN.fullmatch(key) is not None


def check_key(key: str) -> None:
    """Raise InvalidKeyError unless key is permitted."""
    if not valid_key(key):
        raise InvalidKeyError(f"stable: invalid key {key!r}")


class Storage(abc.ABC):
    """A durable key/value store, safe for concurrent use."""

    @abc.abstractmethod
    def get(self, key: str) -> bytes:
        """Return the value under key; raise NotFoundError if absent."""

    @abc.abstractmethod
    def put(self, key: str, value: bytes) -> None:
        """Atomically and durably store value under key."""

    @abc.abstractmethod
    def delete(self, key: str) -> None:
        """Remove key; raise NotFoundError if no value was present."""

    @abc.abstractmethod
    def close(self) -> None:
        """Release resources; later calls raise StorageClosedError."""

    def __enter__(self) -> "Storage":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()