"""In-process storage backed by a dictionary."""

from __future__ import annotations

import threading

from comlink.stable.storage import NotFoundError, Storage, StorageClosedError, check_key


class MemoryStorage(Storage):
    """A Storage that keeps values in memory only; useful for tests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._data: dict[str, bytes] = {}
        self._closed = False

    def _ensure_open(self) -> None:
        if self._closed:
            raise StorageClosedError("stable: storage closed")

    def get(self, key: str) -> bytes:
        check_key(key)
        with self._lock:
            self._ensure_open()
            try:
                return self._data[key]
            except KeyError:
                raise NotFoundError(f"stable: key not found: {key}") from None

    def put(self, key: str, value: bytes) -> None:
        check_key(key)
        with self._lock:
            self._ensure_open()
            self._data[key] = bytes(value)

    def delete(self, key: str) -> None:
        check_key(key)
        with self._lock:
            self._ensure_open()
            try:
                del self._data[key]
            except KeyError:
                raise NotFoundError(f"stable: key not found: {key}") from None

    def close(self) -> None:
        with self._lock:
            self._data = {}
            self._closed = True