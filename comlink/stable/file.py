"""Storage backed by one file per key in a directory."""

from __future__ import annotations

import contextlib
import os
import tempfile
import threading

from comlink.stable.storage import NotFoundError, Storage, StorageClosedError, check_key


def _sync_directory(path: str) -> None:
    # Directory fsync makes renames and unlinks durable; Windows cannot
    # open a directory as a file descriptor.
    if os.name == "nt":
        return
    fd = os.open(path, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


class FileStorage(Storage):
    """A Storage keeping each key in its own file.

    Writes go to a temporary file that is fsynced and renamed over the
    target, followed by a directory fsync, so updates are atomic and
    durable.
    """

    def __init__(self, directory: str | os.PathLike[str]) -> None:
        self._directory = os.fspath(directory)
        os.makedirs(self._directory, mode=0o755, exist_ok=True)
        self._lock = threading.Lock()
        self._closed = False

    @property
    def directory(self) -> str:
        """The directory holding the files."""
        return self._directory

    def _path(self, key: str) -> str:
        return os.path.join(self._directory, key)

    def _ensure_open(self) -> None:
        if self._closed:
            raise StorageClosedError("stable: storage closed")

    def get(self, key: str) -> bytes:
        check_key(key)
        with self._lock:
            self._ensure_open()
            try:
                with open(self._path(key), "rb") as fh:
                    return fh.read()
            except FileNotFoundError:
                raise NotFoundError(f"stable: key not found: {key}") from None

    def put(self, key: str, value: bytes) -> None:
        check_key(key)
        with self._lock:
            self._ensure_open()
            fd, tmp_name = tempfile.mkstemp(prefix=key + ".tmp-", dir=self._directory)
            try:
                with os.fdopen(fd, "wb") as fh:
                    fh.write(bytes(value))
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp_name, self._path(key))
            except BaseException:
                with contextlib.suppress(FileNotFoundError):
                    os.remove(tmp_name)
                raise
            _sync_directory(self._directory)

    def delete(self, key: str) -> None:
        check_key(key)
        with self._lock:
            self._ensure_open()
            try:
                os.remove(self._path(key))
            except FileNotFoundError:
                raise NotFoundError(f"stable: key not found: {key}") from None
            _sync_directory(self._directory)

    def close(self) -> None:
        """Mark the storage closed; files stay on disk."""
        with self._lock:
            self._closed = True