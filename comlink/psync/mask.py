"""The set of peer replicas whose messages are being ignored.

The mask is persisted to stable storage on every change so it survives a
process restart.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable

from comlink.psync.wire import MaskState, ReplicaID, marshal_mask_state, unmarshal_mask_state
from comlink.stable.storage import NotFoundError, Storage

MASK_STORAGE_KEY = "psync.mask"


class Mask:
    """Masked replicas, durably stored under one storage key.

    Safe for concurrent use.
    """

    def __init__(
        self,
        storage: Storage,
        key: str = MASK_STORAGE_KEY,
        masked: Iterable[bytes] = (),
    ) -> None:
        self._lock = threading.Lock()
        self._storage = storage
        self._key = key or MASK_STORAGE_KEY
        self._masked: set[bytes] = {bytes(v) for v in masked}

    def is_masked(self, replica: ReplicaID) -> bool:
        """Report whether replica is currently masked out."""
        with self._lock:
            return replica.value in self._masked

    def mask_out(self, replica: ReplicaID) -> None:
        """Mask replica and persist; masking twice is a no-op."""
        value = replica.value
        with self._lock:
            if value in self._masked:
                return
            self._masked.add(value)
            try:
                self._persist()
            except BaseException:
                self._masked.discard(value)
                raise

    def mask_in(self, replica: ReplicaID) -> None:
        """Unmask replica and persist; unmasking an unmasked replica is a no-op."""
        value = replica.value
        with self._lock:
            if value not in self._masked:
                return
            self._masked.discard(value)
            try:
                self._persist()
            except BaseException:
                self._masked.add(value)
                raise

    def masked_replicas(self) -> list[bytes]:
        """Return a sorted snapshot of the masked replica values."""
        with self._lock:
            return sorted(self._masked)

    def _persist(self) -> None:
        state = MaskState(masked_replicas=tuple(sorted(self._masked)))
        self._storage.put(self._key, marshal_mask_state(state))


def load_mask(storage: Storage, key: str = MASK_STORAGE_KEY) -> Mask:
    """Open a Mask stored at key, starting empty if nothing is stored yet."""
    if storage is None:
        raise ValueError("psync: load_mask: nil storage")
    key = key or MASK_STORAGE_KEY
    try:
        data = storage.get(key)
    except NotFoundError:
        return Mask(storage, key)
    state = unmarshal_mask_state(data)
    return Mask(storage, key, state.masked_replicas)