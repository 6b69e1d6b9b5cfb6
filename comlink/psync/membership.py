"""The ordered participant set of a conversation.

Slots follow insertion order: the original members in input order, then
each added member appended at the end. Vector clocks are indexed by slot,
so an older, shorter vector is a prefix of the current shape. Freezing a
slot stops accepting messages from that replica but keeps the slot in
place so existing vectors stay valid.
"""

from __future__ import annotations

from collections.abc import Iterable

from comlink.psync.wire import MessageID, ReplicaID


class MembershipError(Exception):
    """A membership operation was invalid."""


def _value(replica: ReplicaID | None) -> bytes:
    return replica.value if replica is not None else b""


class Membership:
    """Insertion-ordered replica slots with per-slot frozen flags.

    Not safe for concurrent mutation; the owner serializes access.
    """

    def __init__(self, replicas: Iterable[ReplicaID]) -> None:
        self._replicas: list[ReplicaID] = list(replicas)
        self._frozen: list[bool] = [False] * len(self._replicas)
        self._slot_index: dict[bytes, int] = {
            r.value: i for i, r in enumerate(self._replicas)
        }

    def __len__(self) -> int:
        return len(self._replicas)

    def _check_slot(self, slot: int) -> None:
        if not 0 <= slot < len(self._replicas):
            raise IndexError(f"psync: slot {slot} out of range [0,{len(self._replicas)})")

    def replica(self, slot: int) -> ReplicaID:
        """Return the replica at slot."""
        self._check_slot(slot)
        return self._replicas[slot]

    def is_frozen(self, slot: int) -> bool:
        """Report whether the slot is frozen."""
        self._check_slot(slot)
        return self._frozen[slot]

    def slot_of(self, replica: ReplicaID | None) -> int:
        """Return the slot of replica, or -1 if it is not a member."""
        return self._slot_index.get(_value(replica), -1)

    def add(self, replica: ReplicaID) -> int:
        """Append replica at a new slot and return that slot."""
        value = replica.value
        existing = self._slot_index.get(value)
        if existing is not None:
            raise MembershipError(
                f"psync: add: replica {value.hex()} already present at slot {existing}"
            )
        slot = len(self._replicas)
        self._replicas.append(replica)
        self._frozen.append(False)
        self._slot_index[value] = slot
        return slot

    def freeze(self, replica: ReplicaID) -> None:
        """Freeze replica's slot; it must be present and not yet frozen."""
        slot = self.slot_of(replica)
        if slot < 0:
            raise MembershipError(
                f"psync: freeze: replica {_value(replica).hex()} not in membership"
            )
        if self._frozen[slot]:
            raise MembershipError(
                f"psync: freeze: replica {_value(replica).hex()} already frozen at slot {slot}"
            )
        self._frozen[slot] = True

    def replicas(self) -> list[ReplicaID]:
        """Return the active (non-frozen) replicas in slot order."""
        return [r for r, frozen in zip(self._replicas, self._frozen) if not frozen]

    def all_replicas(self) -> list[ReplicaID]:
        """Return every slot's replica, frozen or not."""
        return list(self._replicas)

    def sender_seq(self, message_id: MessageID) -> int:
        """Return the sender's own sequence number from the vector clock."""
        slot = self.slot_of(message_id.sender)
        if slot < 0:
            raise MembershipError(
                f"psync: sender_seq: sender {_value(message_id.sender).hex()} not in membership"
            )
        clock = message_id.vector_clock
        if slot >= len(clock):
            raise MembershipError(
                f"psync: sender_seq: vector_clock has {len(clock)} entries; "
                f"sender slot {slot} out of range"
            )
        return clock[slot]