"""The in-memory context graph of one conversation.

Each node is one envelope. Its parents are the immediate causal
predecessors derived from the envelope's vector clock: the sender's own
previous message, plus, for every other slot with a non-zero entry, the
message at that slot's sequence number. Envelopes whose predecessors are
not yet present are refused, and the caller is told which ones are
missing.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field

from comlink.psync.membership import Membership
from comlink.psync.wire import Envelope, ReplicaID


class GraphError(Exception):
    """An envelope could not be inserted into the graph."""


class MissingParentsError(GraphError):
    """Some causal predecessors are not in the graph yet.

    ``missing`` lists them; the envelope was not inserted.
    """

    def __init__(self, missing: Sequence["MissingParent"]) -> None:
        self.missing: list[MissingParent] = list(missing)
        super().__init__(f"psync: missing parents: {self.missing}")


class AlreadyPresentError(GraphError):
    """An envelope with the same sender and sequence is already present.

    ``node`` is the existing node.
    """

    def __init__(self, node: "Node") -> None:
        self.node = node
        super().__init__(
            f"psync: envelope already in graph (slot {node.sender_slot}, seq {node.sender_seq})"
        )


class UnknownSenderError(GraphError):
    """The envelope's sender is not in the membership view."""


class MalformedVectorError(GraphError):
    """The envelope's identity or vector clock is structurally invalid."""


@dataclass(eq=False)
class Node:
    """One envelope's record in the context graph."""

    envelope: Envelope
    sender_seq: int
    sender_slot: int
    wave: int
    parents: list["Node"] = field(default_factory=list, repr=False)
    children: list["Node"] = field(default_factory=list, repr=False)


@dataclass(frozen=True)
class MissingParent:
    """A causal predecessor the graph does not hold yet."""

    sender: ReplicaID
    seq: int


def _wave_of(clock: Sequence[int]) -> int:
    return max(clock, default=0)


class Graph:
    """The causal DAG of a single conversation.

    Not safe for concurrent use; the owner serializes access.
    """

    def __init__(self, membership: Membership) -> None:
        self._membership = membership
        self._by_sender: dict[bytes, dict[int, Node]] = {}
        self._by_wave: defaultdict[int, list[Node]] = defaultdict(list)
        self._count = 0

    @property
    def membership(self) -> Membership:
        """The membership view the graph was built against."""
        return self._membership

    def __len__(self) -> int:
        return self._count

    def has(self, sender: bytes, seq: int) -> bool:
        """Report whether the graph holds sender's message seq."""
        return self.lookup(sender, seq) is not None

    def lookup(self, sender: bytes, seq: int) -> Node | None:
        """Return the node for sender's message seq, or None."""
        return self._by_sender.get(bytes(sender), {}).get(seq)

    def insert(self, envelope: Envelope) -> Node:
        """Add envelope to the graph and return its node.

        Vectors shorter than the membership are padded with zeros.
        A longer vector comes from a future membership era; the
        sender's previous message is then reported as missing.

        Raises MissingParentsError, AlreadyPresentError,
        UnknownSenderError or MalformedVectorError; on any error the
        graph is unchanged.
        """
        message_id = envelope.id
        if message_id is None or message_id.sender is None:
            raise MalformedVectorError("psync: malformed vector clock: nil id or sender")
        sender = message_id.sender
        sender_slot = self._membership.slot_of(sender)
        if sender_slot < 0:
            raise UnknownSenderError(f"psync: sender not in membership: {sender.value.hex()}")
        clock = message_id.vector_clock
        members = len(self._membership)
        if sender_slot >= len(clock):
            raise MalformedVectorError(
                f"psync: malformed vector clock: sender slot {sender_slot} "
                f"not in vector_clock (len {len(clock)})"
            )
        sender_seq = clock[sender_slot]
        if sender_seq == 0:
            raise MalformedVectorError(
                "psync: malformed vector clock: sender's own slot must be > 0"
            )

        existing = self.lookup(sender.value, sender_seq)
        if existing is not None:
            raise AlreadyPresentError(existing)

        if len(clock) > members:
            if sender_seq <= 1:
                raise MalformedVectorError(
                    "psync: malformed vector clock: future-era message "
                    "with no derivable predecessor"
                )
            raise MissingParentsError([MissingParent(sender=sender, seq=sender_seq - 1)])

        parents: list[Node] = []
        missing: list[MissingParent] = []
        for slot in range(members):
            dep_seq = clock[slot] if slot < len(clock) else 0
            if slot == sender_slot:
                if sender_seq <= 1:
                    continue
                required = sender_seq - 1
            else:
                if dep_seq == 0:
                    continue
                required = dep_seq
            parent_replica = self._membership.replica(slot)
            parent = self.lookup(parent_replica.value, required)
            if parent is None:
                missing.append(MissingParent(sender=parent_replica, seq=required))
            else:
                parents.append(parent)
        if missing:
            raise MissingParentsError(missing)

        wave = _wave_of(clock)
        node = Node(
            envelope=envelope,
            sender_seq=sender_seq,
            sender_slot=sender_slot,
            wave=wave,
            parents=parents,
        )
        for parent in parents:
            parent.children.append(node)
        self._by_sender.setdefault(sender.value, {})[sender_seq] = node
        self._by_wave[wave].append(node)
        self._count += 1
        return node

    def messages_in_wave(self, wave: int) -> list[Node]:
        """Return the nodes belonging to wave."""
        return list(self._by_wave.get(wave, ()))

    def waves(self) -> list[int]:
        """Return the wave numbers present, ascending."""
        return sorted(w for w, nodes in self._by_wave.items() if nodes)

    def leaves(self) -> list[Node]:
        """Return the nodes that have no children."""
        return [
            node
            for by_seq in self._by_sender.values()
            for node in by_seq.values()
            if not node.children
        ]

    def latest_seq(self, sender: bytes) -> int:
        """Return the highest seq held from sender, or 0 if none."""
        return max(self._by_sender.get(bytes(sender), {}), default=0)