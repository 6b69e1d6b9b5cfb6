"""Stability of context-graph nodes and wave completion.

A node is stable under the standard rule when every other active
participant has sent a message whose vector clock acknowledges the
node's sender at or past the node's sequence number.
"""

from __future__ import annotations

import abc

from comlink.psync.graph import Graph, Node
from comlink.psync.membership import Membership


class StabilityChecker(abc.ABC):
    """Decides whether a node is stable."""

    @abc.abstractmethod
    def is_stable(self, graph: Graph, node: Node | None) -> bool:
        """Report whether node is stable; depends only on graph and node."""


def _latest_vector_at_slot(graph: Graph, membership: Membership, slot: int):
    replica = membership.replica(slot)
    latest = graph.latest_seq(replica.value)
    if latest == 0:
        return None
    node = graph.lookup(replica.value, latest)
    if node is None or node.envelope.id is None:
        return None
    return node.envelope.id.vector_clock


class StandardChecker(StabilityChecker):
    """Stable once every active, non-sender participant has acknowledged."""

    def is_stable(self, graph: Graph, node: Node | None) -> bool:
        if node is None:
            return False
        membership = graph.membership
        for slot in range(len(membership)):
            if slot == node.sender_slot or membership.is_frozen(slot):
                continue
            latest = _latest_vector_at_slot(graph, membership, slot)
            if latest is None:
                return False
            acked = latest[node.sender_slot] if node.sender_slot < len(latest) else 0
            if acked < node.sender_seq:
                return False
        return True


def is_stable(graph: Graph, node: Node | None) -> bool:
    """Report whether node is stable under the standard rule."""
    return StandardChecker().is_stable(graph, node)


def stable_nodes(graph: Graph, checker: StabilityChecker | None = None) -> list[Node]:
    """Return every stable node, in ascending wave order."""
    checker = checker or StandardChecker()
    return [
        node
        for wave in graph.waves()
        for node in graph.messages_in_wave(wave)
        if checker.is_stable(graph, node)
    ]


def wave_complete(graph: Graph, wave: int, checker: StabilityChecker | None = None) -> bool:
    """Report whether some message in wave is stable."""
    checker = checker or StandardChecker()
    return any(checker.is_stable(graph, node) for node in graph.messages_in_wave(wave))