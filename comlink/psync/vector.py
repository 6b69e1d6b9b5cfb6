"""Vector clocks indexed by insertion-order membership slot.

``v[i]`` is the highest sequence number from the i-th participant that
the bearing message causally depends on; the sender's own slot holds its
monotonic sequence number.

Comparison helpers accept vectors of different lengths and treat the
shorter one as padded with zeros at the end, because new membership
slots are always appended.
"""

from __future__ import annotations

from collections.abc import Sequence
from itertools import zip_longest

Vector = list


def _pairs(a: Sequence[int], b: Sequence[int]):
    return zip_longest(a, b, fillvalue=0)


def format_vector(v: Sequence[int]) -> str:
    """Render v compactly, e.g. ``[1 0 3]``."""
    return "[" + " ".join(str(x) for x in v) + "]"


def equal(a: Sequence[int], b: Sequence[int]) -> bool:
    """Report whether a and b are equal under zero padding."""
    return all(x == y for x, y in _pairs(a, b))


def dominates(a: Sequence[int], b: Sequence[int]) -> bool:
    """Report whether a >= b in every slot and > b in at least one."""
    strictly = False
    for x, y in _pairs(a, b):
        if x < y:
            return False
        if x > y:
            strictly = True
    return strictly


def happens_before(a: Sequence[int], b: Sequence[int]) -> bool:
    """Report whether a causally precedes b."""
    return dominates(b, a)


def concurrent(a: Sequence[int], b: Sequence[int]) -> bool:
    """Report whether a and b are causally independent and not equal."""
    return not dominates(a, b) and not dominates(b, a) and not equal(a, b)


def maximum(a: Sequence[int], b: Sequence[int]) -> list[int]:
    """Return the component-wise maximum, as long as the longer input."""
    return [max(x, y) for x, y in _pairs(a, b)]


def increment(v: Sequence[int], slot: int) -> list[int]:
    """Return a copy of v with ``slot`` advanced by one.

    Raises IndexError if slot lies outside v.
    """
    if not 0 <= slot < len(v):
        raise IndexError(f"psync: increment slot {slot} out of range [0,{len(v)})")
    out = list(v)
    out[slot] += 1
    return out


def clone(v: Sequence[int]) -> list[int]:
    """Return an independent copy of v."""
    return list(v)