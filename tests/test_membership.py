import pytest

from comlink.psync.membership import Membership, MembershipError
from comlink.psync.wire import MessageID, ReplicaID


def r(tag: str) -> ReplicaID:
    return ReplicaID(tag.encode().ljust(16, b"\0"))


def test_new_membership_preserves_insertion_order():
    m = Membership([r("zoe"), r("alice"), r("bob"), r("carol")])
    for slot, name in enumerate(["zoe", "alice", "bob", "carol"]):
        assert m.replica(slot).value.startswith(name.encode())
    assert len(m) == 4


@pytest.mark.parametrize("tag,want", [("alice", 0), ("bob", 1), ("carol", 2), ("ghost", -1)])
def test_slot_of(tag, want):
    m = Membership([r("alice"), r("bob"), r("carol")])
    assert m.slot_of(r(tag)) == want


def test_add_appends_at_end():
    m = Membership([r("alice"), r("carol")])
    assert m.add(r("bob")) == 2
    assert len(m) == 3
    assert m.slot_of(r("alice")) == 0
    assert m.slot_of(r("carol")) == 1
    assert m.slot_of(r("bob")) == 2


def test_add_rejects_duplicate():
    m = Membership([r("alice")])
    with pytest.raises(MembershipError):
        m.add(r("alice"))
    assert len(m) == 1


def test_freeze_marks_slot():
    m = Membership([r("alice"), r("bob"), r("carol")])
    m.freeze(r("bob"))
    assert m.is_frozen(1)
    assert m.slot_of(r("carol")) == 2
    active = m.replicas()
    assert len(active) == 2
    assert all(not rep.value.startswith(b"bob") for rep in active)
    assert len(m.all_replicas()) == 3


def test_freeze_rejects_unknown():
    m = Membership([r("alice")])
    with pytest.raises(MembershipError):
        m.freeze(r("ghost"))


def test_freeze_rejects_already_frozen():
    m = Membership([r("alice"), r("bob")])
    m.freeze(r("alice"))
    with pytest.raises(MembershipError):
        m.freeze(r("alice"))


def test_sender_seq():
    m = Membership([r("alice"), r("bob"), r("carol")])
    assert m.sender_seq(MessageID(sender=r("bob"), vector_clock=(2, 5, 1))) == 5


def test_sender_seq_unknown_sender():
    m = Membership([r("alice")])
    with pytest.raises(MembershipError):
        m.sender_seq(MessageID(sender=r("ghost"), vector_clock=(1,)))


def test_sender_seq_vector_too_short():
    m = Membership([r("alice"), r("bob"), r("carol")])
    with pytest.raises(MembershipError):
        m.sender_seq(MessageID(sender=r("carol"), vector_clock=(1, 2)))


def test_add_does_not_shift_existing_slots():
    m = Membership([r("a"), r("c")])
    assert m.slot_of(r("c")) == 1
    m.add(r("b"))
    assert m.slot_of(r("c")) == 1
    assert m.slot_of(r("b")) == 2


def test_replica_out_of_range():
    m = Membership([r("alice")])
    with pytest.raises(IndexError):
        m.replica(-1)
    with pytest.raises(IndexError):
        m.is_frozen(1)


def test_input_list_not_mutated_by_add():
    members = [r("alice")]
    m = Membership(members)
    m.add(r("bob"))
    assert members == [r("alice")]
    assert m.all_replicas() == [r("alice"), r("bob")]