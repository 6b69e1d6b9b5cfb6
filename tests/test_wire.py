import pytest

from comlink.psync.wire import (
    ConversationID,
    Decoded,
    EmptyPsyncMessageError,
    Envelope,
    MaskState,
    MessageID,
    ReplicaID,
    WireError,
    marshal_empty_message,
    marshal_envelope,
    marshal_lost_message_request,
    marshal_mask_state,
    marshal_restart_ack,
    marshal_restart_message,
    unmarshal_mask_state,
    unmarshal_wire,
)


def r(tag: str) -> ReplicaID:
    return ReplicaID(tag.encode().ljust(16, b"\0"))


def test_roundtrip_envelope():
    env = Envelope(id=MessageID(sender=r("alice"), vector_clock=(1, 0)), payload=b"hello")
    got = unmarshal_wire(marshal_envelope(env))
    assert got.lost_message_request is None
    assert got.restart_message is None
    assert got.restart_ack is None
    assert got.envelope == env


def test_roundtrip_envelope_with_conversation_and_large_seq():
    env = Envelope(
        id=MessageID(
            conversation_id=ConversationID(b"conv".ljust(16, b"\0")),
            sender=r("bob"),
            vector_clock=(2**64 - 1, 0, 300),
        ),
        payload=b"\x00\xff",
    )
    assert unmarshal_wire(marshal_envelope(env)) == Decoded(envelope=env)


def test_roundtrip_lost_message_request():
    got = unmarshal_wire(marshal_lost_message_request(r("alice"), 42))
    assert got.envelope is None
    assert got.lost_message_request.missing_sender.value == r("alice").value
    assert got.lost_message_request.missing_seq == 42


def test_roundtrip_restart_message():
    got = unmarshal_wire(marshal_restart_message(r("alice")))
    assert got.restart_message is not None
    assert got.restart_message.restarter.value == r("alice").value


def test_roundtrip_restart_ack():
    leaves = [
        MessageID(sender=r("bob"), vector_clock=(1, 1)),
        MessageID(sender=r("carol"), vector_clock=(0, 0, 1)),
    ]
    got = unmarshal_wire(marshal_restart_ack(r("bob"), leaves))
    assert got.restart_ack is not None
    assert got.restart_ack.responder.value == r("bob").value
    assert len(got.restart_ack.leaves) == 2
    assert list(got.restart_ack.leaves) == leaves


def test_unmarshal_garbage():
    with pytest.raises(WireError) as info:
        unmarshal_wire(b"not a proto")
    assert not isinstance(info.value, EmptyPsyncMessageError)


def test_unmarshal_empty_psync_message():
    assert marshal_empty_message() == b""
    with pytest.raises(EmptyPsyncMessageError):
        unmarshal_wire(marshal_empty_message())


def test_unmarshal_truncated():
    data = marshal_envelope(Envelope(id=MessageID(sender=r("a"), vector_clock=(1,)), payload=b"xyz"))
    with pytest.raises(WireError):
        unmarshal_wire(data[:-1])


def test_negative_seq_cannot_be_encoded():
    with pytest.raises(WireError):
        marshal_lost_message_request(r("alice"), -1)


def test_mask_state_roundtrip():
    state = MaskState(masked_replicas=(b"alice", b"bob"))
    assert unmarshal_mask_state(marshal_mask_state(state)) == state


def test_empty_mask_state_roundtrip():
    assert unmarshal_mask_state(marshal_mask_state(MaskState())) == MaskState()