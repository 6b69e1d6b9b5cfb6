"""Wire messages exchanged between Psync replicas and their binary encoding.

Every transport payload is a single PsyncMessage. Its body is exactly one
of an Envelope, a LostMessageRequest, a RestartMessage or a RestartAck.
The encoding is the protocol-buffer wire format: tagged fields with
varint and length-delimited values, with default values left out.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

_VARINT = 0
_FIXED64 = 1
_LEN = 2
_FIXED32 = 5

_UINT64_MAX = (1 << 64) - 1
_MAX_FIELD = (1 << 29) - 1

# PsyncMessage body fields.
_BODY_ENVELOPE = 1
_BODY_LOST = 2
_BODY_RESTART = 3
_BODY_RESTART_ACK = 4


class WireError(Exception):
    """A payload could not be encoded or decoded."""


class EmptyPsyncMessageError(WireError):
    """The payload decoded, but carries no body."""


@dataclass(frozen=True)
class ReplicaID:
    """Opaque identity of one replica."""

    value: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", bytes(self.value))


@dataclass(frozen=True)
class ConversationID:
    """Opaque identity of one conversation."""

    value: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", bytes(self.value))


@dataclass(frozen=True)
class MessageID:
    """Identity of a message: its conversation, sender and vector clock."""

    conversation_id: ConversationID | None = None
    sender: ReplicaID | None = None
    vector_clock: tuple[int, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "vector_clock", tuple(self.vector_clock))


@dataclass(frozen=True)
class Envelope:
    """An application payload together with its message identity."""

    id: MessageID | None = None
    payload: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "payload", bytes(self.payload))


@dataclass(frozen=True)
class LostMessageRequest:
    """Ask a peer to retransmit the sender's message with the given seq."""

    missing_sender: ReplicaID | None = None
    missing_seq: int = 0


@dataclass(frozen=True)
class RestartMessage:
    """Announces that a replica is rebuilding its state."""

    restarter: ReplicaID | None = None


@dataclass(frozen=True)
class RestartAck:
    """A peer's reply to a RestartMessage: its current leaf set."""

    responder: ReplicaID | None = None
    leaves: tuple[MessageID, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "leaves", tuple(self.leaves))


@dataclass(frozen=True)
class MaskState:
    """The persisted set of masked replica values."""

    masked_replicas: tuple[bytes, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "masked_replicas", tuple(bytes(r) for r in self.masked_replicas)
        )


@dataclass(frozen=True)
class Decoded:
    """The body of a decoded PsyncMessage; exactly one field is set."""

    envelope: Envelope | None = None
    lost_message_request: LostMessageRequest | None = None
    restart_message: RestartMessage | None = None
    restart_ack: RestartAck | None = None


# ─── encoding ─────────────────────────────────────────────────────


def _varint(n: int) -> bytes:
    if n < 0 or n > _UINT64_MAX:
        raise WireError(f"psync: value {n} does not fit in an unsigned 64-bit varint")
    out = bytearray()
    while True:
        low = n & 0x7F
        n >>= 7
        if n:
            out.append(low | 0x80)
        else:
            out.append(low)
            return bytes(out)


def _tag(number: int, wire_type: int) -> bytes:
    return _varint((number << 3) | wire_type)


def _len_field(number: int, data: bytes) -> bytes:
    return _tag(number, _LEN) + _varint(len(data)) + data


def _bytes_field(number: int, data: bytes) -> bytes:
    return _len_field(number, data) if data else b""


def _uint_field(number: int, value: int) -> bytes:
    if value == 0:
        return b""
    return _tag(number, _VARINT) + _varint(value)


def _packed_field(number: int, values: Iterable[int]) -> bytes:
    body = b"".join(_varint(v) for v in values)
    return _len_field(number, body) if body else b""


def _encode_replica(replica: ReplicaID) -> bytes:
    return _bytes_field(1, replica.value)


def _encode_conversation(conversation: ConversationID) -> bytes:
    return _bytes_field(1, conversation.value)


def _encode_message_id(message_id: MessageID) -> bytes:
    parts = []
    if message_id.conversation_id is not None:
        parts.append(_len_field(1, _encode_conversation(message_id.conversation_id)))
    if message_id.sender is not None:
        parts.append(_len_field(2, _encode_replica(message_id.sender)))
    parts.append(_packed_field(3, message_id.vector_clock))
    return b"".join(parts)


def _encode_envelope(envelope: Envelope) -> bytes:
    parts = []
    if envelope.id is not None:
        parts.append(_len_field(1, _encode_message_id(envelope.id)))
    parts.append(_bytes_field(2, envelope.payload))
    return b"".join(parts)


def _encode_lost(request: LostMessageRequest) -> bytes:
    parts = []
    if request.missing_sender is not None:
        parts.append(_len_field(1, _encode_replica(request.missing_sender)))
    parts.append(_uint_field(2, request.missing_seq))
    return b"".join(parts)


def _encode_restart(message: RestartMessage) -> bytes:
    if message.restarter is None:
        return b""
    return _len_field(1, _encode_replica(message.restarter))


def _encode_restart_ack(ack: RestartAck) -> bytes:
    parts = []
    if ack.responder is not None:
        parts.append(_len_field(1, _encode_replica(ack.responder)))
    parts.extend(_len_field(2, _encode_message_id(leaf)) for leaf in ack.leaves)
    return b"".join(parts)


def marshal_envelope(envelope: Envelope) -> bytes:
    """Wrap envelope in a PsyncMessage and encode it for transport."""
    return _len_field(_BODY_ENVELOPE, _encode_envelope(envelope))


def marshal_lost_message_request(missing_sender: ReplicaID, missing_seq: int) -> bytes:
    """Encode a LostMessageRequest wrapped in a PsyncMessage."""
    request = LostMessageRequest(missing_sender=missing_sender, missing_seq=missing_seq)
    return _len_field(_BODY_LOST, _encode_lost(request))


def marshal_restart_message(restarter: ReplicaID) -> bytes:
    """Encode a RestartMessage wrapped in a PsyncMessage."""
    return _len_field(_BODY_RESTART, _encode_restart(RestartMessage(restarter=restarter)))


def marshal_restart_ack(responder: ReplicaID, leaves: Iterable[MessageID]) -> bytes:
    """Encode a RestartAck wrapped in a PsyncMessage."""
    ack = RestartAck(responder=responder, leaves=tuple(leaves))
    return _len_field(_BODY_RESTART_ACK, _encode_restart_ack(ack))


def marshal_empty_message() -> bytes:
    """Encode a PsyncMessage whose body is unset."""
    return b""


def marshal_mask_state(state: MaskState) -> bytes:
    """Encode a MaskState for stable storage."""
    return b"".join(_len_field(1, r) for r in state.masked_replicas)


# ─── decoding ─────────────────────────────────────────────────────


def _read_varint(data: bytes, pos: int) -> tuple[int, int]:
    result = 0
    shift = 0
    while True:
        if pos >= len(data):
            raise WireError("psync: truncated varint")
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            break
        shift += 7
        if shift >= 70:
            raise WireError("psync: varint too long")
    if result > _UINT64_MAX:
        raise WireError("psync: varint overflows 64 bits")
    return result, pos


def _fields(data: bytes) -> Iterator[tuple[int, int, int | bytes]]:
    pos = 0
    while pos < len(data):
        key, pos = _read_varint(data, pos)
        number, wire_type = key >> 3, key & 7
        if number == 0 or number > _MAX_FIELD:
            raise WireError(f"psync: invalid field number {number}")
        value: int | bytes
        if wire_type == _VARINT:
            value, pos = _read_varint(data, pos)
        elif wire_type in (_FIXED64, _FIXED32):
            width = 8 if wire_type == _FIXED64 else 4
            if pos + width > len(data):
                raise WireError("psync: truncated fixed-width field")
            value = int.from_bytes(data[pos : pos + width], "little")
            pos += width
        elif wire_type == _LEN:
            length, pos = _read_varint(data, pos)
            end = pos + length
            if end > len(data):
                raise WireError("psync: truncated length-delimited field")
            value = data[pos:end]
            pos = end
        else:
            raise WireError(f"psync: unsupported wire type {wire_type}")
        yield number, wire_type, value


def _expect(wire_type: int, wanted: int, number: int) -> None:
    if wire_type != wanted:
        raise WireError(f"psync: field {number} has wire type {wire_type}, want {wanted}")


def _decode_bytes_only(data: bytes) -> bytes:
    value = b""
    for number, wire_type, raw in _fields(data):
        if number == 1:
            _expect(wire_type, _LEN, number)
            value = bytes(raw)
    return value


def _decode_replica(data: bytes) -> ReplicaID:
    return ReplicaID(_decode_bytes_only(data))


def _decode_conversation(data: bytes) -> ConversationID:
    return ConversationID(_decode_bytes_only(data))


def _decode_packed(data: bytes) -> list[int]:
    out = []
    pos = 0
    while pos < len(data):
        value, pos = _read_varint(data, pos)
        out.append(value)
    return out


def _decode_message_id(data: bytes) -> MessageID:
    conversation = None
    sender = None
    clock: list[int] = []
    for number, wire_type, raw in _fields(data):
        if number == 1:
            _expect(wire_type, _LEN, number)
            conversation = _decode_conversation(raw)
        elif number == 2:
            _expect(wire_type, _LEN, number)
            sender = _decode_replica(raw)
        elif number == 3:
            if wire_type == _LEN:
                clock.extend(_decode_packed(raw))
            else:
                _expect(wire_type, _VARINT, number)
                clock.append(raw)
    return MessageID(conversation_id=conversation, sender=sender, vector_clock=tuple(clock))


def _decode_envelope(data: bytes) -> Envelope:
    message_id = None
    payload = b""
    for number, wire_type, raw in _fields(data):
        if number == 1:
            _expect(wire_type, _LEN, number)
            message_id = _decode_message_id(raw)
        elif number == 2:
            _expect(wire_type, _LEN, number)
            payload = bytes(raw)
    return Envelope(id=message_id, payload=payload)


def _decode_lost(data: bytes) -> LostMessageRequest:
    sender = None
    seq = 0
    for number, wire_type, raw in _fields(data):
        if number == 1:
            _expect(wire_type, _LEN, number)
            sender = _decode_replica(raw)
        elif number == 2:
            _expect(wire_type, _VARINT, number)
            seq = raw
    return LostMessageRequest(missing_sender=sender, missing_seq=seq)


def _decode_restart(data: bytes) -> RestartMessage:
    restarter = None
    for number, wire_type, raw in _fields(data):
        if number == 1:
            _expect(wire_type, _LEN, number)
            restarter = _decode_replica(raw)
    return RestartMessage(restarter=restarter)


def _decode_restart_ack(data: bytes) -> RestartAck:
    responder = None
    leaves = []
    for number, wire_type, raw in _fields(data):
        if number == 1:
            _expect(wire_type, _LEN, number)
            responder = _decode_replica(raw)
        elif number == 2:
            _expect(wire_type, _LEN, number)
            leaves.append(_decode_message_id(raw))
    return RestartAck(responder=responder, leaves=tuple(leaves))


_BODIES = {
    _BODY_ENVELOPE: ("envelope", _decode_envelope),
    _BODY_LOST: ("lost_message_request", _decode_lost),
    _BODY_RESTART: ("restart_message", _decode_restart),
    _BODY_RESTART_ACK: ("restart_ack", _decode_restart_ack),
}


def unmarshal_wire(data: bytes) -> Decoded:
    """Decode a transport payload into its PsyncMessage body.

    Raises WireError for undecodable input and EmptyPsyncMessageError
    when the message carries no body.
    """
    data = bytes(data)
    body: tuple[str, object] | None = None
    for number, wire_type, raw in _fields(data):
        entry = _BODIES.get(number)
        if entry is None:
            continue
        _expect(wire_type, _LEN, number)
        name, decode = entry
        body = (name, decode(raw))
    if body is None:
        raise EmptyPsyncMessageError("psync: empty PsyncMessage on wire")
    name, value = body
    return Decoded(**{name: value})


def unmarshal_mask_state(data: bytes) -> MaskState:
    """Decode a MaskState read from stable storage."""
    replicas = []
    for number, wire_type, raw in _fields(bytes(data)):
        if number == 1:
            _expect(wire_type, _LEN, number)
            replicas.append(bytes(raw))
    return MaskState(masked_replicas=tuple(replicas))