# comlink

Building blocks for causal-order multicast between a set of replicas. The package has no runtime dependencies beyond the standard library.

## What is in it

- `comlink.psync.vector` has vector-clock helpers that work on plain sequences of integers. When two vectors differ in length, the shorter one is treated as if padded with zeros at the end.
  - `equal`, `dominates`, `happens_before` and `concurrent` compare two vectors.
  - `maximum` takes the component-wise maximum.
  - `increment` returns a copy with one slot advanced. It raises `IndexError` if the slot is out of range.
  - `clone` copies a vector, and `format_vector` renders one as `[1 0 3]`.
- `comlink.psync.membership.Membership` is the ordered participant set.
  - Slots follow insertion order, and `add` appends at the end.
  - `freeze` marks a slot inactive but keeps it in place.
  - `slot_of` returns `-1` for non-members.
  - `replicas` lists the active members and `all_replicas` lists every slot.
  - `sender_seq` reads the sender's own entry from a `MessageID`'s vector clock.
  - Invalid operations raise `MembershipError`.
- `comlink.psync.graph.Graph` is the in-memory context graph (a DAG).
  - `insert` works out an envelope's causal parents from its vector clock and returns its `Node`. Each `Node` has `envelope`, `sender_seq`, `sender_slot`, `wave`, `parents` and `children`.
  - If predecessors are absent, `insert` raises `MissingParentsError`, whose `missing` attribute lists `MissingParent(sender, seq)` entries.
  - `insert` can also raise `AlreadyPresentError` (with the existing `node`), `UnknownSenderError` or `MalformedVectorError`, all subclasses of `GraphError`.
  - A vector shorter than the membership is padded with zeros. For a longer vector, the sender's previous message is reported as missing.
  - `has`, `lookup`, `latest_seq`, `leaves`, `waves`, `messages_in_wave` and `len()` query the graph.
- `comlink.psync.stability` decides stability and wave completion.
  - A node is stable under `StandardChecker` (a `StabilityChecker`) when every other non-frozen participant's latest message acknowledges it.
  - `is_stable(graph, node)` applies the standard rule.
  - `stable_nodes(graph, checker)` lists stable nodes in wave order.
  - `wave_complete(graph, wave, checker)` is true when some node in the wave is stable.
  - The checker argument defaults to `StandardChecker`.
- `comlink.psync.mask` holds the set of masked-out replicas.
  - `load_mask(storage, key)` opens the set, starting empty if nothing is stored. The default key is `MASK_STORAGE_KEY` (`"psync.mask"`).
  - `Mask.mask_out` and `Mask.mask_in` persist on every change, and both do nothing when there is nothing to change. If persisting fails, the in-memory change is rolled back.
  - `Mask.masked_replicas` returns a sorted snapshot.
- `comlink.psync.wire` defines the message types and their protocol-buffer-style binary encoding.
  - The types are frozen dataclasses: `ReplicaID`, `ConversationID`, `MessageID`, `Envelope`, `LostMessageRequest`, `RestartMessage`, `RestartAck` and `MaskState`.
  - `marshal_envelope`, `marshal_lost_message_request`, `marshal_restart_message`, `marshal_restart_ack` and `marshal_empty_message` encode a message.
  - `unmarshal_wire` decodes one and returns a `Decoded` with exactly one body field set.
  - Undecodable input raises `WireError`. A message with no body raises `EmptyPsyncMessageError`.
  - `marshal_mask_state` and `unmarshal_mask_state` encode and decode the persisted mask.
- `comlink.stable` provides durable key/value storage behind the `Storage` interface: `get`, `put`, `delete` and `close`. It can also be used as a context manager.
  - Keys must match `[A-Za-z0-9_.-]{1,255}`. `valid_key` checks this, and a bad key raises `InvalidKeyError`.
  - A missing key raises `NotFoundError`, and a closed store raises `StorageClosedError`. Both are subclasses of `StorageError`.
  - `comlink.stable.memory.MemoryStorage` keeps values in a dictionary.
  - `comlink.stable.file.FileStorage(directory)` keeps one file per key. Writes go to a temporary file, which is fsynced and renamed into place, followed by a directory fsync.

## What it does not do

The package provides the data structures and encoding only. It has no running conversation object that sends and delivers messages. It also has no network transport, no append-only message log, and no driver for the lost-message or restart exchanges. `LostMessageRequest`, `RestartMessage` and `RestartAck` can be encoded and decoded, but nothing here sends or answers them. There is no command-line program.

## Install

```
pip install .
pip install ".[test]"   # with pytest
```

## Example

```python
from comlink.psync.graph import Graph, MissingParentsError
from comlink.psync.membership import Membership
from comlink.psync.stability import is_stable
from comlink.psync.wire import Envelope, MessageID, ReplicaID

alice, bob = ReplicaID(b"alice"), ReplicaID(b"bob")
graph = Graph(Membership([alice, bob]))

a1 = graph.insert(Envelope(MessageID(sender=alice, vector_clock=[1, 0])))
assert not is_stable(graph, a1)

graph.insert(Envelope(MessageID(sender=bob, vector_clock=[1, 1])))
assert is_stable(graph, a1)

try:
    graph.insert(Envelope(MessageID(sender=alice, vector_clock=[3, 1])))
except MissingParentsError as err:
    print(err.missing)  # alice's seq 2 is not yet known
```

Encoding a message for transport:

```python
from comlink.psync.wire import marshal_envelope, unmarshal_wire

data = marshal_envelope(Envelope(MessageID(sender=alice, vector_clock=[1, 0]), b"hello"))
assert unmarshal_wire(data).envelope.payload == b"hello"
```

Persisting the mask:

```python
from comlink.psync.mask import load_mask
from comlink.stable.file import FileStorage

with FileStorage("state") as storage:
    mask = load_mask(storage, "psync.mask")
    mask.mask_out(ReplicaID(b"carol"))
```

## Tests

```
pytest
```