import os
from concurrent.futures import ThreadPoolExecutor

import pytest

from comlink.stable.file import FileStorage
from comlink.stable.storage import InvalidKeyError, NotFoundError, StorageClosedError


@pytest.fixture
def storage(tmp_path):
    s = FileStorage(tmp_path)
    yield s
    s.close()


def test_missing_key_returns_not_found(storage):
    with pytest.raises(NotFoundError):
        storage.get("absent")


def test_put_then_get_roundtrip(storage):
    storage.put("k1", b"hello-stable")
    assert storage.get("k1") == b"hello-stable"


def test_put_overwrites(storage):
    storage.put("k", b"v1")
    storage.put("k", b"v2")
    assert storage.get("k") == b"v2"


def test_delete_removes_key(storage):
    storage.put("k", b"v")
    storage.delete("k")
    with pytest.raises(NotFoundError):
        storage.get("k")


def test_delete_missing_returns_not_found(storage):
    with pytest.raises(NotFoundError):
        storage.delete("absent")


@pytest.mark.parametrize("key", ["", "has/slash", "has space", "a:b", "\x00" * 300])
def test_invalid_key_rejected(storage, key):
    with pytest.raises(InvalidKeyError):
        storage.put(key, b"v")
    with pytest.raises(InvalidKeyError):
        storage.get(key)
    with pytest.raises(InvalidKeyError):
        storage.delete(key)


def test_concurrent_writers_safe(storage):
    n = 25
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda i: storage.put(f"k{i}", f"v{i}".encode()), range(n)))
    for i in range(n):
        assert storage.get(f"k{i}") == f"v{i}".encode()


def test_returned_value_isolated_from_internal_state(storage):
    value = bytearray(b"immutable")
    storage.put("k", value)
    value[0] = ord("X")
    got = storage.get("k")
    assert got == b"immutable"
    mutable = bytearray(got)
    mutable[0] = ord("Y")
    assert storage.get("k") == b"immutable"


def test_file_persists_across_reopen(tmp_path):
    first = FileStorage(tmp_path)
    first.put("persistent", b"survives")
    first.close()

    second = FileStorage(tmp_path)
    try:
        assert second.get("persistent") == b"survives"
    finally:
        second.close()


def test_put_leaves_no_temporary_files(tmp_path):
    s = FileStorage(tmp_path)
    s.put("k", b"v1")
    s.put("k", b"v2")
    assert sorted(os.listdir(tmp_path)) == ["k"]
    s.close()


def test_creates_missing_directory(tmp_path):
    target = tmp_path / "nested" / "dir"
    s = FileStorage(target)
    s.put("k", b"v")
    assert (target / "k").read_bytes() == b"v"
    s.close()


def test_closed_storage_rejects_operations(tmp_path):
    s = FileStorage(tmp_path)
    s.put("k", b"v")
    s.close()
    with pytest.raises(StorageClosedError):
        s.get("k")
    with pytest.raises(StorageClosedError):
        s.put("k", b"v")
    with pytest.raises(StorageClosedError):
        s.delete("k")
    assert (tmp_path / "k").read_bytes() == b"v"