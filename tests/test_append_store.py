import os

import pytest

from aesdsocket.append_store import AppendStore, StoreWriteError


def test_store_is_created_on_first_append(store):
    assert not store.exists()
    with store.open_for_append() as f:
        store.append(f, b"hello\n")
    assert store.exists()
    assert store.read_all() == b"hello\n"


def test_appends_keep_arrival_order(store):
    for message in (b"one\n", b"two\n", b"\n", b"three\n"):
        with store.open_for_append() as f:
            store.append(f, message)
    assert store.read_all() == b"one\ntwo\n\nthree\n"


def test_iter_chunks_respects_chunk_size(data_file):
    store = AppendStore(data_file, chunk_size=4)
    with store.open_for_append() as f:
        store.append(f, b"abcdefghij\n")
    assert list(store.iter_chunks()) == [b"abcd", b"efgh", b"ij\n"]


def test_read_all_of_missing_store_is_empty(store):
    assert store.read_all() == b""


def test_delete_removes_file(store):
    with store.open_for_append() as f:
        store.append(f, b"x\n")
    assert store.delete()
    assert not os.path.exists(store.path)


def test_delete_of_missing_file_is_not_an_error(store, log_messages):
    assert store.delete()
    assert not any("Could not delete" in m for m in log_messages)


def test_delete_failure_is_logged(tmp_path, log_messages):
    # A directory cannot be removed with os.remove
    directory = tmp_path / "not-a-file"
    directory.mkdir()
    store = AppendStore(str(directory))
    assert not store.delete()
    assert any("Could not delete out file" in m for m in log_messages)


def test_short_write_raises():
    class ShortFile:
        def write(self, data):
            return len(data) - 1

    with pytest.raises(StoreWriteError):
        AppendStore.append(ShortFile(), b"hello\n")


def test_open_for_append_fails_in_missing_directory(tmp_path):
    store = AppendStore(str(tmp_path / "missing" / "data"))
    with pytest.raises(OSError):
        with store.open_for_append():
            pass
