"""Tests for record encoding and the content-addressed object store."""

import hashlib

import pytest

from kvlet import codec
from kvlet.errors import NotFoundError, StorageError
from kvlet.kv.memory import Memory
from kvlet.objects import BLOBS, COMMITS, TREES, ObjectStore, copy_objects


class TestContentAddressing:
    def test_put_returns_sha1(self):
        store = ObjectStore()
        assert store.put(b"hello\n") == hashlib.sha1(b"hello\n").hexdigest()

    def test_get_put_roundtrip(self):
        store = ObjectStore()
        assert store.get(BLOBS, store.put(b"\x00binary\xff")) == b"\x00binary\xff"

    def test_put_twice_stores_one_copy(self):
        blobs = Memory()
        store = ObjectStore({BLOBS: blobs})
        first = store.put(b"same")
        second = store.put(b"same")
        assert first == second
        assert len(blobs) == 1

    def test_keyed_put_does_not_overwrite(self):
        store = ObjectStore()
        store.put(b"first", COMMITS, key="abc")
        store.put(b"second", COMMITS, key="abc")
        assert store.get(COMMITS, "abc") == b"first"

    def test_namespaces_are_separate(self):
        store = ObjectStore()
        obj_id = store.put(b"data")
        assert store.exists(BLOBS, obj_id)
        assert not store.exists(TREES, obj_id)
        assert not store.exists(COMMITS, obj_id)

    def test_get_missing(self):
        with pytest.raises(NotFoundError):
            ObjectStore().get(BLOBS, "0" * 40)

    def test_list_ids_sorted(self):
        store = ObjectStore()
        ids = [store.put(data) for data in (b"a", b"b", b"c", b"d")]
        assert store.list_ids(BLOBS) == sorted(ids)
        assert store.list_ids(BLOBS, ids[0][:5]) == [ids[0]]

    def test_unknown_namespace(self):
        with pytest.raises(ValueError, match="Unknown namespace"):
            ObjectStore().put(b"x", "refs")


class TestCopyObjects:
    def test_copies_missing_records(self):
        source, dest = ObjectStore(), ObjectStore()
        blob = source.put(b"content")
        source.put(b"{}", TREES, key="c1")
        dest.put(b"other")
        assert copy_objects(source, dest) == 2
        assert dest.get(BLOBS, blob) == b"content"
        assert dest.exists(TREES, "c1")
        assert copy_objects(source, dest) == 0


class TestCodec:
    def test_tree_keeps_insertion_order(self):
        tree = {"b.txt": "1" * 40, "a.txt": "2" * 40}
        assert list(codec.decode_tree(codec.encode_tree(tree))) == ["b.txt", "a.txt"]

    def test_commit_record_roundtrip(self):
        raw = codec.encode_commit("msg", "then", "p" * 40, "s" * 40)
        record = codec.decode_commit(raw)
        assert record["message"] == "msg"
        assert record["second_parent"] == "s" * 40

    def test_commit_id_depends_on_parent(self):
        # Only tree, message, timestamp and parent feed the id.
        tree = {"f": "1" * 40}
        assert codec.commit_id(tree, "m", "t", "p") == codec.commit_id(tree, "m", "t", "p")
        assert codec.commit_id(tree, "m", "t", "p") != codec.commit_id(tree, "m", "t", "q")

    def test_undecodable_record(self):
        with pytest.raises(StorageError):
            codec.decode_tree(b"\xff\xfe")

    def test_unknown_version(self):
        with pytest.raises(StorageError, match="version"):
            codec.decode_commit(b'{"version": 99}')

    def test_timestamp_format(self):
        # e.g. "Tue Nov 14 22:13:20 2023 -0800"
        parts = codec.timestamp().split(" ")
        assert len(parts) == 6
        assert parts[5][0] in "+-"
        assert len(parts[2]) == 2
