"""
Tests for storage backends.

Covers the SQLite tier, the snapshot tier (including memory-only
degradation), the failover latch, the title store and the store factory.
"""

import json
import threading

import pytest

from flowcanvas.config import EditorSettings
from flowcanvas.storage import (
    CONNECTIONS,
    NODES,
    DEFAULT_FLOW_TITLE,
    FailoverStore,
    FlowTitleStore,
    GraphStore,
    KeyValueMedium,
    SnapshotBackend,
    SQLiteBackend,
    StorageUnavailable,
    create_store,
)
from flowcanvas.storage.snapshot_backend import SNAPSHOT_SLOT
from conftest import RecordingStore


def node(node_id, title="Card", x=0, y=0):
    return {"id": node_id, "title": title, "x": x, "y": y, "type": "message", "triggerIds": None}


def link(link_id, from_id, to_id):
    return {"id": link_id, "fromId": from_id, "toId": to_id}


class BrokenMedium(KeyValueMedium):
    """Medium whose directory can never be written."""

    def set_item(self, key, value):
        raise OSError("read-only file system")


class TestSQLiteBackend:
    @pytest.fixture
    def backend(self, tmp_path):
        backend = SQLiteBackend(tmp_path / "db" / "canvas.sqlite3")
        yield backend
        backend.close()

    def test_conforms_to_protocol(self, backend):
        assert isinstance(backend, GraphStore)
        assert backend.backend_type == "sqlite"

    def test_put_upserts_and_keeps_order(self, backend):
        backend.put(NODES, node("a", "First"))
        backend.put(NODES, node("b", "Second"))
        backend.put(NODES, node("a", "Renamed"))
        loaded = backend.load_all(NODES)
        assert [n["id"] for n in loaded] == ["a", "b"]
        assert loaded[0]["title"] == "Renamed"

    def test_put_many_replaces_collection(self, backend):
        backend.put(NODES, node("old"))
        backend.put_many(NODES, [node("x"), node("y")])
        assert [n["id"] for n in backend.load_all(NODES)] == ["x", "y"]

    def test_delete_by_id(self, backend):
        backend.put(CONNECTIONS, link("c1", "a", "b"))
        backend.delete_by_id(CONNECTIONS, "c1")
        backend.delete_by_id(CONNECTIONS, "missing")
        assert backend.load_all(CONNECTIONS) == []

    def test_data_survives_reopen(self, tmp_path):
        path = tmp_path / "canvas.sqlite3"
        first = SQLiteBackend(path)
        first.put(NODES, node("keep"))
        first.close()
        second = SQLiteBackend(path)
        assert second.load_all(NODES)[0]["id"] == "keep"
        second.close()

    def test_disabled_backend_raises_unavailable(self):
        with pytest.raises(StorageUnavailable):
            SQLiteBackend(None).load_all(NODES)

    def test_unopenable_path_raises_unavailable(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        with pytest.raises(StorageUnavailable):
            SQLiteBackend(blocker / "canvas.sqlite3").load_all(NODES)

    def test_unknown_collection(self, backend):
        with pytest.raises(ValueError):
            backend.load_all("edges")


class TestSnapshotBackend:
    def test_round_trip_through_medium(self, tmp_path):
        medium = KeyValueMedium(tmp_path)
        backend = SnapshotBackend(medium)
        backend.put(NODES, node("a"))
        backend.put(CONNECTIONS, link("c", "a", "b"))

        blob = json.loads(medium.get_item(SNAPSHOT_SLOT))
        assert [n["id"] for n in blob["nodes"]] == ["a"]
        assert blob["connections"][0]["fromId"] == "a"

        reopened = SnapshotBackend(KeyValueMedium(tmp_path))
        assert reopened.backend_type == "snapshot"
        assert reopened.load_all(CONNECTIONS) == [link("c", "a", "b")]

    def test_deleting_node_cascades_connections(self, tmp_path):
        backend = SnapshotBackend(KeyValueMedium(tmp_path))
        backend.put_many(NODES, [node("a"), node("b"), node("c")])
        backend.put_many(CONNECTIONS, [link("ab", "a", "b"), link("bc", "b", "c")])
        backend.delete_by_id(NODES, "a")
        assert [c["id"] for c in backend.load_all(CONNECTIONS)] == ["bc"]

    def test_load_returns_copies(self, tmp_path):
        backend = SnapshotBackend(KeyValueMedium(tmp_path))
        backend.put(NODES, node("a", "Original"))
        backend.load_all(NODES)[0]["title"] = "Mutated"
        assert backend.load_all(NODES)[0]["title"] == "Original"

    def test_corrupt_blob_keeps_memory_copy(self, tmp_path):
        medium = KeyValueMedium(tmp_path)
        backend = SnapshotBackend(medium)
        backend.put(NODES, node("a"))
        medium.set_item(SNAPSHOT_SLOT, "{not json")
        assert [n["id"] for n in backend.load_all(NODES)] == ["a"]

    def test_degrades_to_memory_when_medium_unavailable(self, tmp_path):
        medium = BrokenMedium(tmp_path)
        assert medium.available is False
        backend = SnapshotBackend(medium)
        assert backend.backend_type == "memory"
        backend.put(NODES, node("a"))
        assert [n["id"] for n in backend.load_all(NODES)] == ["a"]
        assert list(tmp_path.iterdir()) == []


class TestFailoverStore:
    def test_uses_primary_until_failure(self):
        primary, fallback = RecordingStore("primary"), RecordingStore("fallback")
        store = FailoverStore(primary, fallback)
        store.put(NODES, node("a"))
        assert primary.ids(NODES) == ["a"]
        assert fallback.calls == []
        assert store.backend_type == "primary"

    def test_failed_operation_is_retried_on_fallback(self):
        primary, fallback = RecordingStore("primary"), RecordingStore("fallback")
        primary.fail_with = RuntimeError("disk full")
        store = FailoverStore(primary, fallback)

        store.put(NODES, node("a"))

        assert store.is_failed_over
        assert fallback.ids(NODES) == ["a"]
        assert "disk full" in store.failover_reason
        assert store.backend_type == "fallback"

    def test_latch_is_one_way(self):
        primary, fallback = RecordingStore("primary"), RecordingStore("fallback")
        primary.fail_with = StorageUnavailable("no sqlite")
        store = FailoverStore(primary, fallback)
        store.load_all(NODES)

        primary.fail_with = None
        primary_calls = len(primary.calls)
        store.put(NODES, node("b"))
        store.delete_by_id(NODES, "b")
        store.put_many(CONNECTIONS, [])

        assert len(primary.calls) == primary_calls
        assert [c[0] for c in fallback.calls] == ["load_all", "put", "delete_by_id", "put_many"]

    def test_missing_primary_starts_failed_over(self):
        fallback = RecordingStore("fallback")
        store = FailoverStore(None, fallback)
        assert store.is_failed_over
        assert store.load_all(NODES) == []

    def test_concurrent_failures_trip_once(self, caplog):
        primary, fallback = RecordingStore("primary"), RecordingStore("fallback")
        primary.fail_with = RuntimeError("locked")
        store = FailoverStore(primary, fallback)

        threads = [threading.Thread(target=store.put, args=(NODES, node(f"n{i}"))) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(fallback.ids(NODES)) == sorted(f"n{i}" for i in range(8))
        assert caplog.text.count("Primary storage unusable") == 1

    def test_sqlite_unavailable_fails_over_to_snapshot(self, tmp_path):
        store = FailoverStore(SQLiteBackend(None), SnapshotBackend(KeyValueMedium(tmp_path)))
        store.put(NODES, node("a"))
        assert store.backend_type == "snapshot"
        assert store.load_all(NODES)[0]["id"] == "a"


class TestFlowTitleStore:
    def test_default_when_nothing_stored(self, tmp_path):
        assert FlowTitleStore(KeyValueMedium(tmp_path)).load() == DEFAULT_FLOW_TITLE

    def test_save_trims_and_persists(self, tmp_path):
        FlowTitleStore(KeyValueMedium(tmp_path)).save("  Welcome flow  ")
        assert FlowTitleStore(KeyValueMedium(tmp_path)).load() == "Welcome flow"

    def test_blank_commits_default(self, tmp_path):
        store = FlowTitleStore(KeyValueMedium(tmp_path))
        store.save("Something")
        assert store.save("   ") == DEFAULT_FLOW_TITLE
        assert store.load() == DEFAULT_FLOW_TITLE

    def test_memory_only_medium(self, tmp_path):
        store = FlowTitleStore(BrokenMedium(tmp_path))
        assert store.save("Kept in memory") == "Kept in memory"
        assert store.load() == "Kept in memory"


class TestCreateStore:
    def test_sqlite_enabled(self, tmp_path):
        bundle = create_store(EditorSettings(data_dir=tmp_path))
        try:
            bundle.graph.put(NODES, node("a"))
            assert bundle.graph.backend_type == "sqlite"
            assert (tmp_path / "canvas-links.sqlite3").exists()
        finally:
            bundle.close()

    def test_sqlite_disabled(self, tmp_path):
        bundle = create_store(EditorSettings(data_dir=tmp_path, use_sqlite=False))
        assert bundle.primary is None
        assert bundle.graph.is_failed_over
        assert bundle.graph.backend_type == "snapshot"
