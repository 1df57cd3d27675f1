"""
Tests for docsym.core.storage — SnapshotStore persistence.
"""

import sqlite3

import pytest

from docsym.core.index import build_index
from docsym.core.storage import SnapshotStore
from docsym.exceptions import DocsymError, IndexNotFoundError


@pytest.fixture
def store(tmp_path):
    s = SnapshotStore(tmp_path / "snapshots.db")
    yield s
    s.close()


class TestSnapshotStore:

    def test_round_trip_preserves_order_and_version(self, store, mutex_records):
        index = build_index(mutex_records, version="1.0").index
        assert store.save(index) is True
        loaded = store.load("1.0")
        assert loaded.version == "1.0"
        assert list(loaded) == list(index)
        assert [r.id for r in loaded.records()] == [r.id for r in index.records()]
        assert loaded.record(13).overload_note == "(const mutex &)=delete"

    def test_snapshots_are_immutable(self, store, scenario_records, record):
        first = build_index(scenario_records, version="v").index
        second = build_index([record(9, "other")], version="v").index
        assert store.save(first) is True
        assert store.save(second) is False
        assert store.load("v").record_count == 2

    def test_load_latest(self, store, scenario_records, mutex_records):
        store.save(build_index(scenario_records, version="old").index)
        store.save(build_index(mutex_records, version="new").index)
        assert store.load().version == "new"

    def test_resaving_older_version_makes_it_latest(self, store, scenario_records, mutex_records):
        store.save(build_index(scenario_records, version="a").index)
        store.save(build_index(mutex_records, version="b").index)
        assert store.save(build_index(scenario_records, version="a").index) is False
        assert store.load().version == "a"
        assert store.load().record_count == len(scenario_records)
        assert [v["version"] for v in store.versions()] == ["a", "b"]
        assert store.get_stats()["latest_version"] == "a"

    def test_load_missing_version_raises(self, store):
        with pytest.raises(IndexNotFoundError, match="No docsym index found"):
            store.load()
        with pytest.raises(FileNotFoundError):
            store.load("nope")

    def test_versions_and_stats(self, store, scenario_records, mutex_records):
        assert store.get_stats()["snapshots"] == 0
        store.save(build_index(scenario_records, version="a").index)
        store.save(build_index(mutex_records, version="b").index)
        versions = store.versions()
        assert [v["version"] for v in versions] == ["b", "a"]
        stats = store.get_stats()
        assert stats["snapshots"] == 2
        assert stats["latest_version"] == "b"
        assert stats["records"] == len(mutex_records)

    def test_delete(self, store, scenario_records):
        store.save(build_index(scenario_records, version="a").index)
        assert store.delete("a") is True
        assert store.delete("a") is False
        assert store.versions() == []

    def test_fingerprint_mismatch_is_detected(self, store, scenario_records, tmp_path):
        store.save(build_index(scenario_records, version="a").index)
        conn = sqlite3.connect(tmp_path / "snapshots.db")
        conn.execute("UPDATE snapshots SET fingerprint = 'bogus' WHERE version = 'a'")
        conn.commit()
        conn.close()
        with pytest.raises(DocsymError, match="fingerprint mismatch"):
            store.load("a")

    def test_unreadable_payload(self, store, scenario_records, tmp_path):
        store.save(build_index(scenario_records, version="a").index)
        conn = sqlite3.connect(tmp_path / "snapshots.db")
        conn.execute("UPDATE snapshots SET payload = ? WHERE version = 'a'", (b"junk",))
        conn.commit()
        conn.close()
        with pytest.raises(DocsymError, match="unreadable"):
            store.load("a")

    def test_context_manager_closes(self, tmp_path, scenario_records):
        with SnapshotStore(tmp_path / "s.db") as s:
            s.save(build_index(scenario_records).index)
        assert s._local.conn is None
