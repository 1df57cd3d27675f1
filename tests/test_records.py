"""
Tests for docsym.core.records — Record invariants and the RecordStore.
"""

import pytest

from docsym.core.records import Record, RecordStore, SymbolKind
from docsym.exceptions import RecordNotFoundError, ValidationError


class TestRecord:
    """Record invariant checks and dict conversion."""

    def test_valid_record_has_no_problems(self, record):
        assert record(1, "pmem", "obj", "mutex").problems() == []

    def test_empty_name_is_a_problem(self):
        r = Record(id=1, name="  ", qualified_path=("ns", "  "), url="x")
        assert "empty name" in r.problems()

    def test_empty_path_is_a_problem(self):
        r = Record(id=1, name="f", qualified_path=(), url="x")
        assert "empty qualified path" in r.problems()

    def test_name_must_match_last_segment(self):
        r = Record(id=1, name="f", qualified_path=("ns", "g"), url="x")
        problems = r.problems()
        assert len(problems) == 1
        assert "does not match" in problems[0]

    def test_qualified_name_uses_separator(self, record):
        r = record(1, "pmem", "obj", "mutex")
        assert r.qualified_name() == "pmem::obj::mutex"
        assert r.qualified_name(".") == "pmem.obj.mutex"

    def test_dict_conversion_preserves_fields(self, record):
        r = record(7, "ns", "add", kind=SymbolKind.FUNCTION, note="(T &t)")
        data = r.to_dict()
        assert data["qualified_path"] == ["ns", "add"]
        assert data["kind"] == "function"
        assert Record.from_dict(data) == r

    def test_from_dict_rejects_unknown_kind(self):
        with pytest.raises(ValidationError):
            Record.from_dict({"id": 1, "name": "f", "qualified_path": ["f"], "kind": "widget"})

    def test_from_dict_rejects_missing_fields(self):
        with pytest.raises(ValidationError):
            Record.from_dict({"name": "f"})


class TestRecordStore:
    """Lookup, iteration and duplicate handling."""

    def test_get_returns_record(self, scenario_records):
        store = RecordStore(scenario_records)
        assert store.get(1).name == "append"
        assert store.get(2).name == "at"

    def test_get_unknown_id_raises_not_found(self, scenario_records):
        store = RecordStore(scenario_records)
        with pytest.raises(RecordNotFoundError, match="No record with id 99"):
            store.get(99)

    def test_not_found_is_a_key_error(self, scenario_records):
        store = RecordStore(scenario_records)
        with pytest.raises(KeyError):
            store.get(99)

    def test_all_is_restartable(self, scenario_records):
        store = RecordStore(scenario_records)
        first = [r.id for r in store.all()]
        second = [r.id for r in store.all()]
        assert first == second == [1, 2]

    def test_len_and_contains(self, scenario_records):
        store = RecordStore(scenario_records)
        assert len(store) == 2
        assert 1 in store
        assert 3 not in store

    def test_duplicate_id_keeps_first_and_is_rejected(self, record):
        store = RecordStore([record(1, "a"), record(1, "b"), record(2, "c")])
        assert len(store) == 2
        assert store.get(1).name == "a"
        assert len(store.rejected) == 1
        assert store.rejected[0].record_id == 1
        assert "duplicate id" in str(store.rejected[0])

    def test_empty_store(self):
        store = RecordStore()
        assert len(store) == 0
        assert list(store.all()) == []
