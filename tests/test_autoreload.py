"""
Tests for docsym.core.autoreload — SnapshotWatcher rebuild decisions.
"""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from docsym.core.autoreload import SnapshotWatcher, _ChangeHandler
from docsym.core.index import IndexResult


@pytest.fixture
def fake_client():
    client = MagicMock()
    client.index.return_value = IndexResult(snapshot_version="abc", records_indexed=8)
    return client


class TestTryReload:

    def test_unchanged_content_does_not_rebuild(self, search_dir, fake_client):
        watcher = SnapshotWatcher(search_dir, fake_client, interval_seconds=0)
        assert watcher.try_reload() is True
        fake_client.index.assert_not_called()

    def test_changed_content_rebuilds(self, search_dir, fake_client, tmp_path):
        watcher = SnapshotWatcher(search_dir, fake_client, index_root=tmp_path, interval_seconds=0)
        (search_dir / "variables_0.js").write_text("var searchData=[];", encoding="utf-8")
        assert watcher.try_reload() is True
        fake_client.index.assert_called_once_with(search_dir, path=tmp_path)

    def test_ignored_extensions_do_not_count(self, search_dir, fake_client):
        watcher = SnapshotWatcher(search_dir, fake_client, interval_seconds=0)
        (search_dir / "notes.txt").write_text("hello", encoding="utf-8")
        watcher.try_reload()
        fake_client.index.assert_not_called()

    def test_minimum_interval_defers_rebuild(self, search_dir, fake_client):
        watcher = SnapshotWatcher(search_dir, fake_client, interval_seconds=3600)
        (search_dir / "a_0.js").write_text("var searchData=[];", encoding="utf-8")
        assert watcher.try_reload() is True
        (search_dir / "b_0.js").write_text("var searchData=[];", encoding="utf-8")
        assert watcher.try_reload() is False
        assert fake_client.index.call_count == 1

    def test_failed_rebuild_is_logged(self, search_dir, fake_client, caplog):
        fake_client.index.side_effect = RuntimeError("disk full")
        watcher = SnapshotWatcher(search_dir, fake_client, interval_seconds=0)
        (search_dir / "a_0.js").write_text("var searchData=[];", encoding="utf-8")
        assert watcher.try_reload() is True
        assert "Rebuild failed: disk full" in caplog.text

    def test_missing_directory_digest(self, tmp_path, fake_client):
        watcher = SnapshotWatcher(tmp_path / "missing", fake_client)
        assert watcher._get_directory_snapshot() == ""


class TestChangeHandler:

    def test_matching_file_marks_changed(self, search_dir, fake_client):
        watcher = SnapshotWatcher(search_dir, fake_client)
        event = MagicMock(is_directory=False, src_path=str(search_dir / "functions_0.js"))
        _ChangeHandler(watcher).on_any_event(event)
        assert watcher._pending_reload is True

    def test_other_files_and_directories_are_ignored(self, search_dir, fake_client):
        watcher = SnapshotWatcher(search_dir, fake_client)
        handler = _ChangeHandler(watcher)
        handler.on_any_event(MagicMock(is_directory=False, src_path=str(search_dir / "x.png")))
        handler.on_any_event(MagicMock(is_directory=True, src_path=str(search_dir)))
        assert watcher._pending_reload is False


class TestLifecycle:

    def test_start_and_stop(self, search_dir, fake_client):
        watcher = SnapshotWatcher(Path(search_dir), fake_client)
        watcher.start()
        assert watcher._thread.is_alive()
        watcher.stop()
        assert not watcher._thread.is_alive()
