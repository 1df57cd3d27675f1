"""
docsym Snapshot Watcher

Rebuilds the index wholesale when the producer's output changes:
watchdog reports file events, the watcher waits for them to settle
(debounce) and then re-indexes through the client, at most once per
minimum interval.
"""

import hashlib
import logging
import time
from pathlib import Path
from threading import Event, Thread
from typing import Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, watcher: "SnapshotWatcher"):
        self.watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        if Path(str(event.src_path)).suffix in self.watcher.extensions:
            self.watcher.mark_changed()


class SnapshotWatcher:
    """Watch a producer directory and re-index it on change."""

    def __init__(self, source_dir: Path, client, index_root: Path = Path("."),
                 interval_seconds: int = 30, debounce_seconds: int = 2,
                 extensions: frozenset = frozenset((".js", ".jsonl"))):
        """
        Args:
            source_dir: Directory holding the producer's search tables.
            client: :class:`~docsym.client.Docsym` used to rebuild.
            index_root: Root whose sidecar directory receives the snapshots.
            interval_seconds: Minimum seconds between rebuilds.
            debounce_seconds: Seconds without events before a rebuild.
            extensions: File suffixes that count as producer output.
        """
        self.source_dir = Path(source_dir)
        self.client = client
        self.index_root = Path(index_root)
        self.interval_seconds = interval_seconds
        self.debounce_seconds = debounce_seconds
        self.extensions = extensions
        self._stop_event = Event()
        self._thread: Optional[Thread] = None
        self._last_reload_time = 0.0
        self._last_change_time = 0.0
        self._pending_reload = False
        self._last_digest = self._get_directory_snapshot()

    def start(self):
        """Start watching in a background thread."""
        if self._thread and self._thread.is_alive():
            logger.warning("SnapshotWatcher already running")
            return

        self._stop_event.clear()
        self._thread = Thread(target=self._watch_loop, daemon=True)
        self._thread.start()
        logger.info(f"SnapshotWatcher started (interval: {self.interval_seconds}s, debounce: {self.debounce_seconds}s)")

    def stop(self):
        if self._thread:
            self._stop_event.set()
            self._thread.join(timeout=5)
            logger.info("SnapshotWatcher stopped")

    def mark_changed(self) -> None:
        self._pending_reload = True
        self._last_change_time = time.monotonic()

    def _watch_loop(self):
        """Main watch loop (runs in background thread)."""
        observer = Observer()
        observer.schedule(_ChangeHandler(self), str(self.source_dir), recursive=True)
        observer.start()
        try:
            while not self._stop_event.is_set():
                if self._pending_reload and time.monotonic() - self._last_change_time >= self.debounce_seconds:
                    if self.try_reload():
                        self._pending_reload = False
                self._stop_event.wait(0.5)
        except Exception as e:
            logger.error(f"SnapshotWatcher error: {e}", exc_info=True)
        finally:
            observer.stop()
            observer.join()

    def try_reload(self) -> bool:
        """
        Rebuild if the minimum interval has passed and the content changed.

        Returns ``False`` only when the rebuild should be retried later.
        """
        now = time.monotonic()
        elapsed = now - self._last_reload_time
        if self._last_reload_time and elapsed < self.interval_seconds:
            logger.debug(f"Skipping reload (last: {elapsed:.1f}s ago, min interval: {self.interval_seconds}s)")
            return False

        digest = self._get_directory_snapshot()
        if digest == self._last_digest:
            logger.debug("Producer output unchanged; no rebuild")
            return True

        try:
            logger.info(f"Rebuilding index from {self.source_dir}...")
            result = self.client.index(self.source_dir, path=self.index_root)
            self._last_reload_time = now
            self._last_digest = digest
            logger.info(
                f"Rebuild complete: snapshot {result.snapshot_version}, "
                f"{result.records_indexed} records, {result.records_rejected} rejected"
            )
        except Exception as e:
            logger.error(f"Rebuild failed: {e}")
        return True

    def _get_directory_snapshot(self) -> str:
        """SHA256 over the producer files' names and contents."""
        hasher = hashlib.sha256()
        if not self.source_dir.is_dir():
            return ""
        for path in sorted(self.source_dir.rglob("*")):
            if path.is_file() and path.suffix in self.extensions:
                hasher.update(str(path.relative_to(self.source_dir)).encode())
                hasher.update(path.read_bytes())
        return hasher.hexdigest()


def start_watching(source_dir: str | Path, client, index_root: str | Path = ".",
                   interval_seconds: int = 30, debounce_seconds: int = 2) -> SnapshotWatcher:
    """
    Start a :class:`SnapshotWatcher` and return it (call ``.stop()`` to end).

    Example::

        from docsym import Docsym
        from docsym.core.autoreload import start_watching

        client = Docsym()
        watcher = start_watching("./html/search", client)
        ...
        watcher.stop()
    """
    watcher = SnapshotWatcher(
        Path(source_dir), client, Path(index_root),
        interval_seconds=interval_seconds, debounce_seconds=debounce_seconds,
    )
    watcher.start()
    return watcher
