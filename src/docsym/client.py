"""
docsym Client Facade

Single entry point for programmatic use of docsym.  Wraps loading,
index building, snapshot storage, search and incremental sessions behind
an instance-based API with optional async support.

Usage::

    from docsym import Docsym

    client = Docsym()                                   # reads env vars

    # Build and persist an index from Doxygen output
    result = client.index("./html/search", path="./docs")
    print(f"Indexed {result.records_indexed} symbols")

    # One-shot search
    for hit in client.search("make_pers", path="./docs"):
        print(hit.qualified_path, hit.url)

    # As-you-type search
    session = client.session(path="./docs", on_display=render)
    session.feed("mu")
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from docsym.core.config import DocsymConfig
from docsym.core.index import BuildResult, Index, IndexBuilder, IndexResult
from docsym.core.records import Record, RecordStore
from docsym.core.search import QueryEngine, SearchHit
from docsym.core.session import DisplayCallback, QuerySession, Runner
from docsym.exceptions import IndexNotFoundError

logger = logging.getLogger(__name__)


class Docsym:
    """
    High-level docsym client.

    Each instance carries its own :class:`DocsymConfig` and never touches
    global state.

    Args:
        config: Explicit configuration object.  When *None*, a config is
            built from environment variables or keyword overrides.
        validate_on_init: If True, call :meth:`DocsymConfig.validate` in
            ``__init__`` so invalid settings surface immediately.
        **kwargs: Forwarded to :class:`DocsymConfig` when *config* is
            ``None`` (e.g. ``max_results=20``).
    """

    def __init__(
        self,
        config: DocsymConfig | None = None,
        *,
        validate_on_init: bool = False,
        **kwargs,
    ):
        if config is not None:
            self._config = config
        elif kwargs:
            # Build a config from env, then overlay keyword overrides
            base = DocsymConfig.from_env()
            merged = {
                f.name: kwargs.get(f.name, getattr(base, f.name))
                for f in base.__dataclass_fields__.values()
            }
            self._config = DocsymConfig(**merged)
        else:
            self._config = DocsymConfig.from_env()

        if validate_on_init:
            self._config.validate()

        # Engines per (index dir, version); version None means "latest"
        self._engines: Dict[Tuple[Path, Optional[str]], QueryEngine] = {}

    # ── Configuration ─────────────────────────────────────────────

    @property
    def config(self) -> DocsymConfig:
        """The active configuration for this client."""
        return self._config

    # ── Building ──────────────────────────────────────────────────

    def build(self, records: Iterable[Record], version: Optional[str] = None) -> BuildResult:
        """Build an in-memory index from an already-extracted record batch."""
        store = records if isinstance(records, RecordStore) else RecordStore(records)
        return IndexBuilder(version=version).build(store)

    def engine(self, index: Index) -> QueryEngine:
        """Query engine over *index* using this client's limits."""
        return QueryEngine(
            index,
            default_limit=self._config.max_results,
            separator=self._config.path_separator,
        )

    def index(
        self,
        source: str | Path,
        *,
        path: str | Path = ".",
        version: Optional[str] = None,
        save: bool = True,
        show_progress: bool = False,
    ) -> IndexResult:
        """
        Load the producer output at *source*, build an index and persist it.

        Args:
            source: Doxygen ``search/`` directory, a single table, or a
                ``.jsonl`` file.
            path: Root directory whose ``.docsym/`` sidecar receives the
                snapshot.
            version: Snapshot version; defaults to the ordering fingerprint.
            save: Persist the snapshot (False builds and reports only).
            show_progress: Show a tqdm progress bar while loading.

        Returns:
            :class:`IndexResult` with counts and every rejection message.

        Raises:
            LoaderError: If *source* holds nothing readable.
        """
        from docsym.core.loader import load_records
        from docsym.core.storage import SnapshotStore

        loaded = load_records(Path(source), show_progress=show_progress)
        build = self.build(loaded.records, version=version)
        index = build.index
        errors = [str(e) for e in loaded.errors] + [str(e) for e in build.errors]

        index_dir = self._config.get_index_dir(Path(path).resolve())
        saved = False
        if save:
            index_dir.mkdir(parents=True, exist_ok=True)
            with SnapshotStore(self._config.get_snapshot_path(index_dir)) as snapshots:
                saved = snapshots.save(index)
            # "latest" may have changed for this root
            self._engines.pop((index_dir, None), None)

        return IndexResult(
            files_loaded=len(loaded.files),
            records_loaded=len(loaded.records),
            records_indexed=index.record_count,
            records_rejected=len(errors),
            buckets=len(index),
            snapshot_version=index.version,
            saved=saved,
            index_dir=str(index_dir),
            errors=errors,
        )

    # ── Loading & search ──────────────────────────────────────────

    def load(self, path: str | Path = ".", version: Optional[str] = None) -> Index:
        """
        Load a persisted snapshot (the latest when *version* is omitted).

        Raises:
            IndexNotFoundError: If no snapshot exists at *path*.
        """
        return self._get_engine(path, version).index

    def search(
        self,
        query: str,
        *,
        path: str | Path = ".",
        version: Optional[str] = None,
        max_results: int | None = None,
    ) -> List[SearchHit]:
        """
        Search the persisted index under *path* for *query*.

        Returns:
            Ranked :class:`SearchHit` list; empty for blank queries or no
            matches.

        Raises:
            IndexNotFoundError: If no index exists at *path*.
        """
        engine = self._get_engine(path, version)
        return engine.hits(query, max_results)

    def get(self, record_id: int, *, path: str | Path = ".", version: Optional[str] = None) -> Record:
        """Look up one record by id; raises ``RecordNotFoundError``."""
        return self._get_engine(path, version).index.record(record_id)

    def session(
        self,
        *,
        path: str | Path = ".",
        version: Optional[str] = None,
        engine: Optional[QueryEngine] = None,
        on_display: Optional[DisplayCallback] = None,
        runner: Optional[Runner] = None,
    ) -> QuerySession:
        """New incremental :class:`QuerySession` over the index at *path* (or *engine*)."""
        return QuerySession(
            engine or self._get_engine(path, version),
            limit=self._config.max_results,
            debounce_seconds=self._config.debounce_seconds,
            on_display=on_display,
            runner=runner,
        )

    # ── Statistics ────────────────────────────────────────────────

    def stats(self, path: str | Path = ".") -> Dict[str, object]:
        """
        Snapshot statistics for *path*.

        Raises:
            IndexNotFoundError: If no index exists at *path*.
        """
        from docsym.core.storage import SnapshotStore

        db = self._snapshot_db(path)
        with SnapshotStore(db) as snapshots:
            return snapshots.get_stats()

    # ── Async variants ────────────────────────────────────────────
    # These use asyncio.to_thread() to run sync operations off the
    # event loop and raise the same exceptions as the sync methods.

    async def aindex(
        self,
        source: str | Path,
        *,
        path: str | Path = ".",
        version: Optional[str] = None,
        save: bool = True,
    ) -> IndexResult:
        """Async variant of :meth:`index`."""
        return await asyncio.to_thread(
            self.index, source, path=path, version=version, save=save,
        )

    async def asearch(
        self,
        query: str,
        *,
        path: str | Path = ".",
        version: Optional[str] = None,
        max_results: int | None = None,
    ) -> List[SearchHit]:
        """Async variant of :meth:`search`."""
        return await asyncio.to_thread(
            self.search, query, path=path, version=version, max_results=max_results,
        )

    async def astats(self, path: str | Path = ".") -> Dict[str, object]:
        """Async variant of :meth:`stats`."""
        return await asyncio.to_thread(self.stats, path)

    # ── Health ────────────────────────────────────────────────────

    def health(self) -> Dict[str, object]:
        """Small status dict for agents or readiness probes (no index needed)."""
        return {
            "version": __import__("docsym", fromlist=["__version__"]).__version__,
            "max_results": self._config.max_results,
            "debounce_seconds": self._config.debounce_seconds,
        }

    # ── Internal helpers ──────────────────────────────────────────

    def _snapshot_db(self, path: str | Path) -> Path:
        index_dir = self._config.get_index_dir(Path(path).resolve())
        db = self._config.get_snapshot_path(index_dir)
        if not db.exists():
            raise IndexNotFoundError(
                f"No docsym index found at {db}. "
                "Run 'docsym index <source>' or client.index() first."
            )
        return db

    def _get_engine(self, path: str | Path, version: Optional[str]) -> QueryEngine:
        """Return a cached QueryEngine for the snapshot at *path*."""
        from docsym.core.storage import SnapshotStore

        db = self._snapshot_db(path)
        key = (db.parent, version)
        if key not in self._engines:
            with SnapshotStore(db) as snapshots:
                index = snapshots.load(version)
            logger.debug(f"Loaded {index!r} from {db}")
            self._engines[key] = self.engine(index)
        return self._engines[key]
