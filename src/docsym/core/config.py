"""
docsym Configuration Module

Instance-based configuration for the symbol index, the query engine and
the incremental search session.
"""

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass
class DocsymConfig:
    """
    Self-contained configuration for docsym.

    Each instance can be passed through the call stack, so several
    documentation sets (or tests) can run side by side without global
    state.

    Create from environment variables::

        config = DocsymConfig.from_env()

    Or with explicit values::

        config = DocsymConfig(max_results=20, debounce_seconds=0.1)
    """

    # ── Search ────────────────────────────────────────────────────
    max_results: int = 50
    path_separator: str = "::"

    # ── Incremental session ───────────────────────────────────────
    debounce_seconds: float = 0.15

    # ── Snapshot storage ──────────────────────────────────────────
    index_dir: str = ".docsym"
    snapshot_db_name: str = "snapshots.db"

    # ── Snapshot watcher ──────────────────────────────────────────
    reload_interval_seconds: int = 30
    reload_debounce_seconds: int = 2
    watch_extensions: frozenset = frozenset((".js", ".jsonl"))

    # ── Logging ───────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # ── Factory ───────────────────────────────────────────────────

    @classmethod
    def from_env(cls) -> "DocsymConfig":
        """Build a config snapshot from current environment variables.

        Reads :envvar:`DOCSYM_MAX_RESULTS`, :envvar:`DOCSYM_DEBOUNCE_MS`,
        :envvar:`DOCSYM_INDEX_DIR` and :envvar:`DOCSYM_LOG_LEVEL`.
        """
        return cls(
            max_results=int(os.getenv("DOCSYM_MAX_RESULTS", "50")),
            debounce_seconds=int(os.getenv("DOCSYM_DEBOUNCE_MS", "150")) / 1000.0,
            index_dir=os.getenv("DOCSYM_INDEX_DIR", ".docsym"),
            log_level=os.getenv("DOCSYM_LOG_LEVEL", "INFO").upper(),
        )

    # ── Validation & Accessors ────────────────────────────────────

    def validate(self) -> bool:
        """
        Check value ranges.

        Raises :class:`~docsym.exceptions.ConfigError` on failure.
        """
        from docsym.exceptions import ConfigError

        if self.max_results <= 0:
            raise ConfigError(
                f"max_results must be positive, got {self.max_results}.\n"
                "  Set via: export DOCSYM_MAX_RESULTS=50"
            )
        if self.debounce_seconds < 0:
            raise ConfigError(
                f"debounce_seconds must not be negative, got {self.debounce_seconds}.\n"
                "  Set via: export DOCSYM_DEBOUNCE_MS=150"
            )
        if not self.path_separator:
            raise ConfigError("path_separator must not be empty.")
        return True

    def get_index_dir(self, root: Path) -> Path:
        """Sidecar directory holding persisted snapshots for *root*."""
        return Path(root) / self.index_dir

    def get_snapshot_path(self, index_dir: Path) -> Path:
        """Get the path to the snapshot database."""
        return index_dir / self.snapshot_db_name
