"""
docsym — jump-to-symbol search for generated API documentation.

The ``docsym`` package indexes the symbol records a documentation
generator (e.g. Doxygen) emits and answers as-you-type prefix queries
against them.

Quick start (programmatic API)::

    from docsym import Docsym

    client = Docsym()
    client.index("./html/search")               # build + persist a snapshot
    hits = client.search("mutex")               # ranked SearchHit list

Quick start (CLI)::

    docsym index ./html/search
    docsym search "obj mutex"
"""

__version__ = "1.0.0"

# Primary public API: the Docsym facade
from docsym.client import Docsym

# Configuration
from docsym.core.config import DocsymConfig

# Core data types that callers interact with
from docsym.core.index import BuildResult, Index, IndexBuilder, IndexResult, build_index
from docsym.core.records import Record, RecordStore, SymbolKind
from docsym.core.search import QueryEngine, SearchHit
from docsym.core.session import DisplayedResults, QuerySession, SessionEvent, SessionState

# Exception hierarchy
from docsym.exceptions import (
    ConfigError,
    DocsymError,
    IndexNotFoundError,
    LoaderError,
    RecordNotFoundError,
    SessionClosedError,
    ValidationError,
)


def health(config: DocsymConfig | None = None) -> dict:
    """
    Return a small status dict for agents or health checks (no index needed).

    When *config* is None, uses :meth:`DocsymConfig.from_env()` for the snapshot.
    """
    cfg = config or DocsymConfig.from_env()
    return {
        "version": __version__,
        "max_results": cfg.max_results,
        "debounce_seconds": cfg.debounce_seconds,
    }


__all__ = [
    "__version__",
    # Facade
    "Docsym",
    # Config
    "DocsymConfig",
    # Data types
    "Record",
    "RecordStore",
    "SymbolKind",
    "Index",
    "IndexBuilder",
    "BuildResult",
    "IndexResult",
    "build_index",
    "QueryEngine",
    "SearchHit",
    "QuerySession",
    "SessionEvent",
    "SessionState",
    "DisplayedResults",
    # Exceptions
    "DocsymError",
    "ConfigError",
    "ValidationError",
    "RecordNotFoundError",
    "IndexNotFoundError",
    "LoaderError",
    "SessionClosedError",
    # Status
    "health",
]
