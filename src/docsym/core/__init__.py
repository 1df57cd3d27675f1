"""
docsym Core — records, index building, search, sessions and storage.

Re-exports the primary classes for convenience::

    from docsym.core import RecordStore, IndexBuilder, QueryEngine
"""

from docsym.core.config import DocsymConfig
from docsym.core.index import BuildResult, Index, IndexBuilder, bucket_key
from docsym.core.records import Record, RecordStore, SymbolKind
from docsym.core.search import QueryEngine, ResultFormatter, SearchHit
from docsym.core.session import QuerySession

__all__ = [
    "DocsymConfig",
    "BuildResult",
    "Index",
    "IndexBuilder",
    "bucket_key",
    "Record",
    "RecordStore",
    "SymbolKind",
    "QueryEngine",
    "ResultFormatter",
    "SearchHit",
    "QuerySession",
]
