"""
Shared fixtures for the docsym test suite.
"""

import sys
import warnings
from pathlib import Path

import pytest

warnings.filterwarnings(
    "ignore",
    category=DeprecationWarning,
    module="pytest_asyncio",
)

# Ensure the src/ directory is on the import path so that
# docsym.core.* can be imported without installing the package.
SRC_ROOT = Path(__file__).resolve().parent.parent / "src"
sys.path.insert(0, str(SRC_ROOT))

from docsym.core.config import DocsymConfig  # noqa: E402
from docsym.core.records import Record, SymbolKind  # noqa: E402


def make_record(record_id, *path, kind=SymbolKind.FUNCTION, note=None, url=None):
    """Record whose name is the last path segment."""
    return Record(
        id=record_id,
        name=path[-1],
        qualified_path=tuple(path),
        url=url or f"page.html#{record_id}",
        kind=kind,
        overload_note=note,
    )


# =============================================================================
# Fixtures — record batches
# =============================================================================

@pytest.fixture
def record():
    """Factory fixture: ``record(id, *path, kind=..., note=...)``."""
    return make_record


@pytest.fixture
def scenario_records():
    """The two-record scenario: append and at."""
    return [
        make_record(1, "basic_string", "append"),
        make_record(2, "array", "at"),
    ]


@pytest.fixture
def mutex_records():
    """A small pmem-like namespace with overloads and near-miss names."""
    return [
        make_record(10, "pmem", "obj", "mutex_base", kind=SymbolKind.TYPE),
        make_record(11, "pmem", "obj", "mutex", kind=SymbolKind.TYPE),
        make_record(12, "pmem", "obj", "mutex", "mutex", note="()"),
        make_record(13, "pmem", "obj", "mutex", "mutex", note="(const mutex &)=delete"),
        make_record(14, "pmem", "obj", "shared_mutex", kind=SymbolKind.TYPE),
        make_record(15, "pmem", "obj", "timed_mutex", kind=SymbolKind.TYPE),
        make_record(16, "pmem", "obj", "make_persistent"),
        make_record(17, "pmem", "detail", "mssb_index64"),
        make_record(18, "pmem", "obj", "Mutable", kind=SymbolKind.TYPE),
        make_record(19, "pmem", "obj", "mutex", "lock"),
        make_record(20, "pmem", "obj", "mutex", "unlock"),
        make_record(21, "pmem", "obj", "operator==", note="(const mutex &lhs)"),
        make_record(22, "pmem", "obj", "3d_point", kind=SymbolKind.TYPE),
    ]


# =============================================================================
# Fixtures — producer output on disk
# =============================================================================

FUNCTIONS_TABLE = """var searchData=
[
  ['abort_635',['abort',['../classpmem_1_1detail_1_1transaction__base.html#afc3b',1,'pmem::detail::transaction_base']]],
  ['add_637',['add',['../classpmem_1_1obj_1_1defrag.html#a43fe',1,'pmem::obj::defrag::add(T &amp;t)'],['../classpmem_1_1obj_1_1defrag.html#a1540',1,'pmem::obj::defrag::add(persistent_ptr&lt; T &gt; &amp;ptr)']]],
  ['allocate_638',['allocate',['../classpmem_1_1obj_1_1standard__alloc__policy_3_01void_01_4.html#ab6d4',1,'pmem::obj::standard_alloc_policy&lt; void &gt;::allocate()']]],
  ['mutex_761',['mutex',['../classpmem_1_1obj_1_1mutex.html#ab91f',1,'pmem::obj::mutex::mutex(const mutex &amp;)=delete'],['../classpmem_1_1obj_1_1mutex.html#a2a90',1,'pmem::obj::mutex::mutex()']]]
];
"""

CLASSES_TABLE = """var searchData=
[
  ['mutex_12',['mutex',['../classpmem_1_1obj_1_1mutex.html',1,'pmem::obj']]],
  ['transaction_5fbase_13',['transaction_base',['../classpmem_1_1detail_1_1transaction__base.html',1,'pmem::detail']]]
];
"""


@pytest.fixture
def search_dir(tmp_path: Path) -> Path:
    """A Doxygen html/search directory with a functions and a classes table."""
    directory = tmp_path / "html" / "search"
    directory.mkdir(parents=True)
    (directory / "functions_0.js").write_text(FUNCTIONS_TABLE, encoding="utf-8")
    (directory / "classes_0.js").write_text(CLASSES_TABLE, encoding="utf-8")
    # Not a search table; must be ignored
    (directory / "search.js").write_text("function init_search() {}\n", encoding="utf-8")
    return directory


@pytest.fixture
def config() -> DocsymConfig:
    """Config with no debounce so session tests run fast."""
    return DocsymConfig(max_results=50, debounce_seconds=0.0)
