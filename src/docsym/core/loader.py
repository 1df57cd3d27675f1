"""
docsym Producer Loader

Turns a documentation generator's output into :class:`Record` batches.

Supported inputs:

- Doxygen ``html/search/*.js`` tables (``var searchData=[...];``).  Each
  entry lists a display name followed by one ``[url, flag, scope]`` triple
  per documented symbol carrying that name (overloads included).
- JSON Lines files, one record object per line, for other producers.

Record ids are derived from the symbol's url, qualified path and overload
signature, so rebuilding from the same documentation yields the same ids.
"""

import ast
import hashlib
import html
import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Set, Tuple

from tqdm import tqdm

from docsym.core.records import Record, SymbolKind
from docsym.exceptions import LoaderError, ValidationError

logger = logging.getLogger(__name__)

_TABLE_RE = re.compile(r"^(?P<prefix>[a-z]+)_[0-9a-z]+\.js$")
_DATA_RE = re.compile(r"var\s+searchData\s*=\s*(\[.*\])\s*;?\s*$", re.DOTALL)

TABLE_KINDS = {
    "classes": SymbolKind.TYPE,
    "concepts": SymbolKind.TYPE,
    "typedefs": SymbolKind.TYPE,
    "enums": SymbolKind.TYPE,
    "functions": SymbolKind.FUNCTION,
    "variables": SymbolKind.VARIABLE,
    "enumvalues": SymbolKind.VARIABLE,
    "defines": SymbolKind.MACRO,
    "namespaces": SymbolKind.NAMESPACE,
    "files": SymbolKind.FILE,
    "pages": SymbolKind.PAGE,
    "groups": SymbolKind.PAGE,
}

# Characters that may follow the ``operator`` keyword in C++ names
_OPERATOR_CHARS = frozenset("<>=!+-*/%&|^~[], ")


@dataclass
class LoadResult:
    """Records read from the producer plus per-entry problems."""
    records: List[Record] = field(default_factory=list)
    errors: List[ValidationError] = field(default_factory=list)
    files: List[Path] = field(default_factory=list)


def stable_id(url: str, qualified_path: Sequence[str], overload_note: Optional[str] = None) -> int:
    """Deterministic 60-bit id for a symbol."""
    key = "\x1f".join([url, "::".join(qualified_path), overload_note or ""])
    return int(hashlib.sha256(key.encode("utf-8")).hexdigest()[:15], 16)


# =============================================================================
# Scope parsing
# =============================================================================

def split_qualified(scope: str, separator: str = "::") -> Tuple[List[str], Optional[str]]:
    """
    Split a C++-style qualified name into segments and an optional signature.

    Separators inside ``<...>`` are ignored, and the first ``(`` outside
    template brackets starts the signature::

        >>> split_qualified("pmem::obj::allocator< T >::allocate(size_type n)")
        (['pmem', 'obj', 'allocator< T >', 'allocate'], '(size_type n)')
    """
    segments: List[str] = []
    current: List[str] = []
    note: Optional[str] = None
    depth = 0
    i = 0
    while i < len(scope):
        if scope.startswith("operator", i) and (i == 0 or not (scope[i - 1].isalnum() or scope[i - 1] == "_")):
            j = i + len("operator")
            if scope.startswith("()", j):
                j += 2
            else:
                while j < len(scope) and scope[j] in _OPERATOR_CHARS:
                    j += 1
            current.append(scope[i:j])
            i = j
            continue

        ch = scope[i]
        if depth == 0 and ch == "(":
            note = scope[i:].strip()
            break
        if depth == 0 and scope.startswith(separator, i):
            segments.append("".join(current).strip())
            current = []
            i += len(separator)
            continue
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth = max(0, depth - 1)
        current.append(ch)
        i += 1

    tail = "".join(current).strip()
    if tail:
        segments.append(tail)
    return [s for s in segments if s], note


def _infer_kind(url: str, note: Optional[str]) -> SymbolKind:
    """Guess the kind of an entry from a mixed (``all_*``) table."""
    if note is not None:
        return SymbolKind.FUNCTION
    page = url.rsplit("/", 1)[-1]
    base, _, anchor = page.partition("#")
    if anchor:
        return SymbolKind.VARIABLE
    if base.startswith(("class", "struct", "union", "interface")):
        return SymbolKind.TYPE
    if base.startswith("namespace"):
        return SymbolKind.NAMESPACE
    if "_8" in base:
        return SymbolKind.FILE
    return SymbolKind.PAGE


# =============================================================================
# Doxygen search tables
# =============================================================================

def parse_search_data(text: str, kind: Optional[SymbolKind] = None,
                      source: str = "<string>") -> LoadResult:
    """
    Parse one Doxygen ``searchData`` table.

    Raises :class:`LoaderError` when the text holds no readable table;
    malformed entries inside a readable table are collected as errors.
    """
    match = _DATA_RE.search(text)
    if not match:
        raise LoaderError(f"{source}: no 'var searchData=[...]' table found")
    try:
        entries = ast.literal_eval(match.group(1))
    except (ValueError, SyntaxError) as e:
        raise LoaderError(f"{source}: unreadable searchData table: {e}") from e

    result = LoadResult()
    for position, entry in enumerate(entries):
        try:
            key, (display, *targets) = entry
        except (TypeError, ValueError):
            result.errors.append(ValidationError(f"{source}: entry {position} is malformed"))
            continue
        display = html.unescape(str(display)).strip()
        if not display or not targets:
            result.errors.append(ValidationError(f"{source}: entry {key!r} has no name or targets"))
            continue

        for target in targets:
            if not isinstance(target, (list, tuple)) or not target:
                result.errors.append(ValidationError(f"{source}: entry {key!r} has a malformed target"))
                continue
            url = str(target[0])
            scope = html.unescape(str(target[2])) if len(target) > 2 else ""
            segments, note = split_qualified(scope)
            if not segments or segments[-1] != display:
                segments.append(display)
            path = tuple(segments)
            result.records.append(Record(
                id=stable_id(url, path, note),
                name=display,
                qualified_path=path,
                url=url,
                kind=kind or _infer_kind(url, note),
                overload_note=note,
            ))
    return result


def load_search_table(path: Path) -> LoadResult:
    """Read a single ``<prefix>_<n>.js`` table; the prefix selects the kind."""
    match = _TABLE_RE.match(path.name)
    kind = TABLE_KINDS.get(match.group("prefix")) if match else None
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise LoaderError(f"Cannot read {path}: {e}") from e
    result = parse_search_data(text, kind=kind, source=path.name)
    result.files.append(path)
    return result


# =============================================================================
# JSON Lines
# =============================================================================

def load_jsonl(path: Path, separator: str = "::") -> LoadResult:
    """
    Read one record object per line.

    ``qualified_path`` may be a list or a separator-joined string; ``name``
    defaults to its last segment and ``id`` to :func:`stable_id`.
    """
    result = LoadResult(files=[path])
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as e:
        raise LoaderError(f"Cannot read {path}: {e}") from e

    for lineno, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            data = json.loads(line)
            raw_path = data.get("qualified_path") or data.get("name") or ""
            if isinstance(raw_path, str):
                segments = [s for s in raw_path.split(separator) if s]
            else:
                segments = [str(s) for s in raw_path]
            data["qualified_path"] = segments
            data.setdefault("name", segments[-1] if segments else "")
            if data.get("id") is None:
                data["id"] = stable_id(str(data.get("url", "")), segments, data.get("overload_note"))
            result.records.append(Record.from_dict(data))
        except (json.JSONDecodeError, AttributeError) as e:
            result.errors.append(ValidationError(f"{path.name}:{lineno}: {e}"))
        except ValidationError as e:
            result.errors.append(ValidationError(f"{path.name}:{lineno}: {e.reason}", e.record_id))
    return result


# =============================================================================
# Entry point
# =============================================================================

def discover_sources(source: Path) -> List[Path]:
    """
    Producer files under *source*, in load order.

    Category tables come before mixed ``all_*`` / ``related_*`` tables so
    a symbol listed in both keeps its precise kind.
    """
    source = Path(source)
    if source.is_file():
        return [source]
    if not source.is_dir():
        raise LoaderError(f"Source {source} does not exist")
    if (source / "search").is_dir():
        source = source / "search"

    tables = [p for p in source.glob("*.js") if _TABLE_RE.match(p.name)]
    tables.sort(key=lambda p: (_TABLE_RE.match(p.name).group("prefix") not in TABLE_KINDS, p.name))
    return tables + sorted(source.glob("*.jsonl"))


def load_records(source: Path, show_progress: bool = False) -> LoadResult:
    """
    Load every record the producer left under *source* (file or directory).

    Raises :class:`LoaderError` when nothing loadable is found.
    """
    files = discover_sources(Path(source))
    if not files:
        raise LoaderError(f"No search tables or .jsonl files found under {source}")

    combined = LoadResult()
    seen: Set[int] = set()
    for path in tqdm(files, desc="Loading tables", unit="file", disable=not show_progress):
        if path.suffix in (".jsonl", ".json"):
            part = load_jsonl(path)
        else:
            part = load_search_table(path)
        combined.files.extend(part.files)
        combined.errors.extend(part.errors)
        for record in part.records:
            if record.id in seen:
                continue
            seen.add(record.id)
            combined.records.append(record)

    logger.info(
        f"Loaded {len(combined.records):,} records from {len(combined.files)} file(s)"
        + (f", {len(combined.errors)} malformed entries" if combined.errors else "")
    )
    return combined
