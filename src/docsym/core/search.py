"""
docsym Query Engine

Prefix and substring matching of partial queries against an :class:`Index`,
with tiered ranking and bounded result lists.

Ranking tiers, best first:

1. **exact** — the symbol name equals the whole query
2. **name prefix** — the symbol name starts with the query
3. **path prefix** — some qualified-path segment starts with a query token
4. **substring** — a query token occurs inside the symbol name

Ties keep the index's stored (deterministic) bucket order.
"""

import json
import logging
from dataclasses import dataclass, asdict
from typing import List, Optional, Sequence, Tuple

from docsym.core.index import Index, bucket_key
from docsym.core.records import Record

logger = logging.getLogger(__name__)

RANK_EXACT = 3
RANK_NAME_PREFIX = 2
RANK_PATH_PREFIX = 1
RANK_SUBSTRING = 0

RANK_LABELS = {
    RANK_EXACT: "exact",
    RANK_NAME_PREFIX: "name prefix",
    RANK_PATH_PREFIX: "path prefix",
    RANK_SUBSTRING: "substring",
}


def normalize_query(query: Optional[str]) -> List[str]:
    """Trim, lowercase and split *query* into tokens (``[]`` for blank input)."""
    if not query:
        return []
    return query.strip().lower().split()


def rank_record(record: Record, tokens: Sequence[str], phrase: str) -> Optional[int]:
    """Rank tier of *record* for the query, or ``None`` when it does not match.

    A record matches when every token is a prefix of some path segment or
    a substring of the name.  In a multi-token query the leading tokens
    usually name scopes, so the name tiers also compare against the last
    token (exact) and any single token (prefix).
    """
    name = record.name.lower()
    segments = [segment.lower() for segment in record.qualified_path]
    for token in tokens:
        if token in name:
            continue
        if any(segment.startswith(token) for segment in segments):
            continue
        return None

    if name == phrase or name == tokens[-1]:
        return RANK_EXACT
    if name.startswith(phrase) or any(name.startswith(token) for token in tokens):
        return RANK_NAME_PREFIX
    if any(segment.startswith(token) for token in tokens for segment in segments):
        return RANK_PATH_PREFIX
    return RANK_SUBSTRING


# =============================================================================
# Presentation model
# =============================================================================

@dataclass(frozen=True)
class SearchHit:
    """One ranked result, as handed to the presentation layer."""
    display_name: str
    qualified_path: str
    url: str
    kind: str
    record_id: int
    rank: int
    overload_note: Optional[str] = None

    @property
    def label(self) -> str:
        """Display name with the overload signature, when there is one."""
        return f"{self.display_name}{self.overload_note}" if self.overload_note else self.display_name

    @classmethod
    def from_record(cls, record: Record, rank: int, separator: str = "::") -> "SearchHit":
        return cls(
            display_name=record.name,
            qualified_path=record.qualified_name(separator),
            url=record.url,
            kind=record.kind.value,
            record_id=record.id,
            rank=rank,
            overload_note=record.overload_note,
        )

    def to_dict(self) -> dict:
        """Return a JSON-serializable dict for API/agent pipelines."""
        return asdict(self)


# =============================================================================
# Query Engine
# =============================================================================

class QueryEngine:
    """
    Stateless search over one immutable :class:`Index`.

    Safe to share between any number of sessions; :meth:`search` only
    reads the index.
    """

    def __init__(self, index: Index, default_limit: int = 50, separator: str = "::"):
        self.index = index
        self.default_limit = default_limit
        self.separator = separator

    # ── Public API ────────────────────────────────────────────────

    def search(self, query: str, limit: Optional[int] = None) -> List[Record]:
        """
        Return at most *limit* records matching *query*, best first.

        Never raises for string input: blank queries, unknown buckets and
        zero matches all yield an empty list.
        """
        return [record for _, record in self._ranked(query, limit)]

    def hits(self, query: str, limit: Optional[int] = None) -> List[SearchHit]:
        """Same as :meth:`search`, as presentation tuples."""
        return [
            SearchHit.from_record(record, rank, self.separator)
            for rank, record in self._ranked(query, limit)
        ]

    # ── Matching ──────────────────────────────────────────────────

    def _ranked(self, query: str, limit: Optional[int]) -> List[Tuple[int, Record]]:
        limit = self.default_limit if limit is None else limit
        tokens = normalize_query(query)
        if not tokens or limit <= 0:
            return []

        first_key = bucket_key(tokens[0])
        bucket = self.index.get(first_key)
        if not bucket:
            logger.debug(f"No bucket {first_key!r} for query {query!r}")
            return []

        phrase = " ".join(tokens)
        tiers: List[List[Record]] = [[] for _ in RANK_LABELS]
        matched = self._collect(bucket, tokens, phrase, tiers, limit)

        # Multi-token queries may name an outer scope first ("obj mutex"),
        # so the rest of the index is scanned while results are short.
        # Better tiers can sit in any later bucket; only a full exact
        # tier ends the scan early.
        if len(tokens) > 1 and matched < limit:
            for key in self.index:
                if len(tiers[RANK_EXACT]) >= limit:
                    break
                if key == first_key:
                    continue
                self._collect(self.index[key], tokens, phrase, tiers, limit)

        ranked: List[Tuple[int, Record]] = []
        for rank in sorted(RANK_LABELS, reverse=True):
            ranked.extend((rank, record) for record in tiers[rank])
        return ranked[:limit]

    @staticmethod
    def _collect(records: Sequence[Record], tokens: Sequence[str], phrase: str,
                 tiers: List[List[Record]], limit: int) -> int:
        """Append matches to their tier (each capped at *limit*); return the match count."""
        matched = 0
        for record in records:
            rank = rank_record(record, tokens, phrase)
            if rank is None:
                continue
            matched += 1
            tier = tiers[rank]
            if len(tier) < limit:
                tier.append(record)
            if len(tiers[RANK_EXACT]) >= limit:
                break
        return matched


# =============================================================================
# Result Formatting
# =============================================================================

class ResultFormatter:
    """Format search hits for different output modes."""

    @staticmethod
    def _sanitize_for_json(s: str) -> str:
        """Remove control characters that can break strict JSON parsers."""
        if not s:
            return s
        return "".join(c for c in s if (ord(c) >= 32 and ord(c) != 127) or c in "\n\r\t")

    @staticmethod
    def format_console(hits: List[SearchHit], query: str = "",
                       elapsed_time: float | None = None) -> str:
        """Human-friendly listing; an empty list renders an explicit no-match line."""
        if not hits:
            suffix = f" for '{query}'" if query else ""
            return f"\n  No matches{suffix}.\n"

        import shutil
        width = min(shutil.get_terminal_size().columns, 78)
        thin = "─" * width

        header = f"  DOCSYM — {len(hits)} match{'es' if len(hits) != 1 else ''}"
        if elapsed_time is not None:
            header += f" in {elapsed_time * 1000:.2f} ms"

        out: List[str] = [f"\n{thin}", header, thin]
        for idx, hit in enumerate(hits, start=1):
            out.append(f"  #{idx:<3} {hit.label}  [{hit.kind}]")
            out.append(f"       {hit.qualified_path}")
            out.append(f"       {hit.url}  ({RANK_LABELS.get(hit.rank, '?')})")
        out.append(thin)
        return "\n".join(out)

    @staticmethod
    def format_compact(hits: List[SearchHit]) -> str:
        """One tab-separated line per hit: qualified path, kind, url."""
        if not hits:
            return "No matches."
        return "\n".join(f"{h.qualified_path}\t{h.kind}\t{h.url}" for h in hits)

    @staticmethod
    def format_json(hits: List[SearchHit]) -> str:
        """JSON array of hit objects (``[]`` when there are no matches)."""
        payload = []
        for hit in hits:
            obj = hit.to_dict()
            obj["rank_label"] = RANK_LABELS.get(hit.rank, "")
            for key in ("display_name", "qualified_path", "url", "overload_note"):
                if obj.get(key):
                    obj[key] = ResultFormatter._sanitize_for_json(obj[key])
            payload.append(obj)
        return json.dumps(payload, indent=2, ensure_ascii=False, allow_nan=False)
