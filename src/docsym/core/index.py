"""
docsym Index Builder

Partitions a record store into buckets keyed by the leading character of
each symbol name and sorts every bucket deterministically.  The resulting
:class:`Index` is immutable; a new documentation snapshot gets a new index.
"""

import hashlib
import logging
from dataclasses import dataclass, asdict, field
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from docsym.core.records import Record, RecordStore
from docsym.exceptions import RecordNotFoundError, ValidationError

logger = logging.getLogger(__name__)

# Fixed buckets for names that do not start with a letter
NUMERIC_BUCKET = "0-9"
SYMBOL_BUCKET = "_"


def bucket_key(name: str) -> str:
    """Bucket key for a symbol name (or a query token).

    Letters map to their lowercase self, digits to :data:`NUMERIC_BUCKET`,
    everything else (including the empty string) to :data:`SYMBOL_BUCKET`.
    """
    if not name:
        return SYMBOL_BUCKET
    first = name[0]
    if first.isalpha():
        return first.lower()
    if first.isdigit():
        return NUMERIC_BUCKET
    return SYMBOL_BUCKET


def sort_key(record: Record) -> Tuple[str, int, int]:
    """Within-bucket order: name (case-insensitive), path depth, id."""
    return (record.name.lower(), len(record.qualified_path), record.id)


# =============================================================================
# Index
# =============================================================================

class Index(Mapping[str, Tuple[Record, ...]]):
    """
    Read-only mapping from bucket key to an ordered tuple of records.

    Bucket keys iterate in sorted order.  ``version`` names the
    documentation snapshot; when the producer supplies none, the
    ordering fingerprint is used so equal content gets equal versions.
    """

    def __init__(self, buckets: Mapping[str, Iterable[Record]], version: Optional[str] = None):
        frozen = {key: tuple(buckets[key]) for key in sorted(buckets) if buckets[key]}
        self._buckets = MappingProxyType(frozen)
        self._by_id: Dict[int, Record] = {
            r.id: r for bucket in frozen.values() for r in bucket
        }
        self.version = version or self.fingerprint()[:16]

    # ── Mapping protocol ──────────────────────────────────────────

    def __getitem__(self, key: str) -> Tuple[Record, ...]:
        return self._buckets[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._buckets)

    def __len__(self) -> int:
        return len(self._buckets)

    # ── Accessors ─────────────────────────────────────────────────

    @property
    def record_count(self) -> int:
        return len(self._by_id)

    def bucket_for(self, text: str) -> Tuple[Record, ...]:
        """Bucket selected by the first character of *text* (empty if none)."""
        return self._buckets.get(bucket_key(text), ())

    def records(self) -> Iterator[Record]:
        """All records, bucket by bucket in stored order."""
        for bucket in self._buckets.values():
            yield from bucket

    def record(self, record_id: int) -> Record:
        try:
            return self._by_id[record_id]
        except KeyError:
            raise RecordNotFoundError(f"No record with id {record_id}") from None

    def fingerprint(self) -> str:
        """SHA256 over the bucket keys and their ordered record ids."""
        hasher = hashlib.sha256()
        for key, bucket in self._buckets.items():
            hasher.update(key.encode("utf-8"))
            hasher.update(b":")
            hasher.update(",".join(str(r.id) for r in bucket).encode("ascii"))
            hasher.update(b";")
        return hasher.hexdigest()

    def get_stats(self) -> Dict[str, object]:
        return {
            "version": self.version,
            "records": self.record_count,
            "buckets": len(self._buckets),
            "largest_bucket": max((len(b) for b in self._buckets.values()), default=0),
        }

    def __repr__(self) -> str:
        return f"Index(version={self.version!r}, records={self.record_count}, buckets={len(self)})"


# =============================================================================
# Builder
# =============================================================================

@dataclass
class BuildResult:
    """Outcome of :meth:`IndexBuilder.build`: the index plus every rejection."""
    index: Index
    errors: List[ValidationError] = field(default_factory=list)

    @property
    def rejected_count(self) -> int:
        return len(self.errors)


@dataclass
class IndexResult:
    """Typed summary of a load → build → save run (see :meth:`Docsym.index`)."""
    files_loaded: int = 0
    records_loaded: int = 0
    records_indexed: int = 0
    records_rejected: int = 0
    buckets: int = 0
    snapshot_version: str = ""
    saved: bool = False
    index_dir: str = ""
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Return a JSON-serializable dict for API/agent pipelines."""
        return asdict(self)


class IndexBuilder:
    """Builds an :class:`Index` from a finalized :class:`RecordStore`."""

    def __init__(self, version: Optional[str] = None):
        self.version = version

    def build(self, store: RecordStore) -> BuildResult:
        """
        Bucket and sort every valid record in *store*.

        Malformed records are excluded and reported in aggregate on the
        returned :class:`BuildResult`; the build itself never fails on them.
        """
        errors: List[ValidationError] = list(store.rejected)
        buckets: Dict[str, List[Record]] = {}

        for record in store.all():
            issues = record.problems()
            if issues:
                errors.append(ValidationError("; ".join(issues), record.id))
                continue
            buckets.setdefault(bucket_key(record.name), []).append(record)

        for bucket in buckets.values():
            bucket.sort(key=sort_key)

        index = Index(buckets, version=self.version)
        logger.info(
            f"Built index {index.version}: {index.record_count:,} records in "
            f"{len(index)} buckets, {len(errors)} rejected"
        )
        for err in errors:
            logger.debug(f"  rejected {err}")
        return BuildResult(index=index, errors=errors)


def build_index(records: Iterable[Record], version: Optional[str] = None) -> BuildResult:
    """Convenience wrapper: store *records* and build an index from them."""
    store = records if isinstance(records, RecordStore) else RecordStore(records)
    return IndexBuilder(version=version).build(store)
