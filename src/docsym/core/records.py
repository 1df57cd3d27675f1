"""
docsym Record Store

Documentation symbol records and the immutable table that holds them.
"""

import logging
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from docsym.exceptions import RecordNotFoundError, ValidationError

logger = logging.getLogger(__name__)


# =============================================================================
# Data Models
# =============================================================================

class SymbolKind(str, Enum):
    """What a documented symbol is."""
    TYPE = "type"
    FUNCTION = "function"
    VARIABLE = "variable"
    MACRO = "macro"
    NAMESPACE = "namespace"
    FILE = "file"
    PAGE = "page"


@dataclass(frozen=True)
class Record:
    """One indexed documentation symbol.

    ``qualified_path`` runs outer-to-inner and ends with ``name``;
    ``url`` is an opaque locator the engine never interprets.
    """
    id: int
    name: str
    qualified_path: Tuple[str, ...]
    url: str
    kind: SymbolKind = SymbolKind.FUNCTION
    overload_note: Optional[str] = None

    def problems(self) -> List[str]:
        """Return the invariant violations of this record (empty when valid)."""
        issues = []
        if not self.name or not self.name.strip():
            issues.append("empty name")
        if not self.qualified_path:
            issues.append("empty qualified path")
        elif self.qualified_path[-1] != self.name:
            issues.append(
                f"name {self.name!r} does not match last path segment "
                f"{self.qualified_path[-1]!r}"
            )
        return issues

    def qualified_name(self, separator: str = "::") -> str:
        return separator.join(self.qualified_path)

    def to_dict(self) -> dict:
        """Return a JSON-serializable dict."""
        data = asdict(self)
        data["qualified_path"] = list(self.qualified_path)
        data["kind"] = self.kind.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Record":
        """Inverse of :meth:`to_dict`. Raises ``ValidationError`` on bad fields."""
        try:
            return cls(
                id=int(data["id"]),
                name=str(data["name"]),
                qualified_path=tuple(str(s) for s in data["qualified_path"]),
                url=str(data.get("url", "")),
                kind=SymbolKind(data.get("kind", SymbolKind.FUNCTION.value)),
                overload_note=data.get("overload_note"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"unreadable record fields: {e}", data.get("id")) from e


# =============================================================================
# Record Store
# =============================================================================

class RecordStore:
    """
    Immutable table of records keyed by id.

    Populated once from the producer's batch.  A repeated id keeps the
    first record; later ones are collected on :attr:`rejected`.
    """

    def __init__(self, records: Iterable[Record] = ()):
        self._records: Dict[int, Record] = {}
        self._rejected: List[ValidationError] = []
        for record in records:
            if record.id in self._records:
                self._rejected.append(ValidationError("duplicate id", record.id))
                continue
            self._records[record.id] = record
        if self._rejected:
            logger.warning(f"Record store rejected {len(self._rejected)} duplicate id(s)")

    @property
    def rejected(self) -> Tuple[ValidationError, ...]:
        return tuple(self._rejected)

    def get(self, record_id: int) -> Record:
        """Return the record with *record_id*; raises ``RecordNotFoundError``."""
        try:
            return self._records[record_id]
        except KeyError:
            raise RecordNotFoundError(f"No record with id {record_id}") from None

    def all(self) -> Iterator[Record]:
        """Fresh iterator over all records in insertion order."""
        return iter(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    def __iter__(self) -> Iterator[Record]:
        return self.all()
