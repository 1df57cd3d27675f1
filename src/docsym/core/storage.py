"""
docsym Snapshot Storage

Persists built indexes in a sidecar SQLite database
(``<root>/.docsym/snapshots.db``).  Each snapshot is one immutable,
zlib-compressed JSON blob keyed by its version; loading it restores the
exact bucket ordering without re-sorting.
"""

import json
import logging
import sqlite3
import threading
import zlib
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from docsym.core.index import Index
from docsym.core.records import Record
from docsym.exceptions import DocsymError, IndexNotFoundError, ValidationError

logger = logging.getLogger(__name__)

PAYLOAD_FORMAT = 1


class SnapshotStore:
    """SQLite-backed store of index snapshots.

    Uses thread-local connections so that each thread reuses a single
    connection instead of opening/closing one per method call.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._local = threading.local()
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Return a thread-local SQLite connection, creating it on first use."""
        if not hasattr(self._local, "conn") or self._local.conn is None:
            self._local.conn = sqlite3.connect(self.db_path)
        return self._local.conn

    def close(self) -> None:
        """Close the thread-local connection for the current thread. Idempotent."""
        if hasattr(self._local, "conn") and self._local.conn is not None:
            self._local.conn.close()
            self._local.conn = None

    def __enter__(self) -> "SnapshotStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _init_db(self):
        """Initialize the database schema."""
        conn = self._get_connection()
        conn.execute("""
            CREATE TABLE IF NOT EXISTS snapshots (
                version TEXT PRIMARY KEY,
                fingerprint TEXT NOT NULL,
                created_at TIMESTAMP NOT NULL,
                record_count INTEGER NOT NULL,
                bucket_count INTEGER NOT NULL,
                payload BLOB NOT NULL,
                indexed_seq INTEGER NOT NULL DEFAULT 0
            )
        """)
        conn.execute("CREATE INDEX IF NOT EXISTS idx_snapshots_indexed ON snapshots(indexed_seq)")
        conn.commit()

    # ── Write ─────────────────────────────────────────────────────

    def save(self, index: Index) -> bool:
        """
        Persist *index* under its version.

        Either way the version becomes the latest one.  Snapshots are
        immutable: saving a version that already exists keeps the stored
        payload and returns ``False``.
        """
        payload = self._encode(index)
        conn = self._get_connection()
        # ISO string avoids the deprecated sqlite3 datetime adapter
        now_iso = datetime.now().isoformat()
        seq = conn.execute("SELECT COALESCE(MAX(indexed_seq), 0) + 1 FROM snapshots").fetchone()[0]
        cursor = conn.execute("""
            INSERT OR IGNORE INTO snapshots
            (version, fingerprint, created_at, record_count, bucket_count, payload, indexed_seq)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (index.version, index.fingerprint(), now_iso,
              index.record_count, len(index), payload, seq))
        written = cursor.rowcount == 1
        if not written:
            conn.execute("UPDATE snapshots SET indexed_seq = ? WHERE version = ?", (seq, index.version))
        conn.commit()
        if written:
            logger.info(f"Saved snapshot {index.version} ({len(payload):,} bytes) to {self.db_path}")
        else:
            logger.debug(f"Snapshot {index.version} already stored; marked as latest")
        return written

    def delete(self, version: str) -> bool:
        conn = self._get_connection()
        cursor = conn.execute("DELETE FROM snapshots WHERE version = ?", (version,))
        conn.commit()
        return cursor.rowcount > 0

    # ── Read ──────────────────────────────────────────────────────

    def load(self, version: Optional[str] = None) -> Index:
        """Load snapshot *version* (the most recent one when omitted).

        Raises :class:`IndexNotFoundError` when no such snapshot exists.
        """
        conn = self._get_connection()
        if version is None:
            row = conn.execute("""
                SELECT version, fingerprint, payload FROM snapshots
                ORDER BY indexed_seq DESC, rowid DESC LIMIT 1
            """).fetchone()
        else:
            row = conn.execute(
                "SELECT version, fingerprint, payload FROM snapshots WHERE version = ?",
                (version,),
            ).fetchone()
        if row is None:
            what = f"snapshot {version!r}" if version else "any snapshot"
            raise IndexNotFoundError(f"No docsym index found: {what} missing in {self.db_path}")

        stored_version, fingerprint, payload = row
        index = self._decode(payload, stored_version)
        if index.fingerprint() != fingerprint:
            raise DocsymError(f"Snapshot {stored_version} is corrupt (fingerprint mismatch)")
        return index

    def versions(self) -> List[Dict[str, Any]]:
        """Stored snapshots, most recently indexed first (metadata only)."""
        conn = self._get_connection()
        conn.row_factory = sqlite3.Row
        cursor = conn.execute("""
            SELECT version, fingerprint, created_at, record_count, bucket_count
            FROM snapshots ORDER BY indexed_seq DESC, rowid DESC
        """)
        results = [dict(row) for row in cursor.fetchall()]
        conn.row_factory = None
        return results

    def get_stats(self) -> Dict[str, Any]:
        """Snapshot count plus the shape of the latest snapshot."""
        snapshots = self.versions()
        latest = snapshots[0] if snapshots else None
        return {
            "snapshots": len(snapshots),
            "latest_version": latest["version"] if latest else None,
            "records": latest["record_count"] if latest else 0,
            "buckets": latest["bucket_count"] if latest else 0,
        }

    # ── Encoding ──────────────────────────────────────────────────

    @staticmethod
    def _encode(index: Index) -> bytes:
        doc = {
            "format": PAYLOAD_FORMAT,
            "version": index.version,
            "buckets": {
                key: [record.to_dict() for record in bucket]
                for key, bucket in index.items()
            },
        }
        return zlib.compress(json.dumps(doc, ensure_ascii=False).encode("utf-8"))

    @staticmethod
    def _decode(payload: bytes, version: str) -> Index:
        try:
            doc = json.loads(zlib.decompress(payload).decode("utf-8"))
            if doc.get("format") != PAYLOAD_FORMAT:
                raise DocsymError(f"Unsupported snapshot format {doc.get('format')!r}")
            buckets = {
                key: [Record.from_dict(item) for item in items]
                for key, items in doc["buckets"].items()
            }
        except (zlib.error, UnicodeDecodeError, json.JSONDecodeError, KeyError, ValidationError) as e:
            raise DocsymError(f"Snapshot {version} is unreadable: {e}") from e
        return Index(buckets, version=version)
