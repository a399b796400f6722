"""SQLite-based file index."""
from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

from ..core.errors import IndexStoreError
from ..core.models import FileRecord, MediaKind, RecordStatus

logger = logging.getLogger(__name__)


MEMORY_PATH = ":memory:"
SCAN_PAGE_SIZE = 500


class SQLiteIndexStore:
    """SQLite implementation of the index store.

    One database per destination library. The connection is shared between
    the caller and the engine thread, so every operation takes an internal
    lock. Storage errors are raised as `IndexStoreError`; callers treat them
    as fatal.
    """

    def __init__(self, db_path: Path | str, _connection: Optional[sqlite3.Connection] = None):
        """Open (and create if needed) the index.

        Args:
            db_path: Path to SQLite database file, or ":memory:".
        """
        self._db_path = str(db_path)
        self._lock = threading.RLock()
        self._conn: Optional[sqlite3.Connection] = _connection
        self._init_database()

    @classmethod
    def snapshot(cls, db_path: Path) -> "SQLiteIndexStore":
        """In-memory copy of an existing index (empty if it does not exist).

        Used by dry runs: decisions see the real index, writes never reach disk.
        """
        try:
            memory = sqlite3.connect(MEMORY_PATH, check_same_thread=False)
            if db_path.exists():
                source = sqlite3.connect(str(db_path))
                try:
                    source.backup(memory)
                finally:
                    source.close()
        except sqlite3.Error as e:
            raise IndexStoreError(f"Cannot read index {db_path}: {e}") from e
        logger.debug("Using in-memory snapshot of %s", db_path)
        return cls(MEMORY_PATH, _connection=memory)

    @property
    def path(self) -> str:
        return self._db_path

    @contextmanager
    def _guard(self, action: str) -> Iterator[sqlite3.Connection]:
        """Serialize access and map storage errors to `IndexStoreError`."""
        with self._lock:
            if self._conn is None:
                raise IndexStoreError(f"Index {self._db_path} is closed")
            try:
                yield self._conn
            except sqlite3.Error as e:
                raise IndexStoreError(f"Index {action} failed ({self._db_path}): {e}") from e

    def _init_database(self) -> None:
        """Create tables if they don't exist."""
        if self._conn is None:
            try:
                self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
            except sqlite3.Error as e:
                raise IndexStoreError(f"Cannot open index {self._db_path}: {e}") from e
        self._conn.row_factory = sqlite3.Row

        with self._guard("initialization") as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS files (
                    fingerprint TEXT PRIMARY KEY,
                    source_path TEXT NOT NULL,
                    dest_path TEXT,
                    media_kind TEXT NOT NULL,
                    captured_at TEXT,
                    status TEXT NOT NULL,
                    imported_at TEXT NOT NULL,
                    date_source TEXT,
                    size_bytes INTEGER DEFAULT 0,
                    error TEXT
                )
            """)
            # Collision checks look records up by destination
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_files_dest
                ON files(dest_path)
            """)
            conn.commit()

    def lookup(self, fingerprint: str) -> Optional[FileRecord]:
        """Get record by fingerprint."""
        with self._guard("lookup") as conn:
            row = conn.execute(
                "SELECT * FROM files WHERE fingerprint = ?",
                (fingerprint,),
            ).fetchone()
        return self._row_to_record(row) if row else None

    def find_by_dest_path(self, dest_path: str) -> Optional[FileRecord]:
        """Get the record placed (or planned) at a destination path."""
        with self._guard("lookup") as conn:
            row = conn.execute(
                "SELECT * FROM files WHERE dest_path = ?",
                (dest_path,),
            ).fetchone()
        return self._row_to_record(row) if row else None

    def upsert(self, record: FileRecord) -> None:
        """Insert or update a record.

        Last writer wins, except that a record which reached copied, moved
        or skipped is never put back to pending.
        """
        with self._guard("write") as conn:
            conn.execute("""
                INSERT INTO files (
                    fingerprint, source_path, dest_path, media_kind,
                    captured_at, status, imported_at, date_source,
                    size_bytes, error
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(fingerprint) DO UPDATE SET
                    source_path = excluded.source_path,
                    dest_path = excluded.dest_path,
                    media_kind = excluded.media_kind,
                    captured_at = excluded.captured_at,
                    status = excluded.status,
                    imported_at = excluded.imported_at,
                    date_source = excluded.date_source,
                    size_bytes = excluded.size_bytes,
                    error = excluded.error
                WHERE excluded.status != 'pending'
                    OR files.status IN ('pending', 'failed')
            """, (
                record.fingerprint,
                record.source_path,
                record.dest_path,
                record.media_kind.value,
                record.captured_at.isoformat() if record.captured_at else None,
                record.status.value,
                record.imported_at.isoformat(),
                record.date_source,
                record.size_bytes,
                record.error,
            ))
            conn.commit()

    def scan_all(self) -> Iterator[FileRecord]:
        """Lazily iterate over every record, in fingerprint order.

        Pages are fetched on demand, so records may be updated or removed
        while iterating.
        """
        last = ""
        while True:
            with self._guard("scan") as conn:
                rows = conn.execute(
                    "SELECT * FROM files WHERE fingerprint > ? ORDER BY fingerprint LIMIT ?",
                    (last, SCAN_PAGE_SIZE),
                ).fetchall()
            if not rows:
                return
            for row in rows:
                yield self._row_to_record(row)
            last = rows[-1]["fingerprint"]

    def remove(self, fingerprint: str) -> bool:
        """Delete a record by fingerprint.

        Returns:
            True if a record was deleted.
        """
        with self._guard("delete") as conn:
            cursor = conn.execute("DELETE FROM files WHERE fingerprint = ?", (fingerprint,))
            conn.commit()
            return cursor.rowcount > 0

    def count_all(self) -> int:
        """Count total records in the index."""
        with self._guard("count") as conn:
            return conn.execute("SELECT COUNT(*) FROM files").fetchone()[0]

    def count_by_status(self) -> dict[RecordStatus, int]:
        """Number of records per status."""
        with self._guard("count") as conn:
            rows = conn.execute(
                "SELECT status, COUNT(*) FROM files GROUP BY status"
            ).fetchall()
        try:
            return {RecordStatus(row[0]): row[1] for row in rows}
        except ValueError as e:
            raise IndexStoreError(f"Corrupt status in {self._db_path}: {e}") from e

    def close(self) -> None:
        """Close database connection."""
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None

    def _row_to_record(self, row: sqlite3.Row) -> FileRecord:
        """Convert database row to FileRecord.

        Raises:
            IndexStoreError: The row holds an unknown kind or status, or an
                unreadable import time.
        """
        captured_at = None
        if row["captured_at"]:
            try:
                captured_at = datetime.fromisoformat(row["captured_at"])
            except ValueError:
                logger.warning("Bad captured_at %r for %s", row["captured_at"], row["fingerprint"])

        try:
            media_kind = MediaKind(row["media_kind"])
            status = RecordStatus(row["status"])
            imported_at = datetime.fromisoformat(row["imported_at"])
        except (ValueError, TypeError) as e:
            raise IndexStoreError(f"Corrupt record {row['fingerprint']} in {self._db_path}: {e}") from e

        return FileRecord(
            fingerprint=row["fingerprint"],
            source_path=row["source_path"],
            dest_path=row["dest_path"],
            media_kind=media_kind,
            captured_at=captured_at,
            status=status,
            imported_at=imported_at,
            date_source=row["date_source"] or "unknown",
            size_bytes=row["size_bytes"] or 0,
            error=row["error"],
        )

    def __enter__(self) -> "SQLiteIndexStore":
        return self

    def __exit__(self, *args) -> None:
        self.close()


def open_index(db_path: Path, dry_run: bool = False) -> SQLiteIndexStore:
    """Open the index for a run; dry runs get an in-memory snapshot."""
    if dry_run:
        return SQLiteIndexStore.snapshot(db_path)
    return SQLiteIndexStore(db_path)
