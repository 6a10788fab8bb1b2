# secureshare/storage/sqlite_store.py
from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional, Set

from secureshare.domain.errors import SlotNotFound, StorageFault
from secureshare.domain.slot import FileRecord, Slot, TextRecord
from secureshare.logger import get_logger
from secureshare.storage.base import SlotStorage
from secureshare.storage.blob_store import BlobStore

logger = get_logger(__name__)

CREATE_SQL = """
CREATE TABLE IF NOT EXISTS slots (
  id TEXT PRIMARY KEY,
  password_hash TEXT NOT NULL,
  created_at INTEGER NOT NULL,      -- epoch ms
  expires_at INTEGER NOT NULL,      -- epoch ms
  failed_attempts INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS files (
  id TEXT PRIMARY KEY,
  slot_id TEXT NOT NULL REFERENCES slots (id),
  filename TEXT NOT NULL UNIQUE,
  original_name TEXT NOT NULL,
  size INTEGER NOT NULL,
  mime_type TEXT,
  uploaded_at INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS text_contents (
  slot_id TEXT PRIMARY KEY REFERENCES slots (id),
  content TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_slots_expires ON slots (expires_at);
CREATE INDEX IF NOT EXISTS idx_files_slot ON files (slot_id);
"""


def to_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def from_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


class SqliteSlotStorage(SlotStorage):
    """
    Metadatos de slots en SQLite.

    Una sola conexión compartida entre hilos, protegida por un RLock; cada
    método del contrato es una transacción (BEGIN IMMEDIATE) completa.
    """

    def __init__(self, database_path: str, blob_store: BlobStore) -> None:
        super().__init__(blob_store)
        self.database_path = database_path
        self._lock = threading.RLock()
        try:
            if database_path != ":memory:":
                Path(database_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(
                database_path,
                check_same_thread=False,
                isolation_level=None,
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA foreign_keys=ON")
            self._conn.executescript(CREATE_SQL)
        except (sqlite3.Error, OSError) as e:
            raise StorageFault(f"Cannot open database {database_path}: {e}") from e
        logger.info("SQLite storage ready at %s", database_path)

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                self._conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as e:
                raise StorageFault(f"Cannot start transaction: {e}") from e
            try:
                yield self._conn
            except sqlite3.Error as e:
                self._conn.execute("ROLLBACK")
                raise StorageFault(f"Database error: {e}") from e
            except BaseException:
                self._conn.execute("ROLLBACK")
                raise
            else:
                try:
                    self._conn.execute("COMMIT")
                except sqlite3.Error as e:
                    raise StorageFault(f"Commit failed: {e}") from e

    # --- row mapping ---

    @staticmethod
    def _slot_from_row(row: sqlite3.Row) -> Slot:
        return Slot(
            id=row["id"],
            password_hash=row["password_hash"],
            created_at=from_ms(row["created_at"]),
            expires_at=from_ms(row["expires_at"]),
            failed_attempts=row["failed_attempts"],
        )

    @staticmethod
    def _file_from_row(row: sqlite3.Row) -> FileRecord:
        return FileRecord(
            id=row["id"],
            slot_id=row["slot_id"],
            filename=row["filename"],
            original_name=row["original_name"],
            size=row["size"],
            mime_type=row["mime_type"],
            uploaded_at=from_ms(row["uploaded_at"]),
        )

    # --- slots ---

    def insert_slot(self, slot: Slot) -> bool:
        with self._transaction() as db:
            cur = db.execute(
                "INSERT OR IGNORE INTO slots (id, password_hash, created_at, expires_at, failed_attempts) "
                "VALUES (?, ?, ?, ?, ?)",
                (slot.id, slot.password_hash, to_ms(slot.created_at), to_ms(slot.expires_at), slot.failed_attempts),
            )
            return cur.rowcount == 1

    def get_slot(self, slot_id: str) -> Optional[Slot]:
        with self._transaction() as db:
            row = db.execute("SELECT * FROM slots WHERE id = ?", (slot_id,)).fetchone()
        return self._slot_from_row(row) if row else None

    def increment_failed_attempts(self, slot_id: str) -> int:
        with self._transaction() as db:
            db.execute("UPDATE slots SET failed_attempts = failed_attempts + 1 WHERE id = ?", (slot_id,))
            row = db.execute("SELECT failed_attempts FROM slots WHERE id = ?", (slot_id,)).fetchone()
        return row["failed_attempts"] if row else 0

    def list_expired_slots(self, now: datetime) -> List[Slot]:
        with self._transaction() as db:
            rows = db.execute(
                "SELECT * FROM slots WHERE expires_at <= ? ORDER BY expires_at", (to_ms(now),)
            ).fetchall()
        return [self._slot_from_row(r) for r in rows]

    # --- files / text ---

    def add_file(self, record: FileRecord) -> None:
        with self._transaction() as db:
            if not db.execute("SELECT 1 FROM slots WHERE id = ?", (record.slot_id,)).fetchone():
                raise SlotNotFound(record.slot_id)
            db.execute(
                "INSERT INTO files (id, slot_id, filename, original_name, size, mime_type, uploaded_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    record.id,
                    record.slot_id,
                    record.filename,
                    record.original_name,
                    record.size,
                    record.mime_type,
                    to_ms(record.uploaded_at),
                ),
            )

    def list_files(self, slot_id: str) -> List[FileRecord]:
        with self._transaction() as db:
            rows = db.execute(
                "SELECT * FROM files WHERE slot_id = ? ORDER BY uploaded_at, rowid", (slot_id,)
            ).fetchall()
        return [self._file_from_row(r) for r in rows]

    def get_file(self, file_id: str) -> Optional[FileRecord]:
        with self._transaction() as db:
            row = db.execute("SELECT * FROM files WHERE id = ?", (file_id,)).fetchone()
        return self._file_from_row(row) if row else None

    def upsert_text(self, record: TextRecord) -> None:
        with self._transaction() as db:
            if not db.execute("SELECT 1 FROM slots WHERE id = ?", (record.slot_id,)).fetchone():
                raise SlotNotFound(record.slot_id)
            db.execute(
                "INSERT INTO text_contents (slot_id, content) VALUES (?, ?) "
                "ON CONFLICT (slot_id) DO UPDATE SET content = excluded.content",
                (record.slot_id, record.content),
            )

    def get_text(self, slot_id: str) -> Optional[TextRecord]:
        with self._transaction() as db:
            row = db.execute("SELECT * FROM text_contents WHERE slot_id = ?", (slot_id,)).fetchone()
        return TextRecord(slot_id=row["slot_id"], content=row["content"]) if row else None

    def referenced_blob_names(self) -> Set[str]:
        with self._transaction() as db:
            rows = db.execute("SELECT filename FROM files").fetchall()
        return {r["filename"] for r in rows}

    # --- deletion ---

    def _delete_slot_rows(self, slot_id: str) -> bool:
        with self._transaction() as db:
            db.execute("DELETE FROM files WHERE slot_id = ?", (slot_id,))
            db.execute("DELETE FROM text_contents WHERE slot_id = ?", (slot_id,))
            cur = db.execute("DELETE FROM slots WHERE id = ?", (slot_id,))
            return cur.rowcount == 1

    def close(self) -> None:
        with self._lock:
            self._conn.close()
