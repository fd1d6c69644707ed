"""Storage drivers for saved result records.

A driver persists ``StoredRecord`` objects and a small key/value config
table (vault salt, canary). It never encrypts or decrypts anything:
sealed fields arrive sealed and leave sealed.

SQLiteRecordDriver follows the backup history database pattern:
SQLite + WAL via core.db.connect(), one short connection per call.
"""

import json
import logging
import sqlite3
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from copy import deepcopy
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from ..exceptions import StorageError
from ..models import from_iso, to_iso
from .records import StoredRecord

logger = logging.getLogger(__name__)


class RecordDriver(ABC):
    """Physical storage behind ResultVaultStore. Methods are blocking."""

    @abstractmethod
    def get_meta(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set_meta(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    def insert(self, record: StoredRecord) -> None:
        ...

    @abstractmethod
    def fetch(self, record_id: str) -> Optional[StoredRecord]:
        ...

    @abstractmethod
    def fetch_all(self) -> List[StoredRecord]:
        """Return all records (index fields only), newest evaluation first."""

    @abstractmethod
    def update_fields(
        self,
        record_id: str,
        updated_at: datetime,
        tags: Optional[List[str]] = None,
        sealed_fields: Optional[Dict[str, str]] = None,
    ) -> bool:
        """Replace tags (if given), merge sealed fields, set updated_at.

        Returns True if the record existed.
        """

    @abstractmethod
    def delete(self, record_id: str) -> bool:
        """Returns True if a record was removed."""


class MemoryRecordDriver(RecordDriver):
    """In-process driver (tests, ephemeral sessions). Nothing touches disk."""

    def __init__(self):
        self._meta: Dict[str, str] = {}
        self._records: Dict[str, StoredRecord] = {}
        self._lock = threading.Lock()

    def get_meta(self, key: str) -> Optional[str]:
        with self._lock:
            return self._meta.get(key)

    def set_meta(self, key: str, value: str) -> None:
        with self._lock:
            self._meta[key] = value

    def insert(self, record: StoredRecord) -> None:
        with self._lock:
            if record.id in self._records:
                raise StorageError("Duplicate record id", operation="insert", record_id=record.id)
            self._records[record.id] = deepcopy(record)

    def fetch(self, record_id: str) -> Optional[StoredRecord]:
        with self._lock:
            record = self._records.get(record_id)
            return deepcopy(record) if record else None

    def fetch_all(self) -> List[StoredRecord]:
        with self._lock:
            records = [deepcopy(r) for r in self._records.values()]
        for record in records:
            record.sealed_fields = {}
        records.sort(key=lambda r: r.evaluated_at, reverse=True)
        return records

    def update_fields(self, record_id, updated_at, tags=None, sealed_fields=None) -> bool:
        with self._lock:
            record = self._records.get(record_id)
            if record is None:
                return False
            if tags is not None:
                record.tags = list(tags)
            if sealed_fields:
                record.sealed_fields.update(sealed_fields)
            record.updated_at = updated_at
            return True

    def delete(self, record_id: str) -> bool:
        with self._lock:
            return self._records.pop(record_id, None) is not None


class SQLiteRecordDriver(RecordDriver):
    """SQLite persistence for saved result records.

    Args:
        db_path: Path to SQLite database file. Defaults to the configured
            vault database (BENEFIT_VAULT_DATA_DIR / BENEFIT_VAULT_DB_NAME).
    """

    def __init__(self, db_path: Optional[Union[str, Path]] = None):
        if db_path is None:
            from ..config import get_settings
            db_path = get_settings().db_path
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_database()

    @contextmanager
    def _connect(self, row_factory: bool = False) -> Iterator[sqlite3.Connection]:
        from ..core.db import connect as db_connect
        conn = db_connect(self.db_path, row_factory=row_factory)
        try:
            yield conn
        finally:
            conn.close()

    def _init_database(self):
        try:
            with self._connect() as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS vault_config (
                        key   TEXT PRIMARY KEY,
                        value TEXT NOT NULL
                    )
                """)
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS saved_results (
                        id                 TEXT PRIMARY KEY,
                        evaluated_at       TEXT NOT NULL,
                        evaluated_ts       REAL NOT NULL,
                        state              TEXT,
                        qualified_count    INTEGER NOT NULL DEFAULT 0,
                        total_programs     INTEGER NOT NULL DEFAULT 0,
                        programs_evaluated TEXT NOT NULL DEFAULT '[]',
                        tags               TEXT NOT NULL DEFAULT '[]',
                        created_at         TEXT NOT NULL,
                        updated_at         TEXT NOT NULL,
                        sealed_fields      TEXT NOT NULL DEFAULT '{}'
                    )
                """)
                conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_saved_results_ts "
                    "ON saved_results (evaluated_ts DESC)"
                )
                conn.commit()
        except sqlite3.Error as e:
            raise StorageError("Could not initialise vault database", operation="init") from e
        logger.debug("Vault database ready: %s", self.db_path.name)

    # ── Config ───────────────────────────────────────────────────────

    def get_meta(self, key: str) -> Optional[str]:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT value FROM vault_config WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as e:
            raise StorageError("Could not read vault config", operation="get_meta") from e
        return row[0] if row else None

    def set_meta(self, key: str, value: str) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    "INSERT OR REPLACE INTO vault_config (key, value) VALUES (?, ?)",
                    (key, value),
                )
                conn.commit()
        except sqlite3.Error as e:
            raise StorageError("Could not write vault config", operation="set_meta") from e

    # ── CRUD ─────────────────────────────────────────────────────────

    def insert(self, record: StoredRecord) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    """INSERT INTO saved_results
                       (id, evaluated_at, evaluated_ts, state, qualified_count,
                        total_programs, programs_evaluated, tags, created_at,
                        updated_at, sealed_fields)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        record.id,
                        to_iso(record.evaluated_at),
                        record.evaluated_at.timestamp(),
                        record.state,
                        record.qualified_count,
                        record.total_programs,
                        json.dumps(record.programs_evaluated),
                        json.dumps(record.tags),
                        to_iso(record.created_at),
                        to_iso(record.updated_at),
                        json.dumps(record.sealed_fields),
                    ),
                )
                conn.commit()
        except sqlite3.Error as e:
            raise StorageError("Could not save result", operation="insert", record_id=record.id) from e

    def fetch(self, record_id: str) -> Optional[StoredRecord]:
        try:
            with self._connect(row_factory=True) as conn:
                row = conn.execute(
                    "SELECT * FROM saved_results WHERE id = ?", (record_id,)
                ).fetchone()
        except sqlite3.Error as e:
            raise StorageError("Could not read result", operation="fetch", record_id=record_id) from e
        return self._row_to_record(row) if row else None

    def fetch_all(self) -> List[StoredRecord]:
        try:
            with self._connect(row_factory=True) as conn:
                rows = conn.execute(
                    """SELECT id, evaluated_at, state, qualified_count, total_programs,
                              programs_evaluated, tags, created_at, updated_at
                       FROM saved_results ORDER BY evaluated_ts DESC"""
                ).fetchall()
        except sqlite3.Error as e:
            raise StorageError("Could not list results", operation="fetch_all") from e
        return [self._row_to_record(r) for r in rows]

    def update_fields(self, record_id, updated_at, tags=None, sealed_fields=None) -> bool:
        try:
            with self._connect(row_factory=True) as conn:
                conn.execute("BEGIN IMMEDIATE")
                row = conn.execute(
                    "SELECT sealed_fields FROM saved_results WHERE id = ?", (record_id,)
                ).fetchone()
                if row is None:
                    conn.rollback()
                    return False

                merged = json.loads(row["sealed_fields"] or "{}")
                merged.update(sealed_fields or {})
                if tags is not None:
                    conn.execute(
                        "UPDATE saved_results SET tags = ? WHERE id = ?",
                        (json.dumps(list(tags)), record_id),
                    )
                conn.execute(
                    "UPDATE saved_results SET sealed_fields = ?, updated_at = ? WHERE id = ?",
                    (json.dumps(merged), to_iso(updated_at), record_id),
                )
                conn.commit()
        except sqlite3.Error as e:
            raise StorageError("Could not update result", operation="update", record_id=record_id) from e
        return True

    def delete(self, record_id: str) -> bool:
        try:
            with self._connect() as conn:
                cursor = conn.execute("DELETE FROM saved_results WHERE id = ?", (record_id,))
                removed = cursor.rowcount > 0
                conn.commit()
        except sqlite3.Error as e:
            raise StorageError("Could not delete result", operation="delete", record_id=record_id) from e
        return removed

    # ── helpers ──────────────────────────────────────────────────────

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> StoredRecord:
        keys = row.keys()
        sealed = json.loads(row["sealed_fields"]) if "sealed_fields" in keys else {}
        return StoredRecord(
            id=row["id"],
            evaluated_at=from_iso(row["evaluated_at"]),
            qualified_count=row["qualified_count"],
            total_programs=row["total_programs"],
            programs_evaluated=json.loads(row["programs_evaluated"] or "[]"),
            tags=json.loads(row["tags"] or "[]"),
            created_at=from_iso(row["created_at"]),
            updated_at=from_iso(row["updated_at"]),
            state=row["state"],
            sealed_fields=sealed,
        )
