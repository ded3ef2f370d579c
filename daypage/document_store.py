"""
Durable key-value store using SQLite.

Holds the journal's state as whole-collection JSON values under a small
number of fixed keys:

- ``ENTRIES_KEY``: list of entry dicts
- ``JOURNALS_KEY``: ``{"journals": [...], "activeJournalId": "..."}``

Every write replaces the whole value (last write wins). The store never
raises to its callers: a failed read looks like missing data, a failed
write returns False. In-memory state stays the source of truth for the
session when the disk is unavailable.
"""

import json
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

ENTRIES_KEY = "journalEntries_v1"
JOURNALS_KEY = "journalNotebooks_v1"

SCHEMA_VERSION = 1


class DocumentStore:
    """
    SQLite-backed store for whole-collection JSON values.

    One row per key. Values are JSON text so a corrupt row can be detected
    and reported as absent rather than crashing the load.
    """

    def __init__(self, db_path: Path):
        """
        Args:
            db_path: Path to SQLite database file
        """
        self._db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the SQLite database. Failure leaves the store offline."""
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value_json TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            self._conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
            self._conn.commit()
        except (sqlite3.Error, OSError) as e:
            logger.error("Cannot open store %s: %s", self._db_path, e)
            self._conn = None

    def _now(self) -> str:
        """Current timestamp in ISO format."""
        return datetime.now(timezone.utc).isoformat()

    @property
    def available(self) -> bool:
        return self._conn is not None

    # -------------------------------------------------------------------------
    # Read / Write
    # -------------------------------------------------------------------------

    def load(self, key: str) -> Any:
        """
        Load and parse the value stored under a key.

        Returns:
            The parsed JSON value, or None if missing, unreadable or corrupt
        """
        if self._conn is None:
            return None
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT value_json FROM kv WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as e:
            logger.warning("Failed to load %s: %s", key, e)
            return None
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning("Corrupt value under %s, treating as empty: %s", key, e)
            return None

    def save(self, key: str, value: Any) -> bool:
        """
        Replace the value stored under a key.

        Returns:
            True if the write was committed
        """
        if self._conn is None:
            logger.warning("Store offline, %s not saved", key)
            return False
        try:
            value_json = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            logger.error("Cannot serialize %s: %s", key, e)
            return False
        try:
            with self._lock:
                self._conn.execute("""
                    INSERT OR REPLACE INTO kv (key, value_json, updated_at)
                    VALUES (?, ?, ?)
                """, (key, value_json, self._now()))
                self._conn.commit()
        except sqlite3.Error as e:
            logger.error("Failed to save %s: %s", key, e)
            return False
        return True

    def delete(self, key: str) -> bool:
        """Remove a key. Returns True if a row was deleted."""
        if self._conn is None:
            return False
        try:
            with self._lock:
                cursor = self._conn.execute("DELETE FROM kv WHERE key = ?", (key,))
                self._conn.commit()
        except sqlite3.Error as e:
            logger.error("Failed to delete %s: %s", key, e)
            return False
        return cursor.rowcount > 0

    def keys(self) -> list[str]:
        if self._conn is None:
            return []
        try:
            with self._lock:
                rows = self._conn.execute("SELECT key FROM kv ORDER BY key").fetchall()
        except sqlite3.Error as e:
            logger.warning("Failed to list keys: %s", e)
            return []
        return [r[0] for r in rows]

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
