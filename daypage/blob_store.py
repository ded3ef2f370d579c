"""
Image store: async key -> bytes storage backed by SQLite.

Entries reference images by ``Entry.image_ref``. Whoever clears or deletes
that reference is responsible for deleting the blob; an orphaned blob is
wasted space, not an error.

Calls run on a worker thread (``asyncio.to_thread``) so a slow disk never
blocks the event loop. I/O failures are logged and reported through the
return value.
"""

import asyncio
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class ImageStore:
    """SQLite-backed image blobs keyed by opaque id."""

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
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS images (
                    id TEXT PRIMARY KEY,
                    data BLOB NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            self._conn.commit()
        except (sqlite3.Error, OSError) as e:
            logger.error("Cannot open image store %s: %s", self._db_path, e)
            self._conn = None

    # -------------------------------------------------------------------------
    # Sync implementations (run on a worker thread)
    # -------------------------------------------------------------------------

    def _put(self, id: str, data: bytes) -> bool:
        if self._conn is None:
            return False
        now = datetime.now(timezone.utc).isoformat()
        try:
            with self._lock:
                self._conn.execute(
                    "INSERT OR REPLACE INTO images (id, data, created_at) VALUES (?, ?, ?)",
                    (id, sqlite3.Binary(data), now),
                )
                self._conn.commit()
        except sqlite3.Error as e:
            logger.error("Failed to store image %s: %s", id, e)
            return False
        return True

    def _get(self, id: str) -> Optional[bytes]:
        if self._conn is None:
            return None
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT data FROM images WHERE id = ?", (id,)
                ).fetchone()
        except sqlite3.Error as e:
            logger.warning("Failed to read image %s: %s", id, e)
            return None
        return bytes(row[0]) if row else None

    def _delete(self, id: str) -> bool:
        if self._conn is None:
            return False
        try:
            with self._lock:
                cursor = self._conn.execute("DELETE FROM images WHERE id = ?", (id,))
                self._conn.commit()
        except sqlite3.Error as e:
            logger.error("Failed to delete image %s: %s", id, e)
            return False
        return cursor.rowcount > 0

    def _ids(self) -> list[str]:
        if self._conn is None:
            return []
        try:
            with self._lock:
                rows = self._conn.execute("SELECT id FROM images ORDER BY id").fetchall()
        except sqlite3.Error as e:
            logger.warning("Failed to list images: %s", e)
            return []
        return [r[0] for r in rows]

    # -------------------------------------------------------------------------
    # Async interface
    # -------------------------------------------------------------------------

    async def put(self, id: str, data: bytes) -> bool:
        """Store (or replace) an image. Returns True on success."""
        return await asyncio.to_thread(self._put, id, data)

    async def get(self, id: str) -> Optional[bytes]:
        """Fetch an image, or None if missing or unreadable."""
        return await asyncio.to_thread(self._get, id)

    async def delete(self, id: str) -> bool:
        """Delete an image. Returns True if it existed."""
        return await asyncio.to_thread(self._delete, id)

    async def ids(self) -> list[str]:
        return await asyncio.to_thread(self._ids)

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
