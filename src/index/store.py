"""
SQLite-backed key/value index.

Every entry is scoped to the page that produced it: the primary key is
(page, key). Values are stored as JSON text. Prefix queries match a literal
string prefix over keys across all pages.

The connection is shared between the request threads and the sync worker
(check_same_thread=False); all access goes through _lock.
"""

import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

log = logging.getLogger(__name__)

_CREATE_INDEX_TABLE = """
CREATE TABLE IF NOT EXISTS kv (
    page TEXT NOT NULL,
    key TEXT NOT NULL,
    value TEXT NOT NULL,
    PRIMARY KEY (page, key)
);
"""

_CREATE_KEY_INDEX = """
CREATE INDEX IF NOT EXISTS idx_kv_key ON kv (key);
"""

# (key, value) pair as passed to batch_set
Record = Tuple[str, Any]


class IndexStore:
    """
    Page-scoped key/value store.

    Usage:
        store = IndexStore()                 # in-memory
        store = IndexStore(Path("idx.db"))   # on disk
        store.batch_set("Inbox", [("task:2", {...})])
        store.query_prefix("task:")
    """

    def __init__(self, db_path: Union[str, Path] = ":memory:") -> None:
        self._lock = threading.RLock()
        self._db = sqlite3.connect(str(db_path), check_same_thread=False)
        self._db.row_factory = sqlite3.Row
        self._db.executescript(_CREATE_INDEX_TABLE + _CREATE_KEY_INDEX)

    def close(self) -> None:
        with self._lock:
            self._db.close()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def batch_set(self, page: str, records: Iterable[Record]) -> None:
        """Insert or replace records under page in one commit."""
        rows = [(page, key, json.dumps(value)) for key, value in records]
        if not rows:
            return
        with self._lock:
            self._db.executemany(
                "INSERT OR REPLACE INTO kv (page, key, value) VALUES (?, ?, ?)", rows
            )
            self._db.commit()

    def delete_prefix(self, page: str, prefix: str) -> int:
        """Delete all of page's keys starting with prefix; returns the row count."""
        with self._lock:
            cursor = self._db.execute(
                "DELETE FROM kv WHERE page = ? AND substr(key, 1, ?) = ?",
                (page, len(prefix), prefix),
            )
            self._db.commit()
            return cursor.rowcount

    def clear_page(self, page: str) -> None:
        """Drop every entry a page owns."""
        with self._lock:
            self._db.execute("DELETE FROM kv WHERE page = ?", (page,))
            self._db.commit()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, page: str, key: str) -> Optional[Any]:
        with self._lock:
            row = self._db.execute(
                "SELECT value FROM kv WHERE page = ? AND key = ?", (page, key)
            ).fetchone()
        return json.loads(row["value"]) if row else None

    def query_prefix(self, prefix: str) -> List[Dict[str, Any]]:
        """
        Return every entry whose key starts with prefix.

        Returns:
            List of {"key", "page", "value"} dicts ordered by page, then key
        """
        with self._lock:
            rows = self._db.execute(
                "SELECT page, key, value FROM kv WHERE substr(key, 1, ?) = ? ORDER BY page, key",
                (len(prefix), prefix),
            ).fetchall()
        return [
            {"key": row["key"], "page": row["page"], "value": json.loads(row["value"])}
            for row in rows
        ]

    def pages(self) -> List[str]:
        with self._lock:
            rows = self._db.execute("SELECT DISTINCT page FROM kv ORDER BY page").fetchall()
        return [row["page"] for row in rows]
