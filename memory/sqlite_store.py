"""SQLite-backed key/value store for locally persisted JSON documents."""

import sqlite3
import json
import logging
import threading
from pathlib import Path
from datetime import datetime
from typing import Any, List, Optional

logger = logging.getLogger(__name__)


class SQLiteKeyValueStore:
    """
    Persistent JSON documents under fixed keys.

    Plays the part browser local storage plays for the web dashboard:
    each key holds one JSON document that is read whole and written whole.
    """

    def __init__(self, db_path: str = "data/polymind.db"):
        """
        Initialize key/value store.

        Args:
            db_path: Path to SQLite database file, or ":memory:"
        """
        self.db_path = db_path
        self._lock = threading.Lock()
        self._memory_conn: Optional[sqlite3.Connection] = None
        if db_path == ":memory:":
            self._memory_conn = sqlite3.connect(db_path, check_same_thread=False)
        else:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection with row factory."""
        conn = self._memory_conn or sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _release(self, conn: sqlite3.Connection):
        if conn is not self._memory_conn:
            conn.close()

    def _init_db(self):
        """Initialize database schema."""
        conn = self._get_connection()
        conn.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        conn.commit()
        self._release(conn)
        logger.info(f"Key/value store initialized at {self.db_path}")

    def get_json(self, key: str, default: Any = None) -> Any:
        """
        Read a document.

        Returns default when the key is missing or its value is not valid JSON.
        """
        with self._lock:
            conn = self._get_connection()
            try:
                row = conn.execute(
                    "SELECT value FROM kv_store WHERE key = ?",
                    (key,)
                ).fetchone()
            finally:
                self._release(conn)

        if not row:
            return default
        try:
            return json.loads(row["value"])
        except ValueError:
            logger.warning(f"Stored value for {key} is not valid JSON, ignoring it")
            return default

    def set_json(self, key: str, value: Any):
        """Write a document, replacing any previous value."""
        payload = json.dumps(value, ensure_ascii=False)
        with self._lock:
            conn = self._get_connection()
            try:
                conn.execute(
                    """
                    INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                    """,
                    (key, payload, datetime.now().isoformat())
                )
                conn.commit()
            finally:
                self._release(conn)

    def delete(self, key: str):
        with self._lock:
            conn = self._get_connection()
            try:
                conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
                conn.commit()
            finally:
                self._release(conn)

    def keys(self) -> List[str]:
        with self._lock:
            conn = self._get_connection()
            try:
                rows = conn.execute("SELECT key FROM kv_store ORDER BY key").fetchall()
            finally:
                self._release(conn)
        return [row["key"] for row in rows]
