"""
Local storage - flat string key/value persistence outside the versioned record store.
Values are JSON documents; reads and writes are synchronous.
"""

import json
import sqlite3
from contextlib import contextmanager
from typing import Any, Generator, List, Optional

from .config import get_local_storage_path, ensure_db_directory


class LocalStorage:
    """SQLite-backed key/value storage with get_item/set_item/remove_item semantics."""

    def __init__(self, path: str = None):
        self.path = path or get_local_storage_path()
        self._initialized = False

    @contextmanager
    def get_db(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a SQLite connection, creating the kv table on first use."""
        if not self._initialized:
            ensure_db_directory(self.path)
        conn = sqlite3.connect(self.path)
        try:
            if not self._initialized:
                conn.execute('''
                    CREATE TABLE IF NOT EXISTS kv (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                ''')
                conn.commit()
                self._initialized = True
            yield conn
        finally:
            conn.close()

    def get_item(self, key: str) -> Optional[Any]:
        """Return the decoded value stored under key, or None."""
        with self.get_db() as conn:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        return json.loads(row[0])

    def set_item(self, key: str, value: Any) -> None:
        payload = json.dumps(value)
        with self.get_db() as conn:
            conn.execute(
                "INSERT INTO kv (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP",
                (key, payload)
            )
            conn.commit()

    def remove_item(self, key: str) -> None:
        with self.get_db() as conn:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            conn.commit()

    def keys(self) -> List[str]:
        with self.get_db() as conn:
            return [row[0] for row in conn.execute("SELECT key FROM kv ORDER BY key").fetchall()]
