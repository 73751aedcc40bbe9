"""Durable key-value storage for bot state."""

import json
import logging
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


class KeyValueStore:
    """JSON values in a single SQLite table.

    Every ``set`` is committed before it returns, so callers never need a
    separate save step.
    """

    def __init__(self, db_path: str):
        self.db_path = Path(db_path)

    def get_connection(self) -> sqlite3.Connection:
        """Get database connection with proper settings."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    def ensure_schema(self) -> None:
        # closing() releases the connection; the inner block commits
        with closing(self.get_connection()) as conn, conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS bot_state (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
        logger.info(f"Key-value schema ensured at {self.db_path}")

    def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None if the key was never set."""
        with closing(self.get_connection()) as conn:
            row = conn.execute(
                "SELECT value FROM bot_state WHERE key = ?", (key,)
            ).fetchone()
        if row is None:
            return None
        return json.loads(row["value"])

    def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value)
        with closing(self.get_connection()) as conn, conn:
            conn.execute(
                """
                INSERT INTO bot_state (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, payload),
            )


def create_key_value_store(db_path: str) -> KeyValueStore:
    """Factory function returning a store with its schema in place."""
    store = KeyValueStore(db_path)
    store.ensure_schema()
    return store
