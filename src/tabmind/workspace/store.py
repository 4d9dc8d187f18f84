"""
Key-value stores for persisting workspace state.

Values are JSON-compatible objects; ``set`` replaces the whole value.
"""

import json
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from tabmind.config import get_logger
from tabmind.exceptions import StorageError

logger = get_logger(__name__)


class KeyValueStore(ABC):
    """Abstract interface for persistent key-value storage."""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """
        Read a value.

        Args:
            key: Storage key

        Returns:
            The stored value, or None if the key is absent
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """
        Store a value, replacing any previous one.

        Args:
            key: Storage key
            value: JSON-compatible value
        """
        pass

    async def close(self) -> None:
        pass


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store. Values are round-tripped through JSON like the SQLite store."""

    def __init__(self):
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    async def set(self, key: str, value: Any) -> None:
        try:
            self._data[key] = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for '{key}' is not JSON serializable: {e}") from e


class SQLiteKeyValueStore(KeyValueStore):
    """SQLite-backed store: one row per key, JSON-encoded values."""

    def __init__(self, db_path: Path):
        """
        Initialize the database connection.

        Args:
            db_path: Path to the SQLite database file (":memory:" for a temporary one)
        """
        self.db_path = db_path
        if str(db_path) != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self._initialize_schema()

    def _initialize_schema(self):
        """Create the database schema if it doesn't exist."""
        cursor = self.conn.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        self.conn.commit()

    async def get(self, key: str) -> Optional[Any]:
        try:
            row = self.conn.execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read '{key}': {e}") from e

        if row is None:
            return None
        try:
            return json.loads(row["value"])
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt value stored for '{key}': {e}") from e

    async def set(self, key: str, value: Any) -> None:
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for '{key}' is not JSON serializable: {e}") from e

        try:
            self.conn.execute(
                """
                INSERT INTO kv_store (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                """,
                (key, encoded),
            )
            self.conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to write '{key}': {e}") from e
        logger.debug(f"Stored '{key}' ({len(encoded)} bytes)")

    async def close(self) -> None:
        self.conn.close()
