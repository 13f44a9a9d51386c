"""SQLite key-value store and deal snapshot repository.

The tracker persists its whole deal collection as one JSON value under a
single key. KeyValueStore provides the get/set contract; DealRepository
layers the snapshot codec on top.

Usage:
    from mortgage_crm.db.storage import DealRepository, KeyValueStore

    store = KeyValueStore()
    store.initialize()
    repo = DealRepository(store)

    deals = repo.load() or []
    repo.save(deals)
"""

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Optional

from mortgage_crm.core.config import get_config
from mortgage_crm.core.exceptions import StorageError
from mortgage_crm.core.logging import get_logger
from mortgage_crm.db.models import Deal
from mortgage_crm.db.serialization import dumps_deals, loads_deals

logger = get_logger(__name__)


class KeyValueStore:
    """SQLite-backed string key-value store.

    Attributes:
        db_path: Path to database file
    """

    def __init__(self, db_path: Optional[str] = None):
        """Initialize store.

        Args:
            db_path: Path to database file. Use ":memory:" for in-memory.
                    Defaults to config path.
        """
        if db_path is None:
            self.db_path = str(get_config().db_path)
        else:
            self.db_path = str(db_path)

        self._conn: Optional[sqlite3.Connection] = None

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            try:
                if self.db_path != ":memory:":
                    Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

                self._conn = sqlite3.connect(self.db_path)
                self._conn.row_factory = sqlite3.Row

                if self.db_path != ":memory:":
                    self._conn.execute("PRAGMA journal_mode = WAL")

            except (sqlite3.Error, OSError) as e:
                raise StorageError(f"Cannot connect to store: {e}") from e

        return self._conn

    def close(self) -> None:
        """Close database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def initialize(self) -> None:
        """Create schema if not exists."""
        conn = self._get_connection()
        try:
            conn.execute(
                """CREATE TABLE IF NOT EXISTS kv (
                       key TEXT PRIMARY KEY,
                       value TEXT NOT NULL,
                       updated_at TEXT NOT NULL
                   )"""
            )
            conn.commit()
            logger.info("Store initialized", extra={"context": {"path": self.db_path}})
        except sqlite3.Error as e:
            raise StorageError(f"Cannot initialize store: {e}") from e

    def get(self, key: str) -> Optional[str]:
        """Return the value for key, or None if absent."""
        try:
            row = self._get_connection().execute(
                "SELECT value FROM kv WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot read key {key!r}: {e}") from e
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        """Insert or replace the value for key."""
        conn = self._get_connection()
        try:
            conn.execute(
                """INSERT INTO kv (key, value, updated_at) VALUES (?, ?, ?)
                   ON CONFLICT(key) DO UPDATE SET
                       value = excluded.value,
                       updated_at = excluded.updated_at""",
                (key, value, datetime.now().isoformat()),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot write key {key!r}: {e}") from e

    def delete(self, key: str) -> bool:
        """Remove key. Returns True if it existed."""
        conn = self._get_connection()
        try:
            cursor = conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Cannot delete key {key!r}: {e}") from e
        return cursor.rowcount > 0


class DealRepository:
    """Full-snapshot persistence for the deal collection.

    Every save writes the entire collection; there are no partial writes.
    """

    def __init__(self, store: KeyValueStore, key: Optional[str] = None):
        self.store = store
        self.key = key or get_config().storage_key

    def load(self) -> Optional[list[Deal]]:
        """Return the last saved collection, or None if nothing was saved.

        Raises:
            StorageError: If the store cannot be read or the snapshot is corrupt
        """
        payload = self.store.get(self.key)
        if payload is None:
            return None
        deals = loads_deals(payload)
        logger.debug(
            "Snapshot loaded",
            extra={"context": {"key": self.key, "deals": len(deals)}},
        )
        return deals

    def save(self, deals: list[Deal]) -> None:
        """Persist the full collection.

        Raises:
            StorageError: If the write fails
        """
        self.store.set(self.key, dumps_deals(deals))
        logger.debug(
            "Snapshot saved",
            extra={"context": {"key": self.key, "deals": len(deals)}},
        )
