"""
Key-value storage collaborators for the RODT ledger.

The ledger needs an ordered key-value store with prefix iteration and a way
to apply several writes as one unit. Two implementations are provided:

- MemoryStore: a dict, sorted on iteration. Used by tests and throwaway nodes.
- SQLiteStore: JSON values in a single SQLite table, batches applied inside
  one transaction, iteration ordered by key.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterator, Mapping, Optional, Tuple

from rodt.core.rodt_exceptions import StorageError

logger = logging.getLogger(__name__)

# Marker for deletions inside a write batch
DELETE = object()


class KeyValueStore(ABC):
    """Ordered key-value store interface consumed by the token store."""

    @abstractmethod
    def get(self, key: str, default: Any | None = None) -> Any:
        """Return the value stored under ``key`` or ``default``."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``; missing keys are ignored."""

    @abstractmethod
    def write_batch(self, writes: Mapping[str, Any]) -> None:
        """Apply all writes as one unit. A value of ``DELETE`` removes the key."""

    @abstractmethod
    def iter_prefix(self, prefix: str) -> Iterator[Tuple[str, Any]]:
        """Yield ``(key, value)`` pairs whose key starts with ``prefix``, ordered by key."""

    def close(self) -> None:
        pass


class MemoryStore(KeyValueStore):
    """In-process store backed by a dict."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def get(self, key: str, default: Any | None = None) -> Any:
        value = self._data.get(key)
        if value is None:
            return default
        # Hand out copies so callers cannot mutate stored state in place
        return json.loads(value)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def write_batch(self, writes: Mapping[str, Any]) -> None:
        # Serialise everything first so a bad value aborts the whole batch
        encoded = {
            key: (value if value is DELETE else json.dumps(value))
            for key, value in writes.items()
        }
        for key, value in encoded.items():
            if value is DELETE:
                self._data.pop(key, None)
            else:
                self._data[key] = value

    def iter_prefix(self, prefix: str) -> Iterator[Tuple[str, Any]]:
        for key in sorted(k for k in self._data if k.startswith(prefix)):
            yield key, json.loads(self._data[key])

    def __len__(self) -> int:
        return len(self._data)


class SQLiteStore(KeyValueStore):
    """
    Persistent key-value store backed by a SQLite database.

    Values are serialised to JSON. Each write batch runs in a single
    transaction so that multi-key updates either land together or not at all.
    """

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._conn: Optional[sqlite3.Connection] = sqlite3.connect(
                self.db_path, check_same_thread=False, isolation_level="EXCLUSIVE"
            )
            self._conn.execute("PRAGMA journal_mode=WAL;")
            self._conn.execute("PRAGMA synchronous=NORMAL;")
            self._create_table()
        except sqlite3.Error as e:
            logger.error(
                "Database connection failed",
                extra={"event": "storage.connect_failed", "path": str(self.db_path), "error": str(e)},
            )
            raise StorageError(f"Could not open {self.db_path}: {e}") from e

    def _create_table(self) -> None:
        with self._conn:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS key_value_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )

    def get(self, key: str, default: Any | None = None) -> Any:
        try:
            row = self._conn.execute(
                "SELECT value FROM key_value_store WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to get key '{key}': {e}") from e
        if row:
            return json.loads(row[0])
        return default

    def set(self, key: str, value: Any) -> None:
        self.write_batch({key: value})

    def delete(self, key: str) -> None:
        self.write_batch({key: DELETE})

    def write_batch(self, writes: Mapping[str, Any]) -> None:
        upserts = [
            (key, json.dumps(value)) for key, value in writes.items() if value is not DELETE
        ]
        deletes = [(key,) for key, value in writes.items() if value is DELETE]
        try:
            with self._conn:
                if upserts:
                    self._conn.executemany(
                        """
                        INSERT INTO key_value_store (key, value)
                        VALUES (?, ?)
                        ON CONFLICT(key) DO UPDATE SET value = excluded.value
                        """,
                        upserts,
                    )
                if deletes:
                    self._conn.executemany(
                        "DELETE FROM key_value_store WHERE key = ?", deletes
                    )
        except sqlite3.Error as e:
            logger.error(
                "Write batch failed",
                extra={"event": "storage.batch_failed", "keys": len(writes), "error": str(e)},
            )
            raise StorageError(f"Failed to write batch: {e}", recoverable=True) from e

    def iter_prefix(self, prefix: str) -> Iterator[Tuple[str, Any]]:
        # substr() keeps the match exact; LIKE would treat % and _ as wildcards
        try:
            rows = self._conn.execute(
                "SELECT key, value FROM key_value_store "
                "WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(prefix), prefix),
            ).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to scan prefix '{prefix}': {e}") from e
        for key, value in rows:
            yield key, json.loads(value)

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
