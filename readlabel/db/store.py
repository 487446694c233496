"""Durable per-device key-value storage."""

from __future__ import annotations

import copy
import json
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from .schema import ensure_schema


class KeyValueStore(ABC):
    """Abstract JSON key-value store."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the stored value, or None if the key is absent."""
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    def close(self) -> None:
        pass


class MemoryKeyValueStore(KeyValueStore):
    """In-process store, used by tests and one-off runs."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def get(self, key: str) -> Any | None:
        if key not in self._data:
            return None
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class SQLiteKeyValueStore(KeyValueStore):
    """Key-value store backed by the kv_store table.

    Values are serialized as JSON. A stored value that no longer parses is
    reported as a ValueError so callers can decide how to recover.
    """

    def __init__(
        self, db_path: str | Path = "~/.config/readlabel/readlabel.db"
    ) -> None:
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = ensure_schema(self._db_path)
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def get(self, key: str) -> Any | None:
        conn = self._get_conn()
        row = conn.execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return None
        return json.loads(row["value"])

    def set(self, key: str, value: Any) -> None:
        conn = self._get_conn()
        conn.execute(
            """INSERT INTO kv_store (key, value)
               VALUES (?, ?)
               ON CONFLICT(key) DO UPDATE SET
                 value=excluded.value,
                 updated_at=datetime('now', 'localtime')""",
            (key, json.dumps(value, ensure_ascii=False)),
        )
        conn.commit()

    def delete(self, key: str) -> None:
        conn = self._get_conn()
        conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        conn.commit()
