"""SQLite-backed storage for per-device state."""

from .schema import ensure_schema
from .store import KeyValueStore, MemoryKeyValueStore, SQLiteKeyValueStore

__all__ = [
    "KeyValueStore",
    "MemoryKeyValueStore",
    "SQLiteKeyValueStore",
    "ensure_schema",
]
