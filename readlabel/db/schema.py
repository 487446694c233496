"""Database schema definitions and migration helpers."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

# Ordered (version, DDL) steps; a database at version N gets every step above N
_MIGRATIONS: list[tuple[int, str]] = [
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS kv_store (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime'))
        );
        """,
    ),
]

_SCHEMA_VERSION = _MIGRATIONS[-1][0]


def _connect(db_path: str | Path) -> sqlite3.Connection:
    if str(db_path) == ":memory:":
        return sqlite3.connect(":memory:")
    path = Path(db_path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    try:
        conn.execute("PRAGMA journal_mode=WAL")
    except sqlite3.Error:
        conn.close()
        raise
    return conn


def schema_version(conn: sqlite3.Connection) -> int:
    """Return the applied schema version, 0 for a new database."""
    conn.execute(
        "CREATE TABLE IF NOT EXISTS schema_version (version INTEGER NOT NULL)"
    )
    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    return row[0] or 0


def migrate(conn: sqlite3.Connection) -> int:
    """Apply pending migrations in one transaction per step.

    Returns:
        The schema version after migrating.
    """
    current = schema_version(conn)
    for version, ddl in _MIGRATIONS:
        if version <= current:
            continue
        logger.info("Migrating database schema to version %d", version)
        with conn:
            for statement in filter(str.strip, ddl.split(";")):
                conn.execute(statement)
            conn.execute("DELETE FROM schema_version")
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )
        current = version
    return current


def ensure_schema(db_path: str | Path) -> sqlite3.Connection:
    """Open (or create) the database and bring the schema up to date.

    Args:
        db_path: Path to the SQLite database file, or ``":memory:"``.

    Returns:
        An open sqlite3.Connection with the schema applied.

    Raises:
        sqlite3.Error: If the file is not a usable SQLite database.
        OSError: If the parent directory cannot be created.
    """
    conn = _connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        migrate(conn)
    except sqlite3.Error:
        conn.close()
        raise
    return conn
