"""SQLite layer for the client-side cache of AI insights."""

import sqlite3
from datetime import datetime
from pathlib import Path

_CACHE_TABLE = """
CREATE TABLE IF NOT EXISTS cache_entries (
    key         TEXT PRIMARY KEY,
    payload     TEXT NOT NULL,
    fetched_at  TEXT NOT NULL
);
"""


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and tables, returning a connection."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(_CACHE_TABLE)
    conn.commit()
    return conn


def get_cache_entry(conn: sqlite3.Connection, key: str) -> tuple[str, str] | None:
    """Return (payload, fetched_at) for a key, or None if absent."""
    row = conn.execute(
        "SELECT payload, fetched_at FROM cache_entries WHERE key = ?",
        (key,),
    ).fetchone()
    if row is None:
        return None
    return (row["payload"], row["fetched_at"])


def put_cache_entry(
    conn: sqlite3.Connection,
    key: str,
    payload: str,
    fetched_at: datetime,
) -> None:
    """Insert or replace the entry stored under key."""
    conn.execute(
        """
        INSERT INTO cache_entries (key, payload, fetched_at)
        VALUES (?, ?, ?)
        ON CONFLICT(key)
        DO UPDATE SET payload = excluded.payload, fetched_at = excluded.fetched_at
        """,
        (key, payload, fetched_at.isoformat()),
    )
    conn.commit()


def delete_cache_entry(conn: sqlite3.Connection, key: str) -> bool:
    """Remove an entry. Returns True if a row was deleted."""
    cursor = conn.execute("DELETE FROM cache_entries WHERE key = ?", (key,))
    conn.commit()
    return cursor.rowcount > 0
