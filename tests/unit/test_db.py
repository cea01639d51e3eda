"""Tests for the sqlite cache table."""

from datetime import datetime

import pytest

from cancheito.core.db import delete_cache_entry, get_cache_entry, init_db, put_cache_entry


@pytest.fixture()
def db(tmp_path):  # type: ignore[no-untyped-def]
    """Provide a fresh SQLite connection per test."""
    conn = init_db(tmp_path / "test.db")
    yield conn
    conn.close()


class TestInitDb:
    def test_creates_table(self, db) -> None:  # type: ignore[no-untyped-def]
        tables = {
            row[0]
            for row in db.execute(
                "SELECT name FROM sqlite_master WHERE type='table'"
            ).fetchall()
        }
        assert "cache_entries" in tables

    def test_idempotent(self, tmp_path) -> None:  # type: ignore[no-untyped-def]
        """Calling init_db twice on the same path doesn't error."""
        p = tmp_path / "double.db"
        init_db(p).close()
        init_db(p).close()

    def test_creates_parent_dirs(self, tmp_path) -> None:  # type: ignore[no-untyped-def]
        init_db(tmp_path / "nested" / "dir" / "cache.db").close()
        assert (tmp_path / "nested" / "dir" / "cache.db").exists()


class TestCacheEntries:
    def test_missing_key(self, db) -> None:  # type: ignore[no-untyped-def]
        assert get_cache_entry(db, "nope") is None

    def test_put_then_get(self, db) -> None:  # type: ignore[no-untyped-def]
        put_cache_entry(db, "k", '{"a": 1}', datetime(2026, 10, 19, 8, 0))
        assert get_cache_entry(db, "k") == ('{"a": 1}', "2026-10-19T08:00:00")

    def test_put_replaces(self, db) -> None:  # type: ignore[no-untyped-def]
        put_cache_entry(db, "k", "old", datetime(2026, 10, 18))
        put_cache_entry(db, "k", "new", datetime(2026, 10, 19))
        assert get_cache_entry(db, "k") == ("new", "2026-10-19T00:00:00")
        assert db.execute("SELECT COUNT(*) FROM cache_entries").fetchone()[0] == 1

    def test_delete(self, db) -> None:  # type: ignore[no-untyped-def]
        put_cache_entry(db, "k", "x", datetime(2026, 10, 19))
        assert delete_cache_entry(db, "k") is True
        assert delete_cache_entry(db, "k") is False
        assert get_cache_entry(db, "k") is None
