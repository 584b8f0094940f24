"""Tests for cache stores.

Tests PersistentCache and MemoryCache including:
- Database schema creation
- Writing, reading and replacing records
- Corrupt records read as misses
- Expiry cleanup and statistics
"""
# Created: 2026-10-19

import sqlite3

import pytest

from ytgallery.cache import MemoryCache, PersistentCache, cache_key

from conftest import NOW, build_cache, make_ids


def assert_db_table_exists(db_path, table_name: str) -> bool:
    """Helper to check if a table exists in SQLite database."""
    with sqlite3.connect(db_path) as conn:
        cursor = conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (table_name,)
        )
        return cursor.fetchone() is not None


class TestSchema:
    """Test database schema."""

    def test_tables_created(self, test_cache):
        assert assert_db_table_exists(test_cache.db_path, "playlist_cache")
        assert assert_db_table_exists(test_cache.db_path, "cache_metadata")

    def test_schema_version_recorded(self, test_cache):
        with sqlite3.connect(test_cache.db_path) as conn:
            row = conn.execute(
                "SELECT value FROM cache_metadata WHERE key = 'schema_version'"
            ).fetchone()
        assert int(row[0]) == PersistentCache.SCHEMA_VERSION

    def test_reopen_existing_database(self, tmp_cache_dir):
        first = PersistentCache(tmp_cache_dir)
        first.write("k", build_cache(make_ids(3)))

        second = PersistentCache(tmp_cache_dir)

        assert second.read("k").total_count == 3


class TestPersistentCache:
    """Test reading and writing records."""

    def test_read_missing_key(self, test_cache):
        assert test_cache.read("ytgallery-nothing") is None

    def test_write_then_read(self, test_cache):
        cache = build_cache(make_ids(12))

        test_cache.write("k", cache)

        assert test_cache.read("k") == cache

    def test_write_replaces_whole_record(self, test_cache):
        test_cache.write("k", build_cache(make_ids(12)))
        test_cache.write("k", build_cache(make_ids(2)))

        restored = test_cache.read("k")
        assert restored.total_count == 2
        assert test_cache.keys() == ["k"]

    def test_delete(self, test_cache):
        test_cache.write("k", build_cache(make_ids(3)))

        test_cache.delete("k")

        assert test_cache.read("k") is None

    def test_corrupt_payload_is_a_miss(self, test_cache):
        with sqlite3.connect(test_cache.db_path) as conn:
            conn.execute(
                "INSERT INTO playlist_cache (key, payload, built_at) VALUES (?, ?, ?)",
                ("k", '{"pages": "nope"}', NOW)
            )
            conn.commit()

        assert test_cache.read("k") is None

    def test_unreadable_payload_is_a_miss(self, test_cache):
        with sqlite3.connect(test_cache.db_path) as conn:
            conn.execute(
                "INSERT INTO playlist_cache (key, payload, built_at) VALUES (?, ?, ?)",
                ("k", "not json at all", NOW)
            )
            conn.commit()

        assert test_cache.read("k") is None

    def test_clear(self, test_cache):
        test_cache.write("a", build_cache(make_ids(1)))
        test_cache.write("b", build_cache(make_ids(1)))

        test_cache.clear()

        assert test_cache.keys() == []

    def test_cleanup_expired(self, test_cache):
        test_cache.write("old", build_cache(make_ids(1), built_at=NOW - 5000))
        test_cache.write("new", build_cache(make_ids(1), built_at=NOW - 10))

        removed = test_cache.cleanup_expired(cache_life=1000, now=NOW)

        assert removed == 1
        assert test_cache.keys() == ["new"]

    def test_stats(self, test_cache):
        test_cache.write("a", build_cache(make_ids(12), built_at=NOW - 100))
        test_cache.write("b", build_cache(make_ids(3), built_at=NOW))
        test_cache.read("a")
        test_cache.read("a")

        stats = test_cache.get_stats()

        assert stats['playlist_count'] == 2
        assert stats['page_count'] == 4
        assert stats['total_hits'] == 2
        assert stats['oldest_entry'] == NOW - 100
        assert stats['newest_entry'] == NOW
        assert stats['cache_path'] == str(test_cache.db_path)


class TestMemoryCache:
    """Test the in-process store."""

    def test_write_then_read(self):
        store = MemoryCache()
        cache = build_cache(make_ids(4))

        store.write("k", cache)

        assert store.read("k") == cache

    def test_reads_are_independent_copies(self):
        store = MemoryCache()
        store.write("k", build_cache(make_ids(4)))

        first = store.read("k")
        first.pages.clear()

        assert store.read("k").item_count == 4

    def test_delete_missing_key(self):
        MemoryCache().delete("nothing")


def test_cache_key():
    assert cache_key("PL123") == "ytgallery-PL123"
