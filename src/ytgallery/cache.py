"""Caching system for ytgallery.

Persists one assembled gallery layout per playlist, keyed by playlist id,
using SQLite. A dict-backed store is provided for embedding and tests.
"""
# Created: 2026-10-19

import json
import sqlite3
import time
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional, Any

from .errors import CacheCorruptionError
from .models import PlaylistCache


logger = logging.getLogger(__name__)


def cache_key(playlist_id: str) -> str:
    """Store key for a playlist."""
    return f"ytgallery-{playlist_id}"


def now_ms() -> float:
    return time.time() * 1000


class CacheStore(ABC):
    """Key-value persistence for PlaylistCache records.

    Writes replace the whole record or leave the previous one in place.
    """

    @abstractmethod
    def read(self, key: str) -> Optional[PlaylistCache]:
        """Return the record for ``key``, or None if absent or unreadable."""

    @abstractmethod
    def write(self, key: str, cache: PlaylistCache) -> None:
        """Store ``cache`` under ``key``."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove the record for ``key`` if present."""


def _decode(key: str, payload: str) -> Optional[PlaylistCache]:
    try:
        return PlaylistCache.from_dict(json.loads(payload))
    except (ValueError, CacheCorruptionError) as e:
        logger.warning(f"Discarding corrupt cache entry {key}: {e}")
        return None


class MemoryCache(CacheStore):
    """In-process store. Records are kept serialized so readers never share state."""

    def __init__(self):
        self._store: Dict[str, str] = {}

    def read(self, key: str) -> Optional[PlaylistCache]:
        payload = self._store.get(key)
        if payload is None:
            return None
        return _decode(key, payload)

    def write(self, key: str, cache: PlaylistCache) -> None:
        self._store[key] = json.dumps(cache.to_dict())

    def delete(self, key: str) -> None:
        self._store.pop(key, None)


class PersistentCache(CacheStore):
    """SQLite-based persistent cache for gallery layouts."""

    SCHEMA_VERSION = 1

    def __init__(self, cache_dir: Optional[Path] = None):
        """Initialize persistent cache.

        Args:
            cache_dir: Directory for cache database (default: ~/.cache/ytgallery)
        """
        if cache_dir is None:
            cache_dir = Path.home() / ".cache" / "ytgallery"
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        self.db_path = self.cache_dir / "cache.db"
        self._init_database()

        logger.debug(f"Initialized persistent cache at {self.db_path}")

    def _init_database(self) -> None:
        """Initialize SQLite database with schema."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS cache_metadata (
                    key TEXT PRIMARY KEY,
                    value TEXT,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS playlist_cache (
                    key TEXT PRIMARY KEY,
                    payload TEXT NOT NULL,
                    built_at REAL NOT NULL,
                    page_count INTEGER,
                    hit_count INTEGER DEFAULT 0
                )
            """)

            conn.execute("CREATE INDEX IF NOT EXISTS idx_playlist_cache_built ON playlist_cache(built_at)")

            cursor = conn.execute("SELECT value FROM cache_metadata WHERE key = 'schema_version'")
            row = cursor.fetchone()

            if row is None:
                conn.execute(
                    "INSERT INTO cache_metadata (key, value) VALUES ('schema_version', ?)",
                    (str(self.SCHEMA_VERSION),)
                )
            elif int(row[0]) < self.SCHEMA_VERSION:
                logger.info(f"Migrating cache schema from version {row[0]} to {self.SCHEMA_VERSION}")
                conn.execute(
                    "UPDATE cache_metadata SET value = ? WHERE key = 'schema_version'",
                    (str(self.SCHEMA_VERSION),)
                )

            conn.commit()

    def read(self, key: str) -> Optional[PlaylistCache]:
        """Get the cached layout for a key.

        Returns:
            PlaylistCache if present and parseable, None otherwise
        """
        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.execute(
                    "SELECT payload FROM playlist_cache WHERE key = ?", (key,)
                )
                row = cursor.fetchone()
                if row is None:
                    return None

                conn.execute(
                    "UPDATE playlist_cache SET hit_count = hit_count + 1 WHERE key = ?",
                    (key,)
                )
                conn.commit()
        except sqlite3.DatabaseError as e:
            logger.warning(f"Could not read cache entry {key}: {e}")
            return None

        cache = _decode(key, row[0])
        if cache is not None:
            logger.debug(f"Cache hit: {key} ({cache.page_count} pages)")
        return cache

    def write(self, key: str, cache: PlaylistCache) -> None:
        """Replace the cached layout for a key in a single transaction."""
        payload = json.dumps(cache.to_dict())
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("""
                INSERT OR REPLACE INTO playlist_cache (key, payload, built_at, page_count, hit_count)
                VALUES (?, ?, ?, ?, 0)
            """, (key, payload, cache.built_at, cache.page_count))
            conn.commit()
        logger.debug(f"Cached {cache.item_count} items in {cache.page_count} pages for {key}")

    def delete(self, key: str) -> None:
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DELETE FROM playlist_cache WHERE key = ?", (key,))
            conn.commit()
        logger.debug(f"Invalidated cache for {key}")

    def keys(self) -> List[str]:
        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute("SELECT key FROM playlist_cache ORDER BY key")
            return [row[0] for row in cursor.fetchall()]

    def clear(self) -> None:
        """Clear entire cache."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("DELETE FROM playlist_cache")
            conn.commit()
        logger.info("Cleared entire cache")

    def cleanup_expired(self, cache_life: float, now: Optional[float] = None) -> int:
        """Remove entries older than ``cache_life`` milliseconds.

        Returns:
            Number of entries removed
        """
        cutoff = (now if now is not None else now_ms()) - cache_life

        with sqlite3.connect(self.db_path) as conn:
            cursor = conn.execute(
                "DELETE FROM playlist_cache WHERE built_at < ?", (cutoff,)
            )
            count = cursor.rowcount
            conn.commit()

        if count > 0:
            logger.info(f"Cleaned up {count} expired cache entries")
        return count

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics.

        Returns:
            Dictionary with cache stats
        """
        with sqlite3.connect(self.db_path) as conn:
            stats = {}

            cursor = conn.execute("SELECT COUNT(*), SUM(page_count), SUM(hit_count) FROM playlist_cache")
            count, pages, hits = cursor.fetchone()
            stats['playlist_count'] = count
            stats['page_count'] = pages or 0
            stats['total_hits'] = hits or 0

            cursor = conn.execute("SELECT MIN(built_at), MAX(built_at) FROM playlist_cache")
            oldest, newest = cursor.fetchone()
            if oldest is not None:
                stats['oldest_entry'] = oldest
                stats['newest_entry'] = newest

        stats['cache_size_mb'] = self.db_path.stat().st_size / (1024 * 1024)
        stats['cache_path'] = str(self.db_path)
        return stats
