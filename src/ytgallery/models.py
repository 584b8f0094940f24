"""Data models for playlist galleries.

Defines the playlist metadata, display items and the cached page layout
shared by the client, the cache store and the pagination engine.
"""
# Created: 2026-10-19

import math
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Optional, List, Dict, Any

from .errors import CacheCorruptionError


class Direction(Enum):
    """Pagination direction."""
    NEXT = "next"
    BACK = "back"


class EngineState(Enum):
    """Lifecycle states of the pagination engine."""
    UNINITIALIZED = "uninitialized"
    LOADING_LISTING = "loading_listing"
    LOADING_DETAILS = "loading_details"
    READY = "ready"
    PAGINATING = "paginating"
    SEARCHING = "searching"
    REFRESHING = "refreshing"
    FAILED = "failed"


def pick_thumbnail(thumbnails: Dict[str, Any],
                   qualities=('medium', 'high', 'default')) -> Optional[str]:
    """Return the first thumbnail URL available in preference order."""
    for quality in qualities:
        if quality in thumbnails:
            return thumbnails[quality].get('url')
    return None


@dataclass(frozen=True)
class PlaylistInfo:
    """Metadata about a YouTube playlist."""
    id: str
    title: str
    description: str = ""
    channel_title: Optional[str] = None
    thumbnail_url: Optional[str] = None
    item_count: int = 0
    published_at: Optional[str] = None  # ISO 8601, as returned by the API

    @classmethod
    def from_youtube_response(cls, item: Dict[str, Any]) -> 'PlaylistInfo':
        """Create a PlaylistInfo from a playlists.list() item.

        Args:
            item: Single item from playlists.list() response

        Returns:
            PlaylistInfo instance
        """
        snippet = item.get('snippet', {})
        content_details = item.get('contentDetails', {})

        return cls(
            id=item['id'],
            title=snippet.get('title', 'Untitled'),
            description=snippet.get('description', ''),
            channel_title=snippet.get('channelTitle'),
            thumbnail_url=pick_thumbnail(snippet.get('thumbnails', {}),
                                         ('high', 'medium', 'default')),
            item_count=content_details.get('itemCount', 0),
            published_at=snippet.get('publishedAt'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlaylistInfo':
        return cls(**data)


@dataclass(frozen=True)
class VideoItem:
    """A single normalized playlist entry, ready for display."""
    id: str
    title: str
    description: str
    date: str
    thumbnail_url: Optional[str]
    duration: str  # "H:MM:SS", "M:SS", "LIVE" or "UPCOMING"
    views_display: str

    @property
    def url(self) -> str:
        return f"https://www.youtube.com/watch?v={self.id}"

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on title or date."""
        needle = query.casefold()
        return needle in self.title.casefold() or needle in self.date.casefold()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VideoItem':
        return cls(**data)

    def __str__(self) -> str:
        return f"{self.title} [{self.duration}]"


# A display page: at most max_results items, in listing order.
CachePage = List[VideoItem]


@dataclass
class PlaylistCache:
    """The persisted gallery layout for one playlist.

    Items are appended strictly in listing order. Every page except the
    last holds exactly ``max_results`` items; while a build is running the
    trailing pages may be partial or not yet present.
    """
    playlist_info: Optional[PlaylistInfo]
    built_at: float  # epoch milliseconds
    max_results: int
    total_count: int = 0
    page_count: int = 0
    pages: List[CachePage] = field(default_factory=list)

    @classmethod
    def empty(cls, playlist_info: Optional[PlaylistInfo], built_at: float,
              max_results: int, total_count: int) -> 'PlaylistCache':
        """Start a new build for ``total_count`` listed videos."""
        cache = cls(
            playlist_info=playlist_info,
            built_at=built_at,
            max_results=max_results,
            total_count=total_count,
        )
        cache.page_count = cache._expected_pages()
        return cache

    @property
    def item_count(self) -> int:
        return sum(len(page) for page in self.pages)

    @property
    def is_complete(self) -> bool:
        return self.item_count == self.total_count

    def _expected_pages(self) -> int:
        return math.ceil(self.total_count / self.max_results)

    def _completed_pages(self) -> int:
        count = self.item_count
        completed = count // self.max_results
        if count == self.total_count and count % self.max_results:
            completed += 1
        return completed

    def is_page_complete(self, index: int) -> bool:
        return index < self._completed_pages()

    def merge(self, items: List[VideoItem], missing: int = 0) -> List[int]:
        """Append a batch of items to the page layout.

        Args:
            items: Normalized items, in listing order
            missing: Number of listed ids the detail endpoint did not return

        Returns:
            0-based indices of pages that became complete with this batch
        """
        before = self._completed_pages()
        self.total_count -= missing

        for item in items:
            if not self.pages or len(self.pages[-1]) >= self.max_results:
                self.pages.append([])
            self.pages[-1].append(item)

        self.page_count = self._expected_pages()
        return list(range(before, self._completed_pages()))

    def get_page(self, index: int) -> CachePage:
        """Return page ``index`` (0-based), possibly partial mid-build."""
        if not 0 <= index < self.page_count:
            raise IndexError(
                f"Page index {index} out of range (page count: {self.page_count})"
            )
        if index < len(self.pages):
            return list(self.pages[index])
        return []

    def iter_items(self):
        for page in self.pages:
            yield from page

    def is_stale(self, now: float, cache_life: float) -> bool:
        """Whether this entry is older than ``cache_life`` milliseconds."""
        return now - self.built_at > cache_life

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            'playlistInfo': self.playlist_info.to_dict() if self.playlist_info else None,
            'builtAt': self.built_at,
            'maxResults': self.max_results,
            'totalCount': self.total_count,
            'pageCount': self.page_count,
            'pages': [[item.to_dict() for item in page] for page in self.pages],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PlaylistCache':
        """Rebuild a cache from its dictionary form.

        Raises:
            CacheCorruptionError: If the payload is malformed or inconsistent
        """
        try:
            info = data['playlistInfo']
            cache = cls(
                playlist_info=PlaylistInfo.from_dict(info) if info else None,
                built_at=float(data['builtAt']),
                max_results=int(data['maxResults']),
                total_count=int(data['totalCount']),
                page_count=int(data['pageCount']),
                pages=[
                    [VideoItem.from_dict(item) for item in page]
                    for page in data['pages']
                ],
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise CacheCorruptionError(f"Malformed cache record: {e}") from e

        if cache.max_results < 1:
            raise CacheCorruptionError("Cache record has invalid page size")
        short_pages = [p for p in cache.pages[:-1] if len(p) != cache.max_results]
        if (cache.page_count != cache._expected_pages()
                or len(cache.pages) != cache.page_count
                or short_pages or not cache.is_complete):
            raise CacheCorruptionError(
                f"Cache record is inconsistent: {cache.item_count} items, "
                f"{cache.total_count} expected, {cache.page_count} pages"
            )
        return cache


@dataclass
class PaginationCursor:
    """Engine-owned view state. Never persisted."""
    current_page: int = 1  # 1-based
    page_count: int = 0
    search_active: bool = False
    last_search_results: Optional[List[VideoItem]] = None
    page_before_search: Optional[int] = None

    @property
    def at_first_page(self) -> bool:
        return self.current_page <= 1

    @property
    def at_last_page(self) -> bool:
        return self.current_page >= self.page_count

    def clear_search(self) -> None:
        if self.page_before_search is not None:
            self.current_page = min(self.page_before_search, max(self.page_count, 1))
        self.search_active = False
        self.last_search_results = None
        self.page_before_search = None
