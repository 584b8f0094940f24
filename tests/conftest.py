"""Shared pytest fixtures for ytgallery tests.

Provides fake upstream clients, a recording sink and sample API records.
"""
# Created: 2026-10-19

import asyncio
from typing import Dict, List, Any, Optional, Iterable

import pytest

from ytgallery.api_client import PlaylistItemsPage
from ytgallery.cache import MemoryCache, PersistentCache
from ytgallery.config.settings import GallerySettings
from ytgallery.engine import GalleryEngine, GallerySink
from ytgallery.errors import UpstreamFailure
from ytgallery.models import PlaylistInfo, PlaylistCache
from ytgallery.normalize import to_video_item


NOW = 1_700_000_000_000.0  # fixed clock, epoch ms


def make_raw_video(video_id: str,
                   title: Optional[str] = None,
                   published_at: str = "2021-12-25T10:00:00Z",
                   duration: str = "PT3M33S",
                   view_count: Optional[str] = "1234",
                   broadcast: str = "none",
                   recording_date: Optional[str] = None,
                   live: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Build a videos.list() item the way the API returns it."""
    raw = {
        'id': video_id,
        'snippet': {
            'title': title or f"Video {video_id}",
            'description': f"Description of {video_id}",
            'publishedAt': published_at,
            'liveBroadcastContent': broadcast,
            'thumbnails': {
                'default': {'url': f"https://i.ytimg.com/vi/{video_id}/default.jpg"},
                'medium': {'url': f"https://i.ytimg.com/vi/{video_id}/mqdefault.jpg"},
            },
        },
        'contentDetails': {'duration': duration},
        'statistics': {},
    }
    if view_count is not None:
        raw['statistics']['viewCount'] = view_count
    if recording_date is not None:
        raw['recordingDetails'] = {'recordingDate': recording_date}
    if live is not None:
        raw['liveStreamingDetails'] = live
    return raw


def make_ids(count: int) -> List[str]:
    return [f"vid{i:04d}" for i in range(count)]


def build_cache(video_ids: Iterable[str], max_results: int = 5,
                built_at: float = NOW) -> PlaylistCache:
    """A complete PlaylistCache, as a finished build would persist it."""
    video_ids = list(video_ids)
    cache = PlaylistCache.empty(
        PlaylistInfo(id="PLtest", title="Test Playlist"),
        built_at, max_results, len(video_ids)
    )
    cache.merge([to_video_item(make_raw_video(v)) for v in video_ids])
    return cache


class FakeClient:
    """In-memory stand-in for YouTubeGalleryClient."""

    def __init__(self, video_ids: Iterable[str], listing_page_size: int = 50,
                 titles: Optional[Dict[str, str]] = None,
                 missing: Iterable[str] = (),
                 log: Optional[list] = None):
        self.video_ids = list(video_ids)
        self.listing_page_size = listing_page_size
        self.titles = titles or {}
        self.missing = set(missing)
        self.log = log if log is not None else []
        self.detail_batches: List[List[str]] = []
        self.listing_calls = 0
        self.info_calls = 0
        self.failures: Dict[str, UpstreamFailure] = {}
        self.fail_on_batch: Optional[int] = None

    @property
    def call_count(self) -> int:
        return self.info_calls + self.listing_calls + len(self.detail_batches)

    def fetch_playlist_info(self, playlist_id: str) -> PlaylistInfo:
        self.info_calls += 1
        if 'info' in self.failures:
            raise self.failures['info']
        return PlaylistInfo(id=playlist_id, title="Test Playlist")

    def list_playlist_items(self, playlist_id: str,
                            page_token: Optional[str] = None) -> PlaylistItemsPage:
        self.listing_calls += 1
        self.log.append(('listing', page_token))
        if 'listing' in self.failures:
            raise self.failures['listing']

        start = int(page_token or 0)
        end = start + self.listing_page_size
        token = str(end) if end < len(self.video_ids) else None
        return PlaylistItemsPage(self.video_ids[start:end], token)

    def fetch_video_details(self, video_ids: List[str]) -> List[Dict[str, Any]]:
        assert len(video_ids) <= 50
        if self.fail_on_batch == len(self.detail_batches):
            self.detail_batches.append(list(video_ids))
            raise UpstreamFailure('backendError', 'Backend Error', 500)

        self.detail_batches.append(list(video_ids))
        self.log.append(('details', list(video_ids)))
        return [
            make_raw_video(v, title=self.titles.get(v))
            for v in video_ids if v not in self.missing
        ]


class GatedClient(FakeClient):
    """FakeClient whose detail call number ``block_on`` waits for ``release()``.

    Must be created inside a running event loop.
    """

    def __init__(self, *args, block_on: int = 0, **kwargs):
        super().__init__(*args, **kwargs)
        self.block_on = block_on
        self.waiting = asyncio.Event()
        self.gate = asyncio.Event()
        self._calls = 0

    def release(self) -> None:
        self.gate.set()

    async def fetch_video_details(self, video_ids: List[str]) -> List[Dict[str, Any]]:
        call = self._calls
        self._calls += 1
        if call == self.block_on:
            self.waiting.set()
            await self.gate.wait()
        return FakeClient.fetch_video_details(self, video_ids)


class RecordingSink(GallerySink):
    """Sink that records every callback."""

    def __init__(self, log: Optional[list] = None):
        self.log = log if log is not None else []
        self.pages: List[tuple] = []
        self.search_results: List[List[str]] = []
        self.errors: List[tuple] = []
        self.clears = 0

    def on_page_ready(self, items, page_number, page_count):
        self.pages.append((page_number, page_count, [item.id for item in items]))
        self.log.append(('page', page_number))

    def on_search_results(self, items):
        self.search_results.append([item.id for item in items])
        self.log.append(('search', len(items)))

    def on_error(self, code, message):
        self.errors.append((code, message))
        self.log.append(('error', code))

    def on_loading_start(self):
        self.log.append(('loading_start',))

    def on_loading_end(self):
        self.log.append(('loading_end',))

    def on_clear(self):
        self.clears += 1
        self.log.append(('clear',))


class SpyStore(MemoryCache):
    """MemoryCache that counts writes."""

    def __init__(self):
        super().__init__()
        self.writes = 0
        self.deletes = 0

    def write(self, key, cache):
        self.writes += 1
        super().write(key, cache)

    def delete(self, key):
        self.deletes += 1
        super().delete(key)


@pytest.fixture
def tmp_cache_dir(tmp_path):
    """Provide a temporary cache directory for tests."""
    cache_dir = tmp_path / "test_cache"
    cache_dir.mkdir(parents=True, exist_ok=True)
    return cache_dir


@pytest.fixture
def test_cache(tmp_cache_dir):
    """Provide a PersistentCache instance with temporary database."""
    return PersistentCache(cache_dir=tmp_cache_dir)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def store():
    return SpyStore()


@pytest.fixture
def make_engine(sink, store):
    """Factory for engines with a fixed clock and in-memory store."""
    def factory(client, max_results: int = 5, search_enabled: bool = True,
                cache_life: int = 86_400_000, **kwargs) -> GalleryEngine:
        options = GallerySettings(
            max_results=max_results,
            search_enabled=search_enabled,
            cache_life=cache_life,
        )
        kwargs.setdefault('store', store)
        kwargs.setdefault('sink', sink)
        return GalleryEngine(
            "PLtest", client,
            options=options,
            clock=lambda: NOW,
            **kwargs
        )
    return factory
