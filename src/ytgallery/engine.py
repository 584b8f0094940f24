"""Pagination engine for playlist galleries.

Builds the cached page layout for a playlist from the YouTube API and
serves page, search and refresh requests to a rendering sink.

A build walks the playlistItems listing to the end, then fetches video
details in chunks of ``min(max_results, 50)`` ids, merging each chunk
into display-sized pages as it arrives. Pages are revealed to the sink
as soon as they are complete, and the finished layout is written to the
cache store exactly once.
"""
# Created: 2026-10-19

import asyncio
import inspect
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Any

from .api_client import YouTubeGalleryClient, MAX_BATCH_SIZE
from .cache import CacheStore, MemoryCache, PersistentCache, cache_key, now_ms
from .config.settings import GallerySettings, Settings
from .errors import ConfigError, UpstreamFailure
from .models import (
    CachePage, Direction, EngineState, PaginationCursor, PlaylistCache,
    PlaylistInfo, VideoItem
)
from .normalize import to_video_item


logger = logging.getLogger(__name__)


class GallerySink:
    """Receiver of engine output. All callbacks default to no-ops.

    Callbacks may be plain methods or coroutines; the engine awaits
    whatever they return if it is awaitable.
    """

    def on_page_ready(self, items: List[VideoItem], page_number: int, page_count: int):
        """A page is ready. ``page_number`` is 1-based."""

    def on_search_results(self, items: List[VideoItem]):
        """Search results replace the page view; pagination is hidden."""

    def on_error(self, code: str, message: str):
        """The current build failed; only refresh can recover."""

    def on_loading_start(self):
        pass

    def on_loading_end(self):
        pass

    def on_clear(self):
        """Drop everything currently shown."""


class GalleryEngine:
    """Builds, caches and serves the paged view of one playlist."""

    def __init__(self,
                 playlist_id: str,
                 client,
                 sink: GallerySink,
                 store: Optional[CacheStore] = None,
                 options: Optional[GallerySettings] = None,
                 request_timeout: Optional[float] = None,
                 clock: Callable[[], float] = now_ms):
        """Initialize the engine. No I/O happens here.

        Args:
            playlist_id: YouTube playlist to display
            client: Upstream client (see YouTubeGalleryClient)
            sink: Receiver of pages, search results and errors
            store: Cache store (default: in-memory)
            options: Gallery settings (default: GallerySettings())
            request_timeout: Per-request timeout in seconds
            clock: Current time in epoch milliseconds

        Raises:
            ConfigError: If a required argument is missing or invalid
        """
        if not playlist_id:
            raise ConfigError("No playlist ID set")
        if client is None:
            raise ConfigError("No upstream client set")
        if sink is None:
            raise ConfigError("No gallery sink set")

        self.options = options or GallerySettings()
        if self.options.max_results < 1:
            raise ConfigError(f"max_results must be at least 1, got {self.options.max_results}")

        self.playlist_id = playlist_id
        self.client = client
        self.sink = sink
        self.store = store if store is not None else MemoryCache()
        self.request_timeout = request_timeout
        self._clock = clock

        self.cache_key = cache_key(playlist_id)
        self.cache: Optional[PlaylistCache] = None
        self.cursor = PaginationCursor()
        self.state = EngineState.UNINITIALIZED

        self._generation = 0
        self._render_complete = True

    @classmethod
    def from_settings(cls, playlist_id: str, sink: GallerySink,
                      settings: Optional[Settings] = None,
                      client=None,
                      store: Optional[CacheStore] = None) -> 'GalleryEngine':
        """Wire an engine from loaded settings.

        Builds the YouTube client and the persistent store unless given.
        """
        settings = settings or Settings()

        if client is None:
            client = YouTubeGalleryClient(
                settings.youtube.api_key,
                daily_quota=settings.youtube.daily_quota
            )

        if store is None:
            if settings.cache.enabled:
                directory = settings.cache.directory
                store = PersistentCache(Path(directory).expanduser() if directory else None)
            else:
                store = MemoryCache()

        return cls(
            playlist_id,
            client,
            sink,
            store=store,
            options=settings.gallery,
            request_timeout=settings.youtube.request_timeout,
        )

    # ------ Properties ------

    @property
    def max_results(self) -> int:
        return self.options.max_results

    @property
    def page_count(self) -> int:
        return self.cursor.page_count

    @property
    def current_page(self) -> int:
        return self.cursor.current_page

    @property
    def playlist_info(self) -> Optional[PlaylistInfo]:
        return self.cache.playlist_info if self.cache else None

    @property
    def is_loading(self) -> bool:
        return self.state in (EngineState.LOADING_LISTING, EngineState.LOADING_DETAILS)

    @property
    def pagination_visible(self) -> bool:
        """Pagination controls are hidden on failure and while searching."""
        return (self.cache is not None
                and self.state is not EngineState.FAILED
                and not self.cursor.search_active)

    # ------ Public operations ------

    async def initialize(self) -> None:
        """Serve from cache if fresh, otherwise build from the API."""
        if self.state is not EngineState.UNINITIALIZED:
            logger.debug(f"Engine for {self.playlist_id} already initialized")
            return

        cached = self.store.read(self.cache_key)

        if cached is None:
            logger.info(f"Cache for {self.cache_key} not found... building")
        elif cached.max_results != self.max_results:
            logger.info(f"Cache for {self.cache_key} uses page size {cached.max_results}, "
                        f"not {self.max_results}... building")
            cached = None
        elif cached.is_stale(self._clock(), self.options.cache_life):
            logger.info(f"Cache for {self.cache_key} is older than "
                        f"{self.options.cache_life} ms... building")
            cached = None

        if cached is None:
            await self._build(self._next_generation())
            return

        logger.info(f"Cache for {self.cache_key} is fresh... using cache")
        self.cache = cached
        self.cursor.page_count = cached.page_count
        self.state = EngineState.READY
        await self._serve_current()

    def get_page(self, index: Optional[int] = None) -> CachePage:
        """Return a page of items.

        Args:
            index: 0-based page index (default: the cursor's page)

        Raises:
            IndexError: If ``index`` is outside ``0 <= index < page_count``
        """
        if self.cache is None:
            raise IndexError("No pages available")
        if index is None:
            index = self.cursor.current_page - 1
        return self.cache.get_page(index)

    async def paginate(self, direction: Direction) -> bool:
        """Move one page forwards or backwards and serve it.

        Ignored at the first/last page, while search results are shown, and
        while a previous page is still being rendered.

        Returns:
            True if the cursor moved
        """
        if not self._render_complete:
            logger.debug("Page render in progress... ignoring pagination")
            return False
        if self.cache is None or self.cursor.search_active:
            return False
        if direction is Direction.NEXT and self.cursor.at_last_page:
            return False
        if direction is Direction.BACK and self.cursor.at_first_page:
            return False

        with self._transient(EngineState.PAGINATING):
            self.cursor.current_page += 1 if direction is Direction.NEXT else -1
            await self._serve_current()
        return True

    async def search(self, query: str) -> Optional[List[VideoItem]]:
        """Filter cached items by title or date.

        An empty query ends an active search and re-serves the page held
        before it. Result sets outside ``1..max_results`` are ignored, which
        keeps the legacy gallery behaviour.

        Returns:
            The applied results, or None if nothing changed
        """
        if not self.options.search_enabled:
            logger.debug("Search is disabled")
            return None

        if not query:
            if self.cursor.search_active:
                with self._transient(EngineState.SEARCHING):
                    self.cursor.clear_search()
                    await self._serve_current()
            return None

        if self.cache is None:
            return None

        results = [item for item in self.cache.iter_items() if item.matches(query)]
        if not 0 < len(results) <= self.max_results:
            logger.info(f"Search for {query!r} matched {len(results)} items "
                        f"(shown only for 1-{self.max_results})... ignoring")
            return None

        with self._transient(EngineState.SEARCHING):
            if not self.cursor.search_active:
                self.cursor.page_before_search = self.cursor.current_page
            self.cursor.search_active = True
            self.cursor.last_search_results = results
            await self._notify('on_search_results', list(results))
        return results

    async def refresh(self) -> None:
        """Discard cursor and cache entry, then rebuild regardless of age."""
        generation = self._next_generation()
        self.state = EngineState.REFRESHING
        self.cursor = PaginationCursor()
        self.cache = None
        self._render_complete = True
        self.store.delete(self.cache_key)
        logger.info(f"Refreshing {self.cache_key}")

        await self._notify('on_clear')
        await self._build(generation)

    # ------ Build ------

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _is_current(self, generation: int) -> bool:
        if generation != self._generation:
            logger.debug(f"Discarding results of superseded build {generation}")
            return False
        return True

    async def _build(self, generation: int) -> None:
        self.cache = None
        self.cursor.page_count = 0
        await self._notify('on_loading_start')

        try:
            await self._run_build(generation)
        except UpstreamFailure as failure:
            if not self._is_current(generation):
                return
            logger.error(f"Building {self.cache_key} failed: {failure}")
            self.state = EngineState.FAILED
            self.cache = None
            self.cursor.page_count = 0
            await self._notify('on_loading_end')
            await self._notify('on_error', failure.code, failure.message)
            return

        if self._is_current(generation):
            await self._notify('on_loading_end')

    async def _run_build(self, generation: int) -> None:
        self.state = EngineState.LOADING_LISTING
        info = await self._call(self.client.fetch_playlist_info, self.playlist_id)
        if not self._is_current(generation):
            return

        video_ids = await self._collect_video_ids(generation)
        if video_ids is None:
            return

        cache = PlaylistCache.empty(info, self._clock(), self.max_results, len(video_ids))
        self.cache = cache
        self.cursor.page_count = cache.page_count
        self.state = EngineState.LOADING_DETAILS

        chunk_size = min(self.max_results, MAX_BATCH_SIZE)
        for start in range(0, len(video_ids), chunk_size):
            chunk = video_ids[start:start + chunk_size]
            records = await self._call(self.client.fetch_video_details, chunk)
            if not self._is_current(generation):
                return

            items, missing = self._normalize_batch(chunk, records)
            completed = cache.merge(items, missing)
            self.cursor.page_count = cache.page_count
            last_page = max(cache.page_count, 1)
            if self.cursor.search_active:
                # Only the page to return to may move under a search
                if (self.cursor.page_before_search or 1) > last_page:
                    self.cursor.page_before_search = last_page
            elif self.cursor.current_page > last_page:
                # Missing videos shrank the playlist below the cursor
                self.cursor.current_page = last_page
                if cache.is_page_complete(last_page - 1):
                    completed.append(last_page - 1)
            logger.debug(f"Retrieved {cache.item_count}/{cache.total_count} items "
                         f"for {self.cache_key}")

            await self._reveal(completed)
            if not self._is_current(generation):
                return

        try:
            self.store.write(self.cache_key, cache)
        except Exception as e:
            logger.error(f"Could not persist {self.cache_key}: {e}")

        self.state = EngineState.READY
        logger.info(f"Built {self.cache_key}: {cache.total_count} videos "
                    f"in {cache.page_count} pages")

        if cache.page_count == 0 and not self.cursor.search_active:
            await self._serve_current()

    async def _collect_video_ids(self, generation: int) -> Optional[List[str]]:
        """Follow the listing page tokens until the playlist is exhausted."""
        video_ids: List[str] = []
        seen = set()
        token = None

        while True:
            page = await self._call(self.client.list_playlist_items, self.playlist_id, token)
            if not self._is_current(generation):
                return None

            for video_id in page.video_ids:
                if video_id in seen:
                    logger.debug(f"Video {video_id} listed twice... keeping first")
                    continue
                seen.add(video_id)
                video_ids.append(video_id)

            token = page.next_page_token
            if not token:
                break

        logger.info(f"Playlist items successfully grabbed with {len(video_ids)} items... "
                    f"grabbing item data")
        return video_ids

    def _normalize_batch(self, chunk: List[str],
                         records: List[dict]) -> Tuple[List[VideoItem], int]:
        """Normalize detail records back into the requested id order."""
        by_id = {}
        for raw in records:
            try:
                item = to_video_item(raw)
            except (KeyError, TypeError, ValueError) as e:
                raise UpstreamFailure('malformed_response', f"Unreadable video record: {e}") from e
            by_id[item.id] = item

        items = [by_id[video_id] for video_id in chunk if video_id in by_id]
        missing = len(chunk) - len(items)
        if missing:
            absent = [video_id for video_id in chunk if video_id not in by_id]
            logger.warning(f"No details returned for {missing} videos: {', '.join(absent)}")
        return items, missing

    async def _call(self, func, *args) -> Any:
        """Run one upstream call, off the event loop if it is synchronous."""
        if inspect.iscoroutinefunction(func):
            call = func(*args)
        else:
            call = asyncio.to_thread(func, *args)

        if self.request_timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, self.request_timeout)
        except asyncio.TimeoutError as e:
            raise UpstreamFailure(
                'timeout', f"No response within {self.request_timeout} seconds"
            ) from e

    # ------ Serving ------

    async def _reveal(self, completed: List[int]) -> None:
        """Emit the cursor's page if this batch completed it."""
        if self.cursor.search_active:
            return
        if self.cursor.current_page - 1 in completed:
            await self._emit_page(self.cursor.current_page - 1)

    async def _serve_current(self) -> None:
        if self.cache is None:
            return
        index = self.cursor.current_page - 1
        if self.cache.page_count == 0 or self.cache.is_page_complete(index):
            await self._emit_page(index)
        else:
            logger.debug(f"Page {index + 1} not retrieved yet... will show when ready")

    async def _emit_page(self, index: int) -> None:
        items = self.cache.get_page(index) if self.cache.page_count else []
        self._render_complete = False
        try:
            await self._notify('on_page_ready', items, index + 1, self.cache.page_count)
        finally:
            self._render_complete = True

    async def _notify(self, event: str, *args) -> None:
        handler = getattr(self.sink, event, None)
        if handler is None:
            return
        result = handler(*args)
        if inspect.isawaitable(result):
            await result

    @contextmanager
    def _transient(self, state: EngineState):
        previous = self.state
        self.state = state
        try:
            yield
        finally:
            if self.state is state:
                self.state = previous
