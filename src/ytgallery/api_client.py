"""YouTube API client wrapper with quota tracking.

Provides the three read operations the gallery needs from YouTube Data
API v3 and converts every failure into an UpstreamFailure.
"""
# Created: 2026-10-19

import json
import logging
from dataclasses import dataclass
from typing import List, Optional, Dict, Any, Iterable

import httplib2
from googleapiclient.discovery import build, Resource
from googleapiclient.errors import HttpError

from .errors import ConfigError, UpstreamFailure
from .models import PlaylistInfo


logger = logging.getLogger(__name__)

# YouTube API allows max 50 results / ids per request
MAX_BATCH_SIZE = 50

# Listing entries with these titles have no retrievable details
UNAVAILABLE_TITLES = frozenset({'Private video', 'Deleted video'})

VIDEO_PARTS = 'snippet,contentDetails,statistics,recordingDetails,liveStreamingDetails'


@dataclass
class PlaylistItemsPage:
    """One page of a playlistItems.list() listing."""
    video_ids: List[str]
    next_page_token: Optional[str] = None


def _failure_from_error(error: Dict[str, Any], status: Optional[int],
                        message: str) -> UpstreamFailure:
    """Build an UpstreamFailure from an API ``error`` object.

    The code is the first upstream reason, else ``http_<status>``.
    """
    code = f"http_{status}" if status else "http_error"
    message = error.get('message') or message
    errors = error.get('errors') or []
    if errors and errors[0].get('reason'):
        code = errors[0]['reason']
    return UpstreamFailure(code, message, status)


def _failure_from_http_error(e: HttpError) -> UpstreamFailure:
    """Build an UpstreamFailure from the API error payload of an HttpError."""
    status = getattr(e.resp, 'status', None)
    error = {}
    try:
        payload = json.loads(e.content.decode('utf-8'))
        error = payload.get('error') or {}
    except (ValueError, AttributeError, UnicodeDecodeError):
        pass
    if not isinstance(error, dict):
        error = {}
    return _failure_from_error(error, status, str(e))


def _check_payload(response: Dict[str, Any]) -> Dict[str, Any]:
    """Raise if a successful response still carries an error payload."""
    if 'error' in response:
        error = response['error'] or {}
        status = error.get('code')
        if not isinstance(status, int):
            status = None
        raise _failure_from_error(error, status, 'Unknown upstream error')
    return response


class YouTubeGalleryClient:
    """Read-only YouTube API client with quota tracking."""

    # Quota costs for the operations the gallery issues
    QUOTA_COSTS = {
        'playlists.list': 1,
        'playlistItems.list': 1,
        'videos.list': 1,
    }

    def __init__(self, api_key: Optional[str],
                 daily_quota: int = 10000,
                 service: Optional[Resource] = None):
        """Initialize the API client.

        Args:
            api_key: YouTube Data API key
            daily_quota: Daily quota limit (default: 10000)
            service: Prebuilt API resource, mostly for tests

        Raises:
            ConfigError: If no API key is given
        """
        if not api_key:
            raise ConfigError("No API key set")

        self.api_key = api_key
        self.daily_quota = daily_quota
        self.quota_used = 0
        self.youtube: Resource = service or build(
            'youtube', 'v3',
            developerKey=api_key,
            cache_discovery=False
        )

    def _track_quota(self, operation: str, count: int = 1) -> None:
        """Track quota usage for an operation.

        Raises:
            UpstreamFailure: If quota would be exceeded
        """
        cost = self.QUOTA_COSTS.get(operation, 1) * count

        if self.quota_used + cost > self.daily_quota:
            raise UpstreamFailure(
                'quotaExceeded',
                f"Operation would exceed daily quota. "
                f"Used: {self.quota_used}, Cost: {cost}, "
                f"Limit: {self.daily_quota}"
            )

        self.quota_used += cost
        logger.debug(f"Quota used: {self.quota_used}/{self.daily_quota} "
                     f"(+{cost} for {operation})")

    def get_quota_remaining(self) -> int:
        """Get remaining quota for today."""
        return self.daily_quota - self.quota_used

    def _execute(self, operation: str, request) -> Dict[str, Any]:
        """Execute a prepared request, mapping every failure to UpstreamFailure."""
        self._track_quota(operation)
        try:
            response = request.execute()
        except HttpError as e:
            failure = _failure_from_http_error(e)
            logger.error(f"Error in {operation}: {failure}")
            raise failure from e
        except (httplib2.HttpLib2Error, OSError) as e:
            logger.error(f"Network error in {operation}: {e}")
            raise UpstreamFailure('network', str(e)) from e

        return _check_payload(response or {})

    def list_playlist_items(self, playlist_id: str,
                            page_token: Optional[str] = None) -> PlaylistItemsPage:
        """Get one page of video ids from a playlist.

        Private and deleted entries are skipped and logged.

        Args:
            playlist_id: ID of the playlist
            page_token: Token from the previous page, if any

        Returns:
            PlaylistItemsPage with ids in playlist order
        """
        params = {
            'part': 'snippet',
            'playlistId': playlist_id,
            'maxResults': MAX_BATCH_SIZE,
        }
        if page_token:
            params['pageToken'] = page_token

        response = self._execute(
            'playlistItems.list',
            self.youtube.playlistItems().list(**params)
        )

        video_ids = []
        for item in response.get('items', []):
            snippet = item.get('snippet', {})
            video_id = snippet.get('resourceId', {}).get('videoId')
            if snippet.get('title') in UNAVAILABLE_TITLES or not video_id:
                logger.warning(f"Video with ID {video_id!r} is unavailable... skipping")
                continue
            video_ids.append(video_id)

        return PlaylistItemsPage(
            video_ids=video_ids,
            next_page_token=response.get('nextPageToken') or None
        )

    def fetch_video_details(self, video_ids: Iterable[str]) -> List[Dict[str, Any]]:
        """Fetch raw video records for a batch of ids.

        Args:
            video_ids: YouTube video IDs (max 50 per call)

        Returns:
            List of videos.list() items
        """
        video_ids = list(video_ids)
        if not video_ids:
            return []
        if len(video_ids) > MAX_BATCH_SIZE:
            raise ValueError(
                f"At most {MAX_BATCH_SIZE} ids per request, got {len(video_ids)}"
            )

        response = self._execute(
            'videos.list',
            self.youtube.videos().list(
                part=VIDEO_PARTS,
                id=','.join(video_ids),
                maxResults=MAX_BATCH_SIZE
            )
        )
        return response.get('items', [])

    def fetch_playlist_info(self, playlist_id: str) -> PlaylistInfo:
        """Fetch playlist metadata.

        Raises:
            UpstreamFailure: If the playlist does not exist
        """
        response = self._execute(
            'playlists.list',
            self.youtube.playlists().list(
                part='snippet,contentDetails',
                id=playlist_id
            )
        )

        items = response.get('items', [])
        if not items:
            raise UpstreamFailure('playlistNotFound', f"Playlist {playlist_id} not found")
        return PlaylistInfo.from_youtube_response(items[0])
