"""Conversion of raw videos.list() records into display items.

Resolves the display date, formats durations and view counts.
"""
# Created: 2026-10-19

import re
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from .models import VideoItem, pick_thumbnail


logger = logging.getLogger(__name__)

LIVE = "LIVE"
UPCOMING = "UPCOMING"
UNKNOWN_DURATION = "--:--"

_DURATION_RE = re.compile(
    r'^P(?:(?P<days>\d+)D)?'
    r'(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$'
)


def parse_iso_date(value: str) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp or date as returned by the API."""
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except (ValueError, AttributeError):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed


def format_date(value: str) -> str:
    """Format an ISO 8601 timestamp as e.g. "December 25, 2021"."""
    parsed = parse_iso_date(value)
    if parsed is None:
        logger.debug(f"Unparsable date: {value!r}")
        return value or ""
    return f"{parsed.strftime('%B')} {parsed.day}, {parsed.year}"


def resolve_date(raw: Dict[str, Any]) -> str:
    """Pick the display date for a video.

    The recording date can be set manually and wins. Livestreams then use
    their actual, or else scheduled, start time. Everything else falls back
    to the publish time.
    """
    recording = raw.get('recordingDetails') or {}
    live = raw.get('liveStreamingDetails') or {}
    snippet = raw.get('snippet') or {}

    for candidate in (
        recording.get('recordingDate'),
        live.get('actualStartTime'),
        live.get('scheduledStartTime'),
        snippet.get('publishedAt'),
    ):
        if candidate is not None:
            return format_date(candidate)
    return ""


def format_duration(duration: Optional[str], broadcast: Optional[str] = None) -> str:
    """Format an ISO 8601 duration for display.

    Args:
        duration: Duration such as "PT1H2M3S"
        broadcast: snippet.liveBroadcastContent ("live", "upcoming", "none")

    Returns:
        "LIVE", "UPCOMING", "H:MM:SS" or "M:SS"
    """
    if broadcast == 'live':
        return LIVE
    if broadcast == 'upcoming':
        return UPCOMING

    match = _DURATION_RE.match(duration or '')
    if not match:
        return UNKNOWN_DURATION

    parts = {k: int(v) if v else 0 for k, v in match.groupdict().items()}
    hours = parts['days'] * 24 + parts['hours']
    minutes = parts['minutes']
    seconds = parts['seconds']

    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def number_with_commas(value) -> str:
    """Group digits in threes: 1234567 -> "1,234,567"."""
    if value is None or value == '':
        return "0"
    return f"{int(value):,}"


def to_video_item(raw: Dict[str, Any]) -> VideoItem:
    """Normalize a single videos.list() item into a VideoItem."""
    snippet = raw.get('snippet') or {}
    content_details = raw.get('contentDetails') or {}
    statistics = raw.get('statistics') or {}

    return VideoItem(
        id=raw['id'],
        title=snippet.get('title', 'Untitled'),
        description=snippet.get('description', ''),
        date=resolve_date(raw),
        thumbnail_url=pick_thumbnail(snippet.get('thumbnails', {})),
        duration=format_duration(
            content_details.get('duration'),
            snippet.get('liveBroadcastContent'),
        ),
        views_display=number_with_commas(statistics.get('viewCount')),
    )
