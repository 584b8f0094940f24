"""ytgallery - Paginated, cached YouTube playlist galleries."""
# Created: 2026-10-19

__version__ = "0.1.0"

from .engine import GalleryEngine, GallerySink
from .errors import ConfigError, UpstreamFailure, CacheCorruptionError
from .models import Direction, EngineState, PlaylistInfo, VideoItem

__all__ = [
    'GalleryEngine', 'GallerySink', 'ConfigError', 'UpstreamFailure',
    'CacheCorruptionError', 'Direction', 'EngineState', 'PlaylistInfo', 'VideoItem',
]
