"""Exception types for ytgallery.

Every failure the gallery can hit is mapped onto one of these before it
leaves the layer where it happened.
"""
# Created: 2026-10-19

from typing import Optional


class GalleryError(Exception):
    """Base class for all gallery errors."""
    pass


class ConfigError(GalleryError):
    """Raised when a required identifier, key or sink is missing."""
    pass


class UpstreamFailure(GalleryError):
    """A network-level or API-reported failure from YouTube.

    Attributes:
        code: Machine readable code (API reason, ``http_<status>``, ``network``)
        message: Human readable message
        status: HTTP status, when one was received
    """

    def __init__(self, code: str, message: str, status: Optional[int] = None):
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message
        self.status = status


class CacheCorruptionError(GalleryError):
    """Raised when a persisted cache record cannot be parsed."""
    pass
