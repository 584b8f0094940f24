"""Configuration management for ytgallery."""
# Created: 2026-10-19

from .settings import Settings, GallerySettings, load_settings, save_settings

__all__ = ['Settings', 'GallerySettings', 'load_settings', 'save_settings']
