"""Settings management for ytgallery.

Handles loading and merging configuration from multiple sources.
"""
# Created: 2026-10-19

import os
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Union, get_args, get_origin
import yaml
from dataclasses import dataclass, field, fields

from ..errors import ConfigError


logger = logging.getLogger(__name__)


@dataclass
class GallerySettings:
    """Gallery layout and behaviour."""
    num_columns: int = 3  # layout hint for renderers only
    max_results: int = 5  # display page size
    search_enabled: bool = True
    cache_life: int = 86_400_000  # milliseconds


@dataclass
class CacheSettings:
    """Cache-related settings."""
    enabled: bool = True
    directory: Optional[str] = None  # default: ~/.cache/ytgallery


@dataclass
class YouTubeSettings:
    """YouTube API settings."""
    api_key: Optional[str] = None
    daily_quota: int = 10000
    request_timeout: Optional[float] = None  # seconds, None waits forever


SECTIONS = ('gallery', 'cache', 'youtube')

TRUE_STRINGS = frozenset({'true', 'yes', 'on', '1'})
FALSE_STRINGS = frozenset({'false', 'no', 'off', '0'})


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in TRUE_STRINGS | FALSE_STRINGS:
        return value.strip().lower() in TRUE_STRINGS
    raise ValueError(value)


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(value)
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(value)
    return int(value)


def _to_float(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError(value)
    return float(value)


CONVERTERS = {bool: _to_bool, int: _to_int, float: _to_float, str: str}


def _coerce(section: str, setting: Any, value: Any) -> Any:
    """Convert a raw config value to the type declared on the settings field.

    Raises:
        ConfigError: If the value cannot be converted
    """
    expected = setting.type
    optional = False
    if get_origin(expected) is Union:
        args = [arg for arg in get_args(expected) if arg is not type(None)]
        optional = len(args) < len(get_args(expected))
        expected = args[0]

    if value is None:
        if optional:
            return None
        raise ConfigError(f"Setting {section}.{setting.name} must not be empty")

    try:
        return CONVERTERS[expected](value)
    except (TypeError, ValueError):
        raise ConfigError(
            f"Setting {section}.{setting.name} expects {expected.__name__}, got {value!r}"
        ) from None


@dataclass
class Settings:
    """Main settings container."""
    gallery: GallerySettings = field(default_factory=GallerySettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    youtube: YouTubeSettings = field(default_factory=YouTubeSettings)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Settings':
        """Create Settings from dictionary. Unknown keys are ignored.

        Raises:
            ConfigError: If a value has the wrong type for its setting
        """
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration must be a mapping, got {data!r}")
        settings = cls()

        for section in SECTIONS:
            values = data.get(section) or {}
            if not isinstance(values, dict):
                raise ConfigError(f"Section {section} must be a mapping, got {values!r}")

            target = getattr(settings, section)
            known = {f.name: f for f in fields(target)}
            for key, value in values.items():
                if key in known:
                    setattr(target, key, _coerce(section, known[key], value))
                else:
                    logger.warning(f"Ignoring unknown setting {section}.{key}")

        return settings

    def merge(self, other: 'Settings') -> None:
        """Merge values from another Settings object that differ from the defaults."""
        for section in SECTIONS:
            self_section = getattr(self, section)
            other_section = getattr(other, section)
            defaults = type(other_section)()

            for f in fields(other_section):
                value = getattr(other_section, f.name)
                if value != getattr(defaults, f.name):
                    setattr(self_section, f.name, value)

    def to_dict(self) -> Dict[str, Any]:
        return {section: vars(getattr(self, section)) for section in SECTIONS}


def default_config_dir() -> Path:
    return Path.home() / ".config" / "ytgallery"


def _load_yaml(path: Path) -> Optional[Dict[str, Any]]:
    try:
        with open(path) as f:
            return yaml.safe_load(f) or None
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Failed to load config {path}: {e}")
        return None


def load_settings(config_dir: Optional[Path] = None) -> Settings:
    """Load settings from configuration files.

    Loads from multiple sources in order of precedence:
    1. Default settings (built-in)
    2. User config file
    3. Environment variables

    Args:
        config_dir: Optional config directory override

    Returns:
        Merged Settings object
    """
    settings = Settings()

    if config_dir is None:
        config_dir = default_config_dir()

    user_config_path = Path(config_dir) / "config.yaml"
    if user_config_path.exists():
        data = _load_yaml(user_config_path)
        if data:
            settings.merge(Settings.from_dict(data))

    # Override with environment variables
    if api_key := os.environ.get('YOUTUBE_API_KEY'):
        settings.youtube.api_key = api_key

    if cache_dir := os.environ.get('YTGALLERY_CACHE_DIR'):
        settings.cache.directory = cache_dir

    return settings


def save_settings(settings: Settings, config_dir: Optional[Path] = None) -> None:
    """Save settings to user config file.

    Args:
        settings: Settings object to save
        config_dir: Optional config directory override
    """
    if config_dir is None:
        config_dir = default_config_dir()

    config_dir = Path(config_dir)
    config_dir.mkdir(parents=True, exist_ok=True)

    config_path = config_dir / "config.yaml"
    with open(config_path, 'w') as f:
        yaml.dump(settings.to_dict(), f, default_flow_style=False, sort_keys=False)
