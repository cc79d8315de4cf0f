"""Workspace config provider."""

from .cache import ConfigCache
from .service import (
    ACTIVITY_CONFIG_KEY,
    CUSTOMIZATION_CONFIG_KEY,
    DEFAULT_MINIMUM_TRACKED_RANK,
    ConfigService,
)

__all__ = [
    "ACTIVITY_CONFIG_KEY",
    "CUSTOMIZATION_CONFIG_KEY",
    "DEFAULT_MINIMUM_TRACKED_RANK",
    "ConfigCache",
    "ConfigService",
]
