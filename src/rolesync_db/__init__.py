"""Shared database schema + migrations for role sync."""

from .base import (
    NAMING_CONVENTION,
    Base,
    TimestampMixin,
    ULIDPrimaryKeyMixin,
    generate_ulid,
    metadata,
    utc_now,
)
from .settings import Settings, get_settings, reload_settings
from .types import UTCDateTime

__all__ = [
    "Base",
    "metadata",
    "NAMING_CONVENTION",
    "UTCDateTime",
    "ULIDPrimaryKeyMixin",
    "TimestampMixin",
    "generate_ulid",
    "utc_now",
    "Settings",
    "get_settings",
    "reload_settings",
]
