"""Settings building blocks shared by ``rolesync_api`` and ``rolesync_db``."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from functools import cache
from typing import Protocol, TypeVar

from pydantic import Field, field_validator
from pydantic_settings import SettingsConfigDict

from paths import REPO_ROOT

ALLOWED_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
ALLOWED_LOG_FORMATS = frozenset({"console", "json"})
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./data/db/rolesync.sqlite"
ENV_PREFIX = "ROLESYNC_"

T = TypeVar("T")


def rolesync_settings_config(*, populate_by_name: bool = False) -> SettingsConfigDict:
    """``BaseSettings`` config: ``ROLESYNC_*`` variables plus the repository ``.env``."""

    return SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=REPO_ROOT / ".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        str_strip_whitespace=True,
        populate_by_name=populate_by_name,
        extra="ignore",
    )


def create_settings_accessors(
    settings_type: type[T],
) -> tuple[Callable[[], T], Callable[[], T]]:
    """Return ``(get_settings, reload_settings)`` sharing one cached instance."""

    load = cache(settings_type)

    def get_settings() -> T:
        return load()

    def reload_settings() -> T:
        load.cache_clear()
        return load()

    return get_settings, reload_settings


def _normalize_choice(value: str, allowed: Iterable[str], *, env_var: str) -> str:
    choices = sorted(allowed)
    if value not in choices:
        raise ValueError(f"{env_var} must be one of: {', '.join(choices)}.")
    return value


def normalize_log_format(value: str, *, env_var: str = "ROLESYNC_LOG_FORMAT") -> str:
    return _normalize_choice(value.strip().lower(), ALLOWED_LOG_FORMATS, env_var=env_var)


def normalize_log_level(value: str | None, *, env_var: str) -> str | None:
    if value is None:
        return None
    return _normalize_choice(value.strip().upper(), ALLOWED_LOG_LEVELS, env_var=env_var)


class DatabaseSettingsMixin:
    """Database connection and pool fields shared by every settings class."""

    database_url: str = Field(default=DEFAULT_DATABASE_URL, description="SQLAlchemy async URL.")
    database_echo: bool = False
    database_pool_size: int = Field(5, ge=1)
    database_max_overflow: int = Field(10, ge=0)
    database_pool_timeout: int = Field(30, gt=0)
    database_pool_recycle: int = Field(1800, ge=0)

    @field_validator("database_url", mode="before")
    @classmethod
    def _require_database_url(cls, value: object) -> object:
        if value is None:
            return DEFAULT_DATABASE_URL
        url = str(value).strip()
        if not url:
            raise ValueError(f"{ENV_PREFIX}DATABASE_URL must not be empty.")
        return url


class DatabaseSettingsProtocol(Protocol):
    """What the engine and migration helpers read from any settings object."""

    database_url: str
    database_echo: bool
    database_pool_size: int
    database_max_overflow: int
    database_pool_timeout: int
    database_pool_recycle: int


__all__ = [
    "ALLOWED_LOG_FORMATS",
    "ALLOWED_LOG_LEVELS",
    "DEFAULT_DATABASE_URL",
    "DatabaseSettingsMixin",
    "DatabaseSettingsProtocol",
    "create_settings_accessors",
    "normalize_log_format",
    "normalize_log_level",
    "rolesync_settings_config",
]
