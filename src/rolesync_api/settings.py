"""Role sync service settings (Pydantic v2)."""

from __future__ import annotations

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from settings import (
    DatabaseSettingsMixin,
    create_settings_accessors,
    normalize_log_format,
    normalize_log_level,
    rolesync_settings_config,
)

# ---- Defaults ---------------------------------------------------------------

DEFAULT_DIRECTORY_BASE_URL = "https://groups.roblox.com"
DEFAULT_THUMBNAILS_BASE_URL = "https://thumbnails.roblox.com"
DEFAULT_TIER_CONCURRENCY = 3
DEFAULT_THUMBNAIL_SIZE = "150x150"


# ---- Settings ---------------------------------------------------------------


class Settings(DatabaseSettingsMixin, BaseSettings):
    """Sync service settings loaded from ROLESYNC_* environment variables."""

    model_config = rolesync_settings_config(populate_by_name=True)

    # Core
    log_format: str = "console"
    log_level: str = "INFO"
    database_log_level: str | None = None

    # External group directory
    directory_base_url: str = DEFAULT_DIRECTORY_BASE_URL
    thumbnails_base_url: str = DEFAULT_THUMBNAILS_BASE_URL
    directory_timeout_seconds: float = Field(10.0, gt=0)
    directory_max_retries: int = Field(2, ge=0, le=10)
    directory_retry_backoff_seconds: float = Field(1.0, ge=0)
    directory_page_size: int = Field(100, ge=10, le=100)
    thumbnail_size: str = DEFAULT_THUMBNAIL_SIZE

    # Synchronization
    sync_interval_seconds: int = Field(600, ge=10)
    sync_tier_concurrency: int = Field(DEFAULT_TIER_CONCURRENCY, ge=1, le=32)

    # Workspaces
    single_workspace: bool = True

    # ---- Validators ----

    @field_validator("directory_base_url", "thumbnails_base_url", mode="before")
    @classmethod
    def _strip_trailing_slash(cls, value: object) -> object:
        if value is None:
            return value
        raw = str(value).strip()
        if not raw:
            raise ValueError("Directory URLs must not be empty.")
        return raw.rstrip("/")

    @field_validator("thumbnail_size", mode="before")
    @classmethod
    def _normalize_thumbnail_size(cls, value: object) -> object:
        if value is None:
            return DEFAULT_THUMBNAIL_SIZE
        raw = str(value).strip().lower()
        width, sep, height = raw.partition("x")
        if not sep or not width.isdigit() or not height.isdigit():
            raise ValueError("ROLESYNC_THUMBNAIL_SIZE must look like 150x150.")
        return raw

    @model_validator(mode="after")
    def _finalize(self) -> Settings:
        self.log_format = normalize_log_format(self.log_format, env_var="ROLESYNC_LOG_FORMAT")

        normalized_log_level = normalize_log_level(self.log_level, env_var="ROLESYNC_LOG_LEVEL")
        if normalized_log_level is None:
            raise ValueError("ROLESYNC_LOG_LEVEL must not be empty.")
        self.log_level = normalized_log_level

        self.database_log_level = normalize_log_level(
            self.database_log_level,
            env_var="ROLESYNC_DATABASE_LOG_LEVEL",
        )
        return self


get_settings, reload_settings = create_settings_accessors(Settings)


__all__ = [
    "DEFAULT_DIRECTORY_BASE_URL",
    "DEFAULT_THUMBNAILS_BASE_URL",
    "DEFAULT_TIER_CONCURRENCY",
    "Settings",
    "get_settings",
    "reload_settings",
]
