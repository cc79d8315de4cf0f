"""Per-workspace config reads and writes backed by :class:`ConfigCache`."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rolesync_api.common.logging import log_context
from rolesync_db.engine import session_scope
from rolesync_db.models import Config

from .cache import ConfigCache

logger = logging.getLogger(__name__)

ACTIVITY_CONFIG_KEY = "activity"
CUSTOMIZATION_CONFIG_KEY = "customization"
DEFAULT_MINIMUM_TRACKED_RANK = 0


class ConfigService:
    """Read and write workspace config values through an explicit cache."""

    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession],
        cache: ConfigCache | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._cache = cache if cache is not None else ConfigCache()

    @property
    def cache(self) -> ConfigCache:
        return self._cache

    async def get_config(self, key: str, group_id: int) -> Any | None:
        hit, value = self._cache.lookup(group_id, key)
        if hit:
            return value

        async with self._session_factory() as session:
            config = (
                await session.execute(
                    select(Config).where(
                        Config.workspace_group_id == group_id,
                        Config.key == key,
                    )
                )
            ).scalar_one_or_none()

        if config is None:
            return None
        self._cache.store(group_id, key, config.value)
        return config.value

    async def set_config(self, key: str, value: Any, group_id: int) -> None:
        async with session_scope(self._session_factory) as session:
            await self.write_config(session, key=key, value=value, group_id=group_id)
        self._cache.store(group_id, key, value)
        logger.info("config.updated", extra=log_context(group_id=group_id, key=key))

    @staticmethod
    async def write_config(
        session: AsyncSession,
        *,
        key: str,
        value: Any,
        group_id: int,
    ) -> Config:
        """Create or update ``key`` inside the caller's transaction."""

        config = (
            await session.execute(
                select(Config).where(
                    Config.workspace_group_id == group_id,
                    Config.key == key,
                )
            )
        ).scalar_one_or_none()
        if config is None:
            config = Config(workspace_group_id=group_id, key=key, value=value)
            session.add(config)
        else:
            config.value = value
        await session.flush()
        return config

    def refresh_config(self, key: str, group_id: int) -> None:
        """Drop ``key`` from the cache so the next read reloads it."""

        self._cache.evict(group_id, key)

    async def get_minimum_tracked_rank(self, group_id: int) -> int:
        """Return the ``activity.role`` threshold, defaulting to tracking every rank."""

        value = await self.get_config(ACTIVITY_CONFIG_KEY, group_id)
        if not isinstance(value, dict):
            return DEFAULT_MINIMUM_TRACKED_RANK
        threshold = value.get("role")
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
            return DEFAULT_MINIMUM_TRACKED_RANK
        return int(threshold)


__all__ = [
    "ACTIVITY_CONFIG_KEY",
    "CUSTOMIZATION_CONFIG_KEY",
    "DEFAULT_MINIMUM_TRACKED_RANK",
    "ConfigService",
]
