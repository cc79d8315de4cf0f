"""Wiring of the engine, clients and synchronizers for one process."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from rolesync_api.features.configs import ConfigCache, ConfigService
from rolesync_api.features.directory import GroupDirectoryClient, ThumbnailClient
from rolesync_api.features.roles import RoleReconciler
from rolesync_api.settings import Settings
from rolesync_db.engine import build_engine, build_sessionmaker

from .bulk import BulkSynchronizer
from .single_user import SingleUserSynchronizer


class SyncRuntime:
    """Own the long-lived resources the synchronizers share.

    Use as an async context manager; leaving it closes the HTTP clients and
    disposes the engine when the runtime created them.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        engine: AsyncEngine | None = None,
        directory: GroupDirectoryClient | None = None,
        thumbnails: ThumbnailClient | None = None,
    ) -> None:
        self.settings = settings
        self._owns_engine = engine is None
        self.engine = engine or build_engine(settings)
        self.session_factory: async_sessionmaker[AsyncSession] = build_sessionmaker(self.engine)
        self.directory = directory or GroupDirectoryClient(settings=settings)
        self.thumbnails = thumbnails or ThumbnailClient(settings=settings)
        self.configs = ConfigService(session_factory=self.session_factory, cache=ConfigCache())
        self.reconciler = RoleReconciler(
            session_factory=self.session_factory,
            thumbnails=self.thumbnails,
        )
        self.bulk = BulkSynchronizer(
            session_factory=self.session_factory,
            directory=self.directory,
            configs=self.configs,
            reconciler=self.reconciler,
            tier_concurrency=settings.sync_tier_concurrency,
        )
        self.single_user = SingleUserSynchronizer(
            session_factory=self.session_factory,
            directory=self.directory,
        )

    async def aclose(self) -> None:
        await self.directory.aclose()
        await self.thumbnails.aclose()
        if self._owns_engine:
            await self.engine.dispose()

    async def __aenter__(self) -> SyncRuntime:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


__all__ = ["SyncRuntime"]
