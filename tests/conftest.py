"""Shared pytest fixtures for role sync tests."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

import rolesync_db.models  # noqa: F401
from rolesync_api.settings import Settings
from rolesync_db import metadata
from rolesync_db.engine import build_engine, build_sessionmaker


@pytest.fixture(autouse=True)
def _scrub_rolesync_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("ROLESYNC_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'rolesync.sqlite'}",
        directory_base_url="https://groups.test",
        thumbnails_base_url="https://thumbnails.test",
        directory_retry_backoff_seconds=0,
    )


@pytest_asyncio.fixture()
async def engine(settings: Settings) -> AsyncIterator[AsyncEngine]:
    """File-backed SQLite database with the full schema."""

    engine = build_engine(settings)
    async with engine.begin() as connection:
        await connection.run_sync(metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture()
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_sessionmaker(engine)


@pytest_asyncio.fixture()
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session
