"""Programmatic Alembic runner for role sync migrations."""

from __future__ import annotations

from importlib import resources
from pathlib import Path

from alembic import command
from alembic.config import Config

from .engine import build_database_url, ensure_sqlite_database_directory, render_sync_url
from .settings import DatabaseSettings, get_settings

__all__ = ["alembic_config", "run_migrations"]


def _alembic_resource_paths() -> tuple[Path, Path]:
    package = resources.files("rolesync_db")
    alembic_ini = package / "alembic.ini"
    migrations_dir = package / "migrations"
    return Path(str(alembic_ini)), Path(str(migrations_dir))


def alembic_config(settings: DatabaseSettings | None = None) -> Config:
    resolved = settings or get_settings()
    alembic_ini, migrations_dir = _alembic_resource_paths()
    config = Config(str(alembic_ini))
    # Keep the caller's logging configuration when migrations run in-process.
    config.attributes["configure_logger"] = False
    config.set_main_option("script_location", str(migrations_dir))
    config.set_main_option("sqlalchemy.url", render_sync_url(resolved).replace("%", "%%"))
    return config


def run_migrations(settings: DatabaseSettings | None = None, *, revision: str = "head") -> None:
    resolved = settings or get_settings()
    url = build_database_url(resolved)
    if url.get_backend_name() == "sqlite":
        ensure_sqlite_database_directory(url)
    command.upgrade(alembic_config(resolved), revision)

