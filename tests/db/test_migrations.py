"""Migration smoke tests."""

from __future__ import annotations

from pathlib import Path

from alembic import command
from sqlalchemy import create_engine, inspect

from rolesync_db.engine import render_sync_url
from rolesync_db.migrations_runner import alembic_config, run_migrations
from rolesync_db.settings import Settings

EXPECTED_TABLES = {
    "configs",
    "ranks",
    "role_group_tiers",
    "roles",
    "user_roles",
    "users",
    "workspaces",
}


def _table_names(settings: Settings) -> set[str]:
    engine = create_engine(render_sync_url(settings))
    try:
        return set(inspect(engine).get_table_names())
    finally:
        engine.dispose()


def test_upgrade_head_creates_schema(tmp_path: Path) -> None:
    """Applying migrations on a fresh database should succeed."""

    settings = Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'nested' / 'migration.sqlite'}",
    )

    run_migrations(settings)

    assert (tmp_path / "nested" / "migration.sqlite").exists()
    assert EXPECTED_TABLES <= _table_names(settings)

    command.downgrade(alembic_config(settings), "base")
    assert not EXPECTED_TABLES & _table_names(settings)


def test_upgrade_is_repeatable(tmp_path: Path) -> None:
    settings = Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'migration.sqlite'}",
    )

    run_migrations(settings)
    run_migrations(settings)

    assert EXPECTED_TABLES <= _table_names(settings)
