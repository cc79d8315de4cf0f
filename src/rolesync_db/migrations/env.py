"""Alembic environment for the role sync schema."""

from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool
from sqlalchemy.engine import Connection

import rolesync_db.models  # noqa: F401  (registers every table on Base.metadata)
from rolesync_db.base import Base
from rolesync_db.engine import render_sync_url
from rolesync_db.settings import Settings

config = context.config
target_metadata = Base.metadata

# In-process runs keep the caller's logging setup.
if config.config_file_name is not None and config.attributes.get("configure_logger", True):
    fileConfig(config.config_file_name)


def _database_url() -> str:
    configured = config.get_main_option("sqlalchemy.url")
    if configured:
        return configured.replace("%%", "%")
    return render_sync_url(Settings())


def _migrate(**configure_kwargs: object) -> None:
    # Batch mode lets SQLite alter tables by copy-and-move.
    context.configure(target_metadata=target_metadata, render_as_batch=True, **configure_kwargs)
    with context.begin_transaction():
        context.run_migrations()


def _migrate_connection(connection: Connection) -> None:
    _migrate(connection=connection)


if context.is_offline_mode():
    _migrate(url=_database_url(), literal_binds=True, dialect_opts={"paramstyle": "named"})
elif (shared := config.attributes.get("connection")) is not None:
    _migrate_connection(shared)
else:
    engine = create_engine(_database_url(), poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            _migrate_connection(connection)
    finally:
        engine.dispose()
