"""Dialect-specific statement helpers shared by the sync services."""

from __future__ import annotations

from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

__all__ = ["upsert_insert"]


def upsert_insert(session: AsyncSession, target: Any) -> Any:
    """Return an ``INSERT`` construct supporting ``ON CONFLICT`` for the session's dialect."""

    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(target)
    if dialect == "sqlite":
        return sqlite.insert(target)
    raise NotImplementedError(f"ON CONFLICT inserts are not supported on {dialect!r}")
