"""Per-workspace key/value settings."""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, BigInteger, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from rolesync_db import Base, TimestampMixin, ULIDPrimaryKeyMixin


class Config(ULIDPrimaryKeyMixin, TimestampMixin, Base):
    """JSON value stored under ``key`` for one workspace."""

    __tablename__ = "configs"

    workspace_group_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("workspaces.group_id", ondelete="CASCADE"),
        nullable=False,
    )
    key: Mapped[str] = mapped_column(String(100), nullable=False)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)

    __table_args__ = (
        UniqueConstraint("workspace_group_id", "key", name="uq_configs_workspace_key"),
    )


__all__ = ["Config"]
