"""Workspace model: the internal mirror of one external group."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import BigInteger
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rolesync_db import Base, TimestampMixin

if TYPE_CHECKING:
    from .role import Role


class Workspace(TimestampMixin, Base):
    """Workspace keyed by the external group identifier."""

    __tablename__ = "workspaces"

    group_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)

    roles: Mapped[list[Role]] = relationship(
        "Role",
        back_populates="workspace",
        lazy="selectin",
    )


__all__ = ["Workspace"]
