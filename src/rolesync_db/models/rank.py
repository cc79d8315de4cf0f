"""Rank ledger: last observed rank of a member in a workspace group."""

from __future__ import annotations

from sqlalchemy import BigInteger, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from rolesync_db import Base, TimestampMixin


class Rank(TimestampMixin, Base):
    """Per-(user, workspace) rank record.

    ``user_id`` is intentionally not a foreign key: members are recorded as soon
    as they are observed, whether or not a ``users`` row exists for them.
    """

    __tablename__ = "ranks"

    user_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    workspace_group_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("workspaces.group_id", ondelete="CASCADE"),
        primary_key=True,
    )
    rank_id: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    __table_args__ = (Index("ix_ranks_workspace_group_id", "workspace_group_id"),)


__all__ = ["Rank"]
