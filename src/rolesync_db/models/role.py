"""Workspace roles and their mapping to external rank tiers."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    ForeignKey,
    Index,
    String,
    Table,
    UniqueConstraint,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rolesync_db import Base, TimestampMixin, ULIDPrimaryKeyMixin, metadata

if TYPE_CHECKING:
    from .workspace import Workspace

user_roles = Table(
    "user_roles",
    metadata,
    Column(
        "user_id",
        BigInteger,
        ForeignKey("users.userid", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "role_id",
        String(26),
        ForeignKey("roles.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Index("ix_user_roles_role_id", "role_id"),
)


class Role(ULIDPrimaryKeyMixin, TimestampMixin, Base):
    """Permission-bearing role scoped to one workspace."""

    __tablename__ = "roles"

    workspace_group_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("workspaces.group_id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_owner_role: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )
    permissions: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    workspace: Mapped[Workspace] = relationship("Workspace", back_populates="roles")
    tiers: Mapped[list[RoleGroupTier]] = relationship(
        "RoleGroupTier",
        back_populates="role",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (Index("ix_roles_workspace_group_id", "workspace_group_id"),)

    @property
    def group_roles(self) -> list[int]:
        """External tier identifiers mapped to this role."""

        return sorted(tier.tier_id for tier in self.tiers)


class RoleGroupTier(Base):
    """One external rank tier mapped to a role.

    A tier maps to at most one role per workspace.
    """

    __tablename__ = "role_group_tiers"

    role_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("roles.id", ondelete="CASCADE"),
        primary_key=True,
    )
    tier_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    workspace_group_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("workspaces.group_id", ondelete="CASCADE"),
        nullable=False,
    )

    role: Mapped[Role] = relationship("Role", back_populates="tiers")

    __table_args__ = (
        UniqueConstraint(
            "workspace_group_id",
            "tier_id",
            name="uq_role_group_tiers_workspace_tier",
        ),
    )


__all__ = ["Role", "RoleGroupTier", "user_roles"]
