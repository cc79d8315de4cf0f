"""User model keyed by the external member identifier."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, Boolean, String, Text, false
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rolesync_db import Base, TimestampMixin

from .role import user_roles

if TYPE_CHECKING:
    from .rank import Rank
    from .role import Role


class User(TimestampMixin, Base):
    """Workspace user mirrored from the external directory."""

    __tablename__ = "users"

    userid: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    picture: Mapped[str | None] = mapped_column(Text(), nullable=True)
    is_owner: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
    )

    roles: Mapped[list[Role]] = relationship(
        "Role",
        secondary=user_roles,
        lazy="selectin",
    )
    ranks: Mapped[list[Rank]] = relationship(
        "Rank",
        primaryjoin="User.userid == foreign(Rank.user_id)",
        viewonly=True,
        lazy="selectin",
    )


__all__ = ["User"]
