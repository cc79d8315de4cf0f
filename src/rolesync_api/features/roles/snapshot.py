"""Read-only view of the users known to a workspace."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from rolesync_db.models import Rank, Role, User


@dataclass(frozen=True, slots=True)
class KnownUser:
    """Point-in-time copy of a user with their roles in one workspace."""

    userid: int
    username: str | None
    picture: str | None
    role_ids: frozenset[str]
    rank_id: int | None = None

    def holds(self, role_id: str) -> bool:
        return role_id in self.role_ids


async def load_known_users(session: AsyncSession, group_id: int) -> dict[int, KnownUser]:
    """Load every user with roles and ranks scoped to ``group_id`` in one batch read."""

    stmt = (
        select(User)
        .options(
            selectinload(User.roles.and_(Role.workspace_group_id == group_id)),
            selectinload(User.ranks.and_(Rank.workspace_group_id == group_id)),
        )
        .execution_options(populate_existing=True)
    )
    users = (await session.execute(stmt)).scalars().all()
    known: dict[int, KnownUser] = {}
    for user in users:
        rank = user.ranks[0].rank_id if user.ranks else None
        known[user.userid] = KnownUser(
            userid=user.userid,
            username=user.username,
            picture=user.picture,
            role_ids=frozenset(role.id for role in user.roles),
            rank_id=rank,
        )
    return known


__all__ = ["KnownUser", "load_known_users"]
