"""Typed role membership mutations applied as one transactional batch."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from rolesync_db.dialects import upsert_insert
from rolesync_db.models import User, user_roles

# Two bound parameters per grant; keeps VALUES under the SQLite 999 limit.
_ROWS_PER_STATEMENT = 450


@dataclass(frozen=True, slots=True)
class GrantRole:
    """Connect ``role_id`` to a user and refresh their profile fields."""

    user_id: int
    role_id: str
    username: str | None = None
    picture: str | None = None


@dataclass(frozen=True, slots=True)
class RevokeRole:
    """Disconnect ``role_id`` from a user."""

    user_id: int
    role_id: str


RoleMutation = GrantRole | RevokeRole


@dataclass(slots=True)
class MutationBatch:
    """Builder collecting the role mutations of one unit of work."""

    grants: list[GrantRole] = field(default_factory=list)
    revokes: list[RevokeRole] = field(default_factory=list)

    def grant(
        self,
        user_id: int,
        role_id: str,
        *,
        username: str | None = None,
        picture: str | None = None,
    ) -> MutationBatch:
        self.grants.append(
            GrantRole(user_id=user_id, role_id=role_id, username=username, picture=picture)
        )
        return self

    def revoke(self, user_id: int, role_id: str) -> MutationBatch:
        self.revokes.append(RevokeRole(user_id=user_id, role_id=role_id))
        return self

    def __len__(self) -> int:
        return len(self.grants) + len(self.revokes)

    def __bool__(self) -> bool:
        return bool(self.grants or self.revokes)

    def __iter__(self) -> Iterator[RoleMutation]:
        yield from self.revokes
        yield from self.grants

    async def apply(self, session: AsyncSession) -> None:
        """Apply every mutation inside the caller's transaction.

        Revocations run before grants so a hand-off never leaves both roles
        visible once the transaction commits.
        """

        for revoke in self.revokes:
            await session.execute(
                delete(user_roles).where(
                    user_roles.c.user_id == revoke.user_id,
                    user_roles.c.role_id == revoke.role_id,
                )
            )

        rows = [{"user_id": g.user_id, "role_id": g.role_id} for g in self.grants]
        for start in range(0, len(rows), _ROWS_PER_STATEMENT):
            chunk = rows[start : start + _ROWS_PER_STATEMENT]
            stmt = upsert_insert(session, user_roles).values(chunk).on_conflict_do_nothing()
            await session.execute(stmt)

        for grant in self.grants:
            if grant.username is not None:
                await session.execute(
                    update(User)
                    .where(User.userid == grant.user_id)
                    .values(username=grant.username)
                )
            if grant.picture is not None:
                await session.execute(
                    update(User)
                    .where(User.userid == grant.user_id, User.picture.is_(None))
                    .values(picture=grant.picture)
                )


__all__ = ["GrantRole", "MutationBatch", "RevokeRole", "RoleMutation"]
