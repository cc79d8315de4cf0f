"""Role lookups and tier-mapping management."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rolesync_db.models import Role, RoleGroupTier, user_roles

from .exceptions import RoleNotFoundError, RoleTierConflictError
from .reconciler import MappedRole


def tier_role_map(roles: Iterable[Role]) -> dict[int, MappedRole]:
    """Index ``roles`` by the external tier identifiers they map to."""

    mapping: dict[int, MappedRole] = {}
    for role in roles:
        for tier_id in role.group_roles:
            mapping.setdefault(tier_id, MappedRole(role_id=role.id, name=role.name))
    return mapping


class RolesService:
    """Query and mutate workspace roles within the caller's session."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_roles(self, group_id: int) -> list[Role]:
        stmt = (
            select(Role)
            .where(Role.workspace_group_id == group_id)
            .order_by(Role.created_at, Role.id)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def get_role(self, role_id: str) -> Role:
        role = await self._session.get(Role, role_id)
        if role is None:
            raise RoleNotFoundError(role_id)
        return role

    async def find_role_for_tier(self, group_id: int, tier_id: int) -> Role | None:
        stmt = (
            select(Role)
            .join(RoleGroupTier, RoleGroupTier.role_id == Role.id)
            .where(
                RoleGroupTier.workspace_group_id == group_id,
                RoleGroupTier.tier_id == tier_id,
            )
            .limit(1)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def roles_for_user(self, userid: int, group_id: int) -> list[Role]:
        stmt = (
            select(Role)
            .join(user_roles, user_roles.c.role_id == Role.id)
            .where(
                user_roles.c.user_id == userid,
                Role.workspace_group_id == group_id,
            )
            .order_by(Role.id)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def create_role(
        self,
        *,
        group_id: int,
        name: str,
        permissions: Sequence[str] = (),
        is_owner_role: bool = False,
        group_roles: Iterable[int] = (),
    ) -> Role:
        role = Role(
            workspace_group_id=group_id,
            name=name.strip(),
            permissions=list(dict.fromkeys(permissions)),
            is_owner_role=is_owner_role,
        )
        role.tiers = []
        self._session.add(role)
        await self._session.flush()
        tier_ids = list(group_roles)
        if tier_ids:
            await self.set_group_roles(role.id, tier_ids)
        return role

    async def set_group_roles(self, role_id: str, tier_ids: Iterable[int]) -> Role:
        """Replace the tiers mapped to ``role_id``.

        Raises :class:`RoleTierConflictError` when another role of the same
        workspace already claims one of the tiers.
        """

        role = await self.get_role(role_id)
        wanted = set(tier_ids)

        if wanted:
            conflicts = (
                await self._session.execute(
                    select(RoleGroupTier.tier_id).where(
                        RoleGroupTier.workspace_group_id == role.workspace_group_id,
                        RoleGroupTier.tier_id.in_(wanted),
                        RoleGroupTier.role_id != role.id,
                    )
                )
            ).scalars().all()
            if conflicts:
                raise RoleTierConflictError(conflicts)

        existing = {tier.tier_id: tier for tier in role.tiers}
        for tier_id, tier in existing.items():
            if tier_id not in wanted:
                role.tiers.remove(tier)
        for tier_id in sorted(wanted - existing.keys()):
            role.tiers.append(
                RoleGroupTier(
                    role_id=role.id,
                    tier_id=tier_id,
                    workspace_group_id=role.workspace_group_id,
                )
            )
        await self._session.flush()
        return role


__all__ = ["RolesService", "tier_role_map"]
