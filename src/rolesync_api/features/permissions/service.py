"""Workspace permission checks backed by role membership."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from rolesync_api.features.roles import RolesService
from rolesync_db.models import User


class AccessReason(str, Enum):
    UNKNOWN_USER = "unknown_user"
    NO_ROLE = "no_role"
    OWNER_ROLE = "owner_role"
    NO_PERMISSION_REQUIRED = "no_permission_required"
    GRANTED = "granted"
    MISSING_PERMISSION = "missing_permission"


@dataclass(frozen=True, slots=True)
class AccessDecision:
    allowed: bool
    reason: AccessReason
    role_id: str | None = None

    def __bool__(self) -> bool:
        return self.allowed


class PermissionsService:
    """Decide whether a user may act inside a workspace.

    The user must hold a role in the workspace. Owner roles pass every check;
    otherwise the requested permission must appear on one of the user's roles.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def check(
        self,
        userid: int,
        group_id: int,
        permission: str | None = None,
    ) -> AccessDecision:
        if await self._session.get(User, userid) is None:
            return AccessDecision(allowed=False, reason=AccessReason.UNKNOWN_USER)

        roles = await RolesService(self._session).roles_for_user(userid, group_id)
        if not roles:
            return AccessDecision(allowed=False, reason=AccessReason.NO_ROLE)

        for role in roles:
            if role.is_owner_role:
                return AccessDecision(allowed=True, reason=AccessReason.OWNER_ROLE, role_id=role.id)
        if permission is None:
            return AccessDecision(
                allowed=True,
                reason=AccessReason.NO_PERMISSION_REQUIRED,
                role_id=roles[0].id,
            )
        for role in roles:
            if permission in (role.permissions or []):
                return AccessDecision(allowed=True, reason=AccessReason.GRANTED, role_id=role.id)
        return AccessDecision(allowed=False, reason=AccessReason.MISSING_PERMISSION)


__all__ = ["AccessDecision", "AccessReason", "PermissionsService"]
