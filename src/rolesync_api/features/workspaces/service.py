"""Workspace creation and lookup."""

from __future__ import annotations

import logging

from sqlalchemy import func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from rolesync_api.common.logging import log_context
from rolesync_api.features.configs import CUSTOMIZATION_CONFIG_KEY, ConfigService
from rolesync_api.features.roles import RolesService
from rolesync_api.settings import Settings
from rolesync_db.models import Role, User, Workspace, user_roles

from .exceptions import WorkspaceAlreadyExistsError, WorkspaceNotFoundError

logger = logging.getLogger(__name__)

OWNER_ROLE_NAME = "Admin"
OWNER_ROLE_PERMISSIONS = ("admin", "view_staff_config")
DEFAULT_WORKSPACE_COLOR = "#4b9cff"


class WorkspacesService:
    """Create and look up workspaces inside the caller's session.

    The caller owns the transaction: wrap calls in ``session_scope`` so the
    workspace, owner role, owner user and customization config commit together.
    """

    def __init__(self, session: AsyncSession, settings: Settings) -> None:
        self._session = session
        self._settings = settings

    async def count_workspaces(self) -> int:
        result = await self._session.execute(select(func.count()).select_from(Workspace))
        return int(result.scalar_one())

    async def list_workspaces(self) -> list[Workspace]:
        stmt = select(Workspace).order_by(Workspace.group_id)
        return list((await self._session.execute(stmt)).scalars().all())

    async def get_workspace(self, group_id: int) -> Workspace:
        workspace = await self._session.get(Workspace, group_id)
        if workspace is None:
            raise WorkspaceNotFoundError(group_id)
        return workspace

    async def create_workspace(
        self,
        group_id: int,
        owner_userid: int,
        *,
        owner_username: str | None = None,
        color: str | None = None,
    ) -> Workspace:
        if self._settings.single_workspace:
            if await self.count_workspaces() > 0:
                raise WorkspaceAlreadyExistsError("A workspace already exists")
        elif await self._session.get(Workspace, group_id) is not None:
            raise WorkspaceAlreadyExistsError(f"Workspace {group_id} already exists")

        workspace = Workspace(group_id=group_id)
        self._session.add(workspace)
        await self._session.flush()

        role: Role = await RolesService(self._session).create_role(
            group_id=group_id,
            name=OWNER_ROLE_NAME,
            permissions=OWNER_ROLE_PERMISSIONS,
            is_owner_role=True,
        )

        owner = await self._session.get(User, owner_userid)
        if owner is None:
            owner = User(userid=owner_userid, username=owner_username, is_owner=True)
            self._session.add(owner)
        else:
            owner.is_owner = True
            if owner_username:
                owner.username = owner_username
        await self._session.flush()

        await self._session.execute(
            insert(user_roles).values(user_id=owner_userid, role_id=role.id)
        )
        await ConfigService.write_config(
            self._session,
            key=CUSTOMIZATION_CONFIG_KEY,
            value={"color": color or DEFAULT_WORKSPACE_COLOR},
            group_id=group_id,
        )

        logger.info(
            "workspace.created",
            extra=log_context(group_id=group_id, member_id=owner_userid, role_id=role.id),
        )
        return workspace


__all__ = [
    "DEFAULT_WORKSPACE_COLOR",
    "OWNER_ROLE_NAME",
    "OWNER_ROLE_PERMISSIONS",
    "WorkspacesService",
]
