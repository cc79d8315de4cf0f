"""Resync one member across every workspace."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rolesync_api.common.logging import bind_sync_context, log_context
from rolesync_api.features.directory import GroupDirectoryClient
from rolesync_api.features.ranks import RankLedger
from rolesync_api.features.roles import MutationBatch, RolesService
from rolesync_db.engine import session_scope
from rolesync_db.models import User, Workspace

from .exceptions import StoreFailure
from .stats import UserSyncStats, WorkspaceStatus, WorkspaceSyncResult

logger = logging.getLogger(__name__)


class SingleUserSynchronizer:
    """Record one member's rank in each workspace and hand off their mapped role.

    Workspaces are visited one after another. Each workspace is its own unit:
    a store failure there is logged and the next workspace is still synced.
    """

    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession],
        directory: GroupDirectoryClient,
    ) -> None:
        self._session_factory = session_factory
        self._directory = directory

    async def sync_user(self, member_id: int) -> UserSyncStats:
        bind_sync_context()
        logger.info("sync.user.start", extra=log_context(member_id=member_id))

        try:
            async with self._session_factory() as session:
                group_ids = list(
                    (
                        await session.execute(
                            select(Workspace.group_id).order_by(Workspace.group_id)
                        )
                    ).scalars()
                )
        except SQLAlchemyError as exc:
            raise StoreFailure("list_workspaces") from exc

        results: list[WorkspaceSyncResult] = []
        for group_id in group_ids:
            try:
                result = await self._sync_workspace(group_id, member_id)
            except SQLAlchemyError:
                logger.exception(
                    "sync.user.workspace.failed",
                    extra=log_context(group_id=group_id, member_id=member_id),
                )
                result = WorkspaceSyncResult(group_id=group_id, status=WorkspaceStatus.FAILED)
            results.append(result)

        stats = UserSyncStats(member_id=member_id, workspaces=tuple(results))
        logger.info(
            "sync.user.complete",
            extra=log_context(
                member_id=member_id,
                workspaces=len(results),
                workspaces_failed=stats.workspaces_failed,
            ),
        )
        return stats

    async def _sync_workspace(self, group_id: int, member_id: int) -> WorkspaceSyncResult:
        rank = await self._directory.get_member_rank(group_id, member_id)

        async with session_scope(self._session_factory) as session:
            await RankLedger(session).upsert(
                user_id=member_id,
                workspace_group_id=group_id,
                rank_id=rank or 0,
            )

        if not rank:
            return WorkspaceSyncResult(group_id=group_id, status=WorkspaceStatus.NOT_A_MEMBER)

        tier = await self._directory.get_tier_by_rank(group_id, rank)
        if tier is None:
            return WorkspaceSyncResult(
                group_id=group_id, status=WorkspaceStatus.TIER_UNKNOWN, rank=rank
            )

        async with session_scope(self._session_factory) as session:
            roles = RolesService(session)
            matched = await roles.find_role_for_tier(group_id, tier.tier_id)
            if matched is None:
                return WorkspaceSyncResult(
                    group_id=group_id, status=WorkspaceStatus.UNMAPPED, rank=rank
                )

            if await session.get(User, member_id) is None:
                return WorkspaceSyncResult(
                    group_id=group_id,
                    status=WorkspaceStatus.USER_UNKNOWN,
                    rank=rank,
                    role_id=matched.id,
                )

            held = {role.id for role in await roles.roles_for_user(member_id, group_id)}
            batch = MutationBatch()
            for role_id in sorted(held - {matched.id}):
                batch.revoke(member_id, role_id)
            if matched.id not in held:
                batch.grant(member_id, matched.id)

            if not batch:
                return WorkspaceSyncResult(
                    group_id=group_id,
                    status=WorkspaceStatus.UNCHANGED,
                    rank=rank,
                    role_id=matched.id,
                )
            await batch.apply(session)

        logger.info(
            "sync.user.role_handoff",
            extra=log_context(
                group_id=group_id,
                member_id=member_id,
                role_id=matched.id,
                revoked=len(batch.revokes),
                granted=len(batch.grants),
            ),
        )
        return WorkspaceSyncResult(
            group_id=group_id,
            status=WorkspaceStatus.UPDATED,
            rank=rank,
            role_id=matched.id,
            roles_revoked=len(batch.revokes),
            roles_granted=len(batch.grants),
        )


__all__ = ["SingleUserSynchronizer"]
