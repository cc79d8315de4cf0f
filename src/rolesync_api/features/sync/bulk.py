"""Full-group resync: every tracked tier of one workspace."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rolesync_api.common.logging import bind_sync_context, log_context
from rolesync_api.features.configs import ConfigService
from rolesync_api.features.directory import (
    DirectoryUnavailable,
    GroupDirectoryClient,
    RankTier,
)
from rolesync_api.features.ranks import RankEntry, RankLedger
from rolesync_api.features.roles import (
    KnownUser,
    MappedRole,
    RoleReconciler,
    load_known_users,
    tier_role_map,
)
from rolesync_api.settings import DEFAULT_TIER_CONCURRENCY
from rolesync_db.engine import session_scope
from rolesync_db.models import Workspace

from .exceptions import StoreFailure
from .stats import BulkSyncStats, SyncOutcome, TierStatus, TierSyncResult

logger = logging.getLogger(__name__)


class BulkSynchronizer:
    """Reconcile ranks and role memberships for every tracked tier of a group.

    Tiers are processed concurrently, at most ``tier_concurrency`` at a time.
    Each tier commits its ledger upsert and its role mutations as two separate
    transactions; no transaction spans tiers.
    """

    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession],
        directory: GroupDirectoryClient,
        configs: ConfigService,
        reconciler: RoleReconciler,
        tier_concurrency: int = DEFAULT_TIER_CONCURRENCY,
    ) -> None:
        if tier_concurrency < 1:
            raise ValueError("tier_concurrency must be at least 1")
        self._session_factory = session_factory
        self._directory = directory
        self._configs = configs
        self._reconciler = reconciler
        self._tier_concurrency = tier_concurrency

    async def sync_group(self, group_id: int) -> BulkSyncStats:
        bind_sync_context()
        logger.info("sync.bulk.start", extra=log_context(group_id=group_id))

        try:
            tiers, roles, minimum_rank = await asyncio.gather(
                self._fetch_tiers(group_id),
                self._load_role_map(group_id),
                self._configs.get_minimum_tracked_rank(group_id),
            )
        except SQLAlchemyError as exc:
            raise StoreFailure("load_workspace", group_id=group_id) from exc

        if roles is None:
            return self._finish(group_id, SyncOutcome.WORKSPACE_NOT_FOUND, minimum_rank)
        if tiers is None:
            return self._finish(group_id, SyncOutcome.DIRECTORY_UNAVAILABLE, minimum_rank)
        if not tiers:
            return self._finish(group_id, SyncOutcome.NO_TIERS, minimum_rank)

        tracked = [tier for tier in tiers if tier.rank >= minimum_rank]
        if not tracked:
            return self._finish(group_id, SyncOutcome.NO_TRACKED_TIERS, minimum_rank)

        try:
            async with self._session_factory() as session:
                known_users = await load_known_users(session, group_id)
                ledger = await RankLedger(session).snapshot(group_id)
        except SQLAlchemyError as exc:
            raise StoreFailure("load_known_users", group_id=group_id) from exc

        semaphore = asyncio.Semaphore(self._tier_concurrency)
        async with asyncio.TaskGroup() as group:
            tasks = [
                group.create_task(
                    self._process_tier(
                        semaphore,
                        group_id=group_id,
                        tier=tier,
                        role=roles.get(tier.tier_id),
                        known_users=known_users,
                        ledger=ledger,
                    )
                )
                for tier in tracked
            ]

        results = tuple(task.result() for task in tasks)
        return self._finish(group_id, SyncOutcome.COMPLETED, minimum_rank, results)

    async def _fetch_tiers(self, group_id: int) -> list[RankTier] | None:
        try:
            return await self._directory.fetch_rank_tiers(group_id)
        except DirectoryUnavailable as exc:
            logger.warning(
                "sync.bulk.directory_unavailable",
                extra=log_context(group_id=group_id, detail=exc.detail),
            )
            return None

    async def _load_role_map(self, group_id: int) -> dict[int, MappedRole] | None:
        async with self._session_factory() as session:
            workspace = await session.get(Workspace, group_id)
            if workspace is None:
                return None
            return tier_role_map(workspace.roles)

    async def _process_tier(
        self,
        semaphore: asyncio.Semaphore,
        *,
        group_id: int,
        tier: RankTier,
        role: MappedRole | None,
        known_users: Mapping[int, KnownUser],
        ledger: Mapping[int, int],
    ) -> TierSyncResult:
        async with semaphore:
            try:
                members = await self._directory.fetch_members_at_tier(group_id, tier.tier_id)
            except DirectoryUnavailable as exc:
                logger.warning(
                    "sync.bulk.tier.unavailable",
                    extra=log_context(group_id=group_id, tier_id=tier.tier_id, detail=exc.detail),
                )
                return TierSyncResult(
                    tier_id=tier.tier_id, rank=tier.rank, status=TierStatus.UNAVAILABLE
                )
            # An empty listing still revokes the mapped role from former holders.
            if not members and role is None:
                return TierSyncResult(tier_id=tier.tier_id, rank=tier.rank, status=TierStatus.EMPTY)

            entries = RankLedger.changed_entries(
                (RankEntry(user_id=m.member_id, rank_id=tier.rank) for m in members),
                ledger,
            )
            ranks_upserted = 0
            try:
                if entries:
                    async with session_scope(self._session_factory) as session:
                        ranks_upserted = await RankLedger(session).upsert_many(
                            workspace_group_id=group_id,
                            entries=entries,
                        )

                if role is None:
                    return TierSyncResult(
                        tier_id=tier.tier_id,
                        rank=tier.rank,
                        status=TierStatus.UNMAPPED,
                        members=len(members),
                        ranks_upserted=ranks_upserted,
                    )

                outcome = await self._reconciler.reconcile(
                    tier=tier,
                    members=members,
                    role=role,
                    known_users=known_users,
                )
            except SQLAlchemyError:
                logger.exception(
                    "sync.bulk.tier.failed",
                    extra=log_context(group_id=group_id, tier_id=tier.tier_id),
                )
                return TierSyncResult(
                    tier_id=tier.tier_id,
                    rank=tier.rank,
                    status=TierStatus.FAILED,
                    members=len(members),
                    ranks_upserted=ranks_upserted,
                )

        logger.info(
            "sync.bulk.tier.reconciled",
            extra=log_context(
                group_id=group_id,
                tier_id=tier.tier_id,
                role_id=role.role_id,
                members=len(members),
                ranks_upserted=ranks_upserted,
                granted=outcome.granted,
                revoked=outcome.revoked,
            ),
        )
        return TierSyncResult(
            tier_id=tier.tier_id,
            rank=tier.rank,
            status=TierStatus.RECONCILED,
            members=len(members),
            ranks_upserted=ranks_upserted,
            roles_granted=outcome.granted,
            roles_revoked=outcome.revoked,
        )

    @staticmethod
    def _finish(
        group_id: int,
        outcome: SyncOutcome,
        minimum_rank: int,
        tiers: tuple[TierSyncResult, ...] = (),
    ) -> BulkSyncStats:
        stats = BulkSyncStats(
            group_id=group_id,
            outcome=outcome,
            minimum_tracked_rank=minimum_rank,
            tiers=tiers,
        )
        logger.info(
            "sync.bulk.complete",
            extra=log_context(
                group_id=group_id,
                outcome=outcome.value,
                tiers_processed=stats.tiers_processed,
                tiers_failed=stats.tiers_failed,
                ranks_upserted=stats.ranks_upserted,
                roles_granted=stats.roles_granted,
                roles_revoked=stats.roles_revoked,
            ),
        )
        return stats


__all__ = ["BulkSynchronizer"]
