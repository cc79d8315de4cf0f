"""Reconcile one rank tier's reported membership with its mapped role."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rolesync_api.common.logging import log_context
from rolesync_api.features.directory import RankTier, ThumbnailClient, TierMember
from rolesync_db.engine import session_scope

from .mutations import MutationBatch
from .snapshot import KnownUser

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MappedRole:
    """The parts of a role the reconciler needs."""

    role_id: str
    name: str


@dataclass(frozen=True, slots=True)
class ReconcileOutcome:
    granted: int
    revoked: int

    @property
    def changed(self) -> bool:
        return bool(self.granted or self.revoked)


class RoleReconciler:
    """Compute and apply the membership delta for a single tier.

    Planning only reads the known-user snapshot (plus thumbnail lookups for
    missing pictures); applying commits every mutation of the tier in one
    transaction.
    """

    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession],
        thumbnails: ThumbnailClient | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._thumbnails = thumbnails

    async def plan(
        self,
        *,
        tier: RankTier,
        members: Iterable[TierMember],
        role: MappedRole | None,
        known_users: Mapping[int, KnownUser],
    ) -> MutationBatch:
        batch = MutationBatch()
        if role is None:
            return batch

        usernames = {member.member_id: member.username for member in members}

        joining = [
            user
            for userid, user in known_users.items()
            if userid in usernames and not user.holds(role.role_id)
        ]
        leaving = [
            user
            for userid, user in known_users.items()
            if userid not in usernames and user.holds(role.role_id)
        ]

        pictures: dict[int, str] = {}
        missing_pictures = [user.userid for user in joining if not user.picture]
        if missing_pictures and self._thumbnails is not None:
            pictures = await self._thumbnails.get_headshots(missing_pictures)

        for user in joining:
            batch.grant(
                user.userid,
                role.role_id,
                username=usernames.get(user.userid),
                picture=None if user.picture else pictures.get(user.userid),
            )
        for user in leaving:
            batch.revoke(user.userid, role.role_id)

        logger.debug(
            "roles.reconcile.planned",
            extra=log_context(
                tier_id=tier.tier_id,
                role_id=role.role_id,
                grants=len(batch.grants),
                revokes=len(batch.revokes),
            ),
        )
        return batch

    async def apply(self, batch: MutationBatch) -> ReconcileOutcome:
        if batch:
            async with session_scope(self._session_factory) as session:
                await batch.apply(session)
        return ReconcileOutcome(granted=len(batch.grants), revoked=len(batch.revokes))

    async def reconcile(
        self,
        *,
        tier: RankTier,
        members: Iterable[TierMember],
        role: MappedRole | None,
        known_users: Mapping[int, KnownUser],
    ) -> ReconcileOutcome:
        batch = await self.plan(tier=tier, members=members, role=role, known_users=known_users)
        return await self.apply(batch)


__all__ = ["MappedRole", "ReconcileOutcome", "RoleReconciler"]
