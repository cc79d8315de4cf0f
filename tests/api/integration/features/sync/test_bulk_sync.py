from __future__ import annotations

import asyncio
import logging

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from rolesync_api.features.configs import ACTIVITY_CONFIG_KEY, ConfigService
from rolesync_api.features.directory import RankTier, TierMember
from rolesync_api.features.roles import ReconcileOutcome, RoleReconciler
from rolesync_api.features.sync import BulkSynchronizer, SyncOutcome, TierStatus
from rolesync_db.engine import session_scope
from rolesync_db.models import Rank, user_roles
from tests.utils import (
    FakeDirectory,
    FakeThumbnails,
    seed_config,
    seed_role,
    seed_user,
    seed_workspace,
)

GROUP_ID = 4242
GUEST = RankTier(tier_id=1, rank=0, name="Guest")
OFFICER = RankTier(tier_id=2, rank=50, name="Officer")
LEADER = RankTier(tier_id=3, rank=255, name="Leader")


def _synchronizer(session_factory, directory, *, reconciler=None, concurrency=3) -> BulkSynchronizer:
    return BulkSynchronizer(
        session_factory=session_factory,
        directory=directory,
        configs=ConfigService(session_factory=session_factory),
        reconciler=reconciler
        or RoleReconciler(session_factory=session_factory, thumbnails=FakeThumbnails()),
        tier_concurrency=concurrency,
    )


async def _ranks(session_factory) -> dict[int, int]:
    async with session_factory() as session:
        rows = (await session.execute(select(Rank.user_id, Rank.rank_id))).all()
    return dict(rows)


async def _role_holders(session_factory) -> set[tuple[int, str]]:
    async with session_factory() as session:
        rows = (await session.execute(select(user_roles.c.user_id, user_roles.c.role_id))).all()
    return {(user_id, role_id) for user_id, role_id in rows}


@pytest.mark.asyncio
async def test_tiers_below_threshold_are_skipped_and_members_gain_role(session_factory) -> None:
    async with session_scope(session_factory) as session:
        await seed_workspace(session, GROUP_ID)
        await seed_config(session, GROUP_ID, ACTIVITY_CONFIG_KEY, {"role": 10})
        role = await seed_role(session, GROUP_ID, "Officer", tiers=[OFFICER.tier_id])
        await seed_user(session, 1)
        role_id = role.id

    directory = FakeDirectory(
        tiers={GROUP_ID: [GUEST, OFFICER]},
        members={
            (GROUP_ID, GUEST.tier_id): [TierMember(9, "guest")],
            (GROUP_ID, OFFICER.tier_id): [TierMember(1, "u1")],
        },
    )

    stats = await _synchronizer(session_factory, directory).sync_group(GROUP_ID)

    assert stats.outcome is SyncOutcome.COMPLETED
    assert stats.minimum_tracked_rank == 10
    assert [tier.tier_id for tier in stats.tiers] == [OFFICER.tier_id]
    assert directory.member_calls == [(GROUP_ID, OFFICER.tier_id)]
    assert await _ranks(session_factory) == {1: 50}
    assert await _role_holders(session_factory) == {(1, role_id)}


@pytest.mark.asyncio
async def test_role_is_revoked_when_tier_reports_no_members(session_factory) -> None:
    async with session_scope(session_factory) as session:
        await seed_workspace(session, GROUP_ID)
        role = await seed_role(session, GROUP_ID, "Officer", tiers=[OFFICER.tier_id])
        other = await seed_role(session, GROUP_ID, "Leader", tiers=[LEADER.tier_id])
        await seed_user(session, 1, role_ids=[role.id])
        await seed_user(session, 2)
        other_id = other.id

    directory = FakeDirectory(
        tiers={GROUP_ID: [OFFICER, LEADER]},
        members={
            (GROUP_ID, OFFICER.tier_id): [],
            (GROUP_ID, LEADER.tier_id): [TierMember(2, "u2")],
        },
    )

    stats = await _synchronizer(session_factory, directory).sync_group(GROUP_ID)

    officer_result, leader_result = stats.tiers
    assert officer_result.status is TierStatus.RECONCILED
    assert (officer_result.ranks_upserted, officer_result.roles_revoked) == (0, 1)
    assert leader_result.status is TierStatus.RECONCILED
    assert await _role_holders(session_factory) == {(2, other_id)}
    assert await _ranks(session_factory) == {2: 255}


@pytest.mark.asyncio
async def test_departed_role_holder_loses_role(session_factory) -> None:
    async with session_scope(session_factory) as session:
        await seed_workspace(session, GROUP_ID)
        role = await seed_role(session, GROUP_ID, "Officer", tiers=[OFFICER.tier_id])
        await seed_user(session, 1, role_ids=[role.id])
        await seed_user(session, 2)
        role_id = role.id

    directory = FakeDirectory(
        tiers={GROUP_ID: [OFFICER]},
        members={(GROUP_ID, OFFICER.tier_id): [TierMember(2, "u2")]},
    )

    stats = await _synchronizer(session_factory, directory).sync_group(GROUP_ID)

    assert (stats.roles_granted, stats.roles_revoked) == (1, 1)
    assert await _role_holders(session_factory) == {(2, role_id)}


@pytest.mark.asyncio
async def test_second_run_with_unchanged_directory_makes_no_mutations(session_factory) -> None:
    async with session_scope(session_factory) as session:
        await seed_workspace(session, GROUP_ID)
        await seed_role(session, GROUP_ID, "Officer", tiers=[OFFICER.tier_id])
        for userid in (1, 2, 3):
            await seed_user(session, userid)

    directory = FakeDirectory(
        tiers={GROUP_ID: [GUEST, OFFICER]},
        members={
            (GROUP_ID, GUEST.tier_id): [TierMember(3, "u3")],
            (GROUP_ID, OFFICER.tier_id): [TierMember(1, "u1"), TierMember(2, "u2")],
        },
    )
    synchronizer = _synchronizer(session_factory, directory)

    first = await synchronizer.sync_group(GROUP_ID)
    second = await synchronizer.sync_group(GROUP_ID)

    assert first.mutations == 5
    assert second.mutations == 0
    assert await _ranks(session_factory) == {1: 50, 2: 50, 3: 0}


@pytest.mark.asyncio
async def test_unmapped_tiers_only_update_ranks(session_factory) -> None:
    async with session_scope(session_factory) as session:
        await seed_workspace(session, GROUP_ID)
        await seed_user(session, 1)

    directory = FakeDirectory(
        tiers={GROUP_ID: [OFFICER]},
        members={(GROUP_ID, OFFICER.tier_id): [TierMember(1, "u1"), TierMember(77, "unknown")]},
    )

    stats = await _synchronizer(session_factory, directory).sync_group(GROUP_ID)

    assert stats.tiers[0].status is TierStatus.UNMAPPED
    assert await _ranks(session_factory) == {1: 50, 77: 50}
    assert await _role_holders(session_factory) == set()


@pytest.mark.asyncio
async def test_directory_outage_is_a_noop(session_factory, caplog: pytest.LogCaptureFixture) -> None:
    async with session_scope(session_factory) as session:
        await seed_workspace(session, GROUP_ID)
        role = await seed_role(session, GROUP_ID, "Officer", tiers=[OFFICER.tier_id])
        await seed_user(session, 1, role_ids=[role.id])
        role_id = role.id

    caplog.set_level(logging.WARNING)
    stats = await _synchronizer(session_factory, FakeDirectory(unavailable=True)).sync_group(GROUP_ID)

    assert stats.outcome is SyncOutcome.DIRECTORY_UNAVAILABLE
    assert stats.mutations == 0
    assert await _role_holders(session_factory) == {(1, role_id)}
    assert "sync.bulk.directory_unavailable" in [record.getMessage() for record in caplog.records]


@pytest.mark.asyncio
async def test_group_without_tiers_and_missing_workspace(session_factory) -> None:
    async with session_scope(session_factory) as session:
        await seed_workspace(session, GROUP_ID)

    synchronizer = _synchronizer(session_factory, FakeDirectory())

    assert (await synchronizer.sync_group(GROUP_ID)).outcome is SyncOutcome.NO_TIERS
    assert (await synchronizer.sync_group(999)).outcome is SyncOutcome.WORKSPACE_NOT_FOUND


@pytest.mark.asyncio
async def test_no_tracked_tiers_when_threshold_exceeds_every_rank(session_factory) -> None:
    async with session_scope(session_factory) as session:
        await seed_workspace(session, GROUP_ID)
        await seed_config(session, GROUP_ID, ACTIVITY_CONFIG_KEY, {"role": 256})

    directory = FakeDirectory(tiers={GROUP_ID: [GUEST, OFFICER, LEADER]})
    stats = await _synchronizer(session_factory, directory).sync_group(GROUP_ID)

    assert stats.outcome is SyncOutcome.NO_TRACKED_TIERS
    assert directory.member_calls == []


class _FlakyReconciler(RoleReconciler):
    def __init__(self, *, failing_tier: int, **kwargs) -> None:
        super().__init__(**kwargs)
        self.failing_tier = failing_tier

    async def reconcile(self, *, tier, members, role, known_users) -> ReconcileOutcome:
        if tier.tier_id == self.failing_tier:
            raise OperationalError("UPDATE users", {}, Exception("database is locked"))
        return await super().reconcile(tier=tier, members=members, role=role, known_users=known_users)


@pytest.mark.asyncio
async def test_store_failure_in_one_tier_does_not_stop_others(
    session_factory,
    caplog: pytest.LogCaptureFixture,
) -> None:
    async with session_scope(session_factory) as session:
        await seed_workspace(session, GROUP_ID)
        officer = await seed_role(session, GROUP_ID, "Officer", tiers=[OFFICER.tier_id])
        await seed_role(session, GROUP_ID, "Leader", tiers=[LEADER.tier_id])
        await seed_user(session, 1)
        await seed_user(session, 2)
        officer_id = officer.id

    directory = FakeDirectory(
        tiers={GROUP_ID: [OFFICER, LEADER]},
        members={
            (GROUP_ID, OFFICER.tier_id): [TierMember(1, "u1")],
            (GROUP_ID, LEADER.tier_id): [TierMember(2, "u2")],
        },
    )
    reconciler = _FlakyReconciler(
        failing_tier=LEADER.tier_id,
        session_factory=session_factory,
        thumbnails=FakeThumbnails(),
    )

    caplog.set_level(logging.ERROR)
    stats = await _synchronizer(session_factory, directory, reconciler=reconciler).sync_group(GROUP_ID)

    assert stats.outcome is SyncOutcome.COMPLETED
    assert stats.tiers_failed == 1
    assert stats.tiers_processed == 1
    assert await _role_holders(session_factory) == {(1, officer_id)}
    assert await _ranks(session_factory) == {1: 50, 2: 255}
    assert "sync.bulk.tier.failed" in [record.getMessage() for record in caplog.records]


@pytest.mark.asyncio
async def test_serial_tier_processing_matches_concurrent(session_factory) -> None:
    async with session_scope(session_factory) as session:
        await seed_workspace(session, GROUP_ID)
        officer = await seed_role(session, GROUP_ID, "Officer", tiers=[OFFICER.tier_id])
        leader = await seed_role(session, GROUP_ID, "Leader", tiers=[LEADER.tier_id])
        await seed_user(session, 1)
        await seed_user(session, 2)
        expected = {(1, officer.id), (2, leader.id)}

    directory = FakeDirectory(
        tiers={GROUP_ID: [OFFICER, LEADER]},
        members={
            (GROUP_ID, OFFICER.tier_id): [TierMember(1, "u1")],
            (GROUP_ID, LEADER.tier_id): [TierMember(2, "u2")],
        },
    )

    stats = await _synchronizer(session_factory, directory, concurrency=1).sync_group(GROUP_ID)

    assert stats.roles_granted == 2
    assert await _role_holders(session_factory) == expected


class _TrackingDirectory(FakeDirectory):
    """Counts member listings that are in flight at the same time."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.in_flight = 0
        self.peak = 0

    async def fetch_members_at_tier(self, group_id: int, tier_id: int) -> list[TierMember]:
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(0.01)
            return await super().fetch_members_at_tier(group_id, tier_id)
        finally:
            self.in_flight -= 1


@pytest.mark.asyncio
async def test_tier_listings_are_bounded_by_concurrency(session_factory) -> None:
    async with session_scope(session_factory) as session:
        await seed_workspace(session, GROUP_ID)

    tiers = [RankTier(tier_id=100 + index, rank=index, name=f"Tier {index}") for index in range(10)]
    directory = _TrackingDirectory(tiers={GROUP_ID: tiers})

    stats = await _synchronizer(session_factory, directory, concurrency=3).sync_group(GROUP_ID)

    assert stats.outcome is SyncOutcome.COMPLETED
    assert len(directory.member_calls) == 10
    assert directory.peak == 3
    assert directory.in_flight == 0


def test_tier_concurrency_must_be_positive(session_factory) -> None:
    with pytest.raises(ValueError):
        _synchronizer(session_factory, FakeDirectory(), concurrency=0)


@pytest.mark.asyncio
async def test_failed_member_listing_leaves_tier_untouched(session_factory) -> None:
    async with session_scope(session_factory) as session:
        await seed_workspace(session, GROUP_ID)
        role = await seed_role(session, GROUP_ID, "Officer", tiers=[OFFICER.tier_id])
        await seed_user(session, 1, role_ids=[role.id])
        role_id = role.id

    directory = FakeDirectory(tiers={GROUP_ID: [GUEST, OFFICER]})
    directory.failing_tiers.add(OFFICER.tier_id)

    stats = await _synchronizer(session_factory, directory).sync_group(GROUP_ID)

    statuses = {tier.tier_id: tier.status for tier in stats.tiers}
    assert statuses == {GUEST.tier_id: TierStatus.EMPTY, OFFICER.tier_id: TierStatus.UNAVAILABLE}
    assert stats.tiers_unavailable == 1
    assert stats.mutations == 0
    assert await _role_holders(session_factory) == {(1, role_id)}
