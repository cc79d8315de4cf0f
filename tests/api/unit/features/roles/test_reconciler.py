from __future__ import annotations

import pytest
from sqlalchemy import event, select

from rolesync_api.features.directory import RankTier, TierMember
from rolesync_api.features.roles import (
    KnownUser,
    MappedRole,
    MutationBatch,
    RevokeRole,
    RoleReconciler,
    load_known_users,
    mutations,
)
from rolesync_db.engine import session_scope
from rolesync_db.models import User, user_roles
from tests.utils import FakeThumbnails, seed_role, seed_user, seed_workspace

GROUP_ID = 4242
TIER = RankTier(tier_id=30, rank=50, name="Officer")


def _known(userid: int, *role_ids: str, picture: str | None = None) -> KnownUser:
    return KnownUser(userid=userid, username=f"user{userid}", picture=picture, role_ids=frozenset(role_ids))


def test_mutation_batch_orders_revokes_before_grants() -> None:
    batch = MutationBatch().grant(1, "new").revoke(1, "old")

    assert len(batch) == 2
    assert bool(batch) is True
    assert [type(m).__name__ for m in batch] == ["RevokeRole", "GrantRole"]
    assert not MutationBatch()


@pytest.mark.asyncio
async def test_plan_without_mapped_role_is_empty(session_factory) -> None:
    reconciler = RoleReconciler(session_factory=session_factory)

    batch = await reconciler.plan(
        tier=TIER,
        members=[TierMember(1, "one")],
        role=None,
        known_users={1: _known(1)},
    )

    assert not batch


@pytest.mark.asyncio
async def test_plan_partitions_joining_and_leaving_users(session_factory) -> None:
    thumbnails = FakeThumbnails()
    reconciler = RoleReconciler(session_factory=session_factory, thumbnails=thumbnails)
    role = MappedRole(role_id="R", name="Officer")

    batch = await reconciler.plan(
        tier=TIER,
        members=[TierMember(1, "fresh-name"), TierMember(2, "two"), TierMember(99, "stranger")],
        role=role,
        known_users={
            1: _known(1),
            2: _known(2, "R"),
            3: _known(3, "R"),
            4: _known(4, picture="https://existing/4.png"),
        },
    )

    assert [(g.user_id, g.username, g.picture) for g in batch.grants] == [
        (1, "fresh-name", "https://cdn.example/1.png"),
    ]
    assert batch.revokes == [RevokeRole(user_id=3, role_id="R")]
    assert thumbnails.requested == [[1]]


@pytest.mark.asyncio
async def test_existing_pictures_are_not_refreshed(session_factory) -> None:
    thumbnails = FakeThumbnails()
    reconciler = RoleReconciler(session_factory=session_factory, thumbnails=thumbnails)

    batch = await reconciler.plan(
        tier=TIER,
        members=[TierMember(4, "four")],
        role=MappedRole(role_id="R", name="Officer"),
        known_users={4: _known(4, picture="https://existing/4.png")},
    )

    assert batch.grants[0].picture is None
    assert thumbnails.requested == []


@pytest.mark.asyncio
async def test_reconcile_applies_all_mutations(session_factory) -> None:
    async with session_scope(session_factory) as session:
        await seed_workspace(session, GROUP_ID)
        role = await seed_role(session, GROUP_ID, "Officer", tiers=[TIER.tier_id])
        await seed_user(session, 1, username="old-name")
        await seed_user(session, 2, username="two", picture="https://existing/2.png", role_ids=[role.id])
        role_id = role.id

    async with session_factory() as session:
        known = await load_known_users(session, GROUP_ID)
    reconciler = RoleReconciler(session_factory=session_factory, thumbnails=FakeThumbnails())

    outcome = await reconciler.reconcile(
        tier=TIER,
        members=[TierMember(1, "new-name")],
        role=MappedRole(role_id=role_id, name="Officer"),
        known_users=known,
    )

    assert (outcome.granted, outcome.revoked, outcome.changed) == (1, 1, True)
    async with session_factory() as session:
        holders = (await session.execute(select(user_roles.c.user_id))).scalars().all()
        user = await session.get(User, 1)
    assert holders == [1]
    assert user.username == "new-name"
    assert user.picture == "https://cdn.example/1.png"


@pytest.mark.asyncio
async def test_known_users_snapshot_is_scoped_to_workspace(session_factory) -> None:
    async with session_scope(session_factory) as session:
        await seed_workspace(session, GROUP_ID)
        await seed_workspace(session, 7)
        mine = await seed_role(session, GROUP_ID, "Officer")
        theirs = await seed_role(session, 7, "Elsewhere")
        await seed_user(session, 1, role_ids=[mine.id, theirs.id])
        mine_id = mine.id

    async with session_factory() as session:
        known = await load_known_users(session, GROUP_ID)

    assert known[1].role_ids == frozenset({mine_id})
    assert known[1].rank_id is None


@pytest.mark.asyncio
async def test_grants_are_inserted_in_bounded_statements(
    engine, session_factory, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(mutations, "_ROWS_PER_STATEMENT", 2)
    async with session_scope(session_factory) as session:
        await seed_workspace(session, GROUP_ID)
        role = await seed_role(session, GROUP_ID, "Officer")
        for userid in range(1, 6):
            await seed_user(session, userid)
        role_id = role.id

    batch = MutationBatch()
    for userid in range(1, 6):
        batch.grant(userid, role_id)

    inserts: list[str] = []

    def _record(conn, cursor, statement, parameters, context, executemany) -> None:
        if statement.lstrip().upper().startswith("INSERT INTO USER_ROLES"):
            inserts.append(statement)

    event.listen(engine.sync_engine, "before_cursor_execute", _record)
    try:
        async with session_scope(session_factory) as session:
            await batch.apply(session)
    finally:
        event.remove(engine.sync_engine, "before_cursor_execute", _record)

    assert len(inserts) == 3
    async with session_factory() as session:
        holders = (await session.execute(select(user_roles.c.user_id).order_by(user_roles.c.user_id))).scalars().all()
    assert holders == [1, 2, 3, 4, 5]
