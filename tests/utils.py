"""Shared fakes and seed helpers for role sync tests."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession

from rolesync_api.features.directory import DirectoryUnavailable, RankTier, TierMember
from rolesync_db.models import Config, Role, RoleGroupTier, User, Workspace, user_roles


class FakeDirectory:
    """In-memory stand-in for :class:`GroupDirectoryClient`."""

    def __init__(
        self,
        *,
        tiers: Mapping[int, Iterable[RankTier]] | None = None,
        members: Mapping[tuple[int, int], Iterable[TierMember]] | None = None,
        ranks: Mapping[tuple[int, int], int] | None = None,
        unavailable: bool = False,
    ) -> None:
        self.tiers = {group_id: list(items) for group_id, items in (tiers or {}).items()}
        self.members = {key: list(items) for key, items in (members or {}).items()}
        self.ranks = dict(ranks or {})
        self.unavailable = unavailable
        self.failing_rank_lookups: set[tuple[int, int]] = set()
        self.failing_tiers: set[int] = set()
        self.member_calls: list[tuple[int, int]] = []

    async def fetch_rank_tiers(self, group_id: int) -> list[RankTier]:
        if self.unavailable:
            raise DirectoryUnavailable("list_rank_tiers", detail="offline")
        return sorted(self.tiers.get(group_id, []), key=lambda tier: tier.rank)

    async def list_rank_tiers(self, group_id: int) -> list[RankTier]:
        if self.unavailable:
            return []
        return await self.fetch_rank_tiers(group_id)

    async def fetch_members_at_tier(self, group_id: int, tier_id: int) -> list[TierMember]:
        self.member_calls.append((group_id, tier_id))
        if self.unavailable or tier_id in self.failing_tiers:
            raise DirectoryUnavailable("list_members_at_tier", detail="offline")
        return list(self.members.get((group_id, tier_id), []))

    async def list_members_at_tier(self, group_id: int, tier_id: int) -> list[TierMember]:
        try:
            return await self.fetch_members_at_tier(group_id, tier_id)
        except DirectoryUnavailable:
            return []

    async def get_member_rank(self, group_id: int, member_id: int) -> int | None:
        if self.unavailable or (group_id, member_id) in self.failing_rank_lookups:
            return None
        return self.ranks.get((group_id, member_id))

    async def get_tier_by_rank(self, group_id: int, rank: int) -> RankTier | None:
        for tier in self.tiers.get(group_id, []):
            if tier.rank == rank:
                return tier
        return None

    async def aclose(self) -> None:
        return None


class FakeThumbnails:
    """Records lookups and returns deterministic headshot URLs."""

    def __init__(self) -> None:
        self.requested: list[list[int]] = []

    async def get_headshots(self, member_ids: Iterable[int]) -> dict[int, str]:
        ids = list(member_ids)
        self.requested.append(ids)
        return {member_id: f"https://cdn.example/{member_id}.png" for member_id in ids}

    async def aclose(self) -> None:
        return None


async def seed_workspace(session: AsyncSession, group_id: int) -> Workspace:
    workspace = Workspace(group_id=group_id)
    session.add(workspace)
    await session.flush()
    return workspace


async def seed_role(
    session: AsyncSession,
    group_id: int,
    name: str,
    *,
    tiers: Iterable[int] = (),
    permissions: Iterable[str] = (),
    is_owner_role: bool = False,
) -> Role:
    role = Role(
        workspace_group_id=group_id,
        name=name,
        permissions=list(permissions),
        is_owner_role=is_owner_role,
    )
    role.tiers = [RoleGroupTier(tier_id=tier_id, workspace_group_id=group_id) for tier_id in tiers]
    session.add(role)
    await session.flush()
    return role


async def seed_user(
    session: AsyncSession,
    userid: int,
    *,
    username: str | None = None,
    picture: str | None = None,
    role_ids: Iterable[str] = (),
) -> User:
    user = User(userid=userid, username=username, picture=picture)
    session.add(user)
    await session.flush()
    for role_id in role_ids:
        await session.execute(insert(user_roles).values(user_id=userid, role_id=role_id))
    return user


async def seed_config(session: AsyncSession, group_id: int, key: str, value: object) -> None:
    session.add(Config(workspace_group_id=group_id, key=key, value=value))
    await session.flush()
