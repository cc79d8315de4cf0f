"""Value objects returned by the external group directory."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RankTier:
    """One rank level defined by an external group."""

    tier_id: int
    rank: int
    name: str


@dataclass(frozen=True, slots=True)
class TierMember:
    """A member currently holding a given tier."""

    member_id: int
    username: str | None


__all__ = ["RankTier", "TierMember"]
