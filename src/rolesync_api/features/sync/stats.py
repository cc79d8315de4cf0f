"""Result records returned by the synchronizers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class SyncOutcome(str, Enum):
    """How a bulk sync run ended."""

    COMPLETED = "completed"
    WORKSPACE_NOT_FOUND = "workspace_not_found"
    DIRECTORY_UNAVAILABLE = "directory_unavailable"
    NO_TIERS = "no_tiers"
    NO_TRACKED_TIERS = "no_tracked_tiers"
    STORE_FAILED = "store_failed"


class TierStatus(str, Enum):
    """What happened to one tier during bulk sync."""

    EMPTY = "empty"
    UNAVAILABLE = "unavailable"
    UNMAPPED = "unmapped"
    RECONCILED = "reconciled"
    FAILED = "failed"


class WorkspaceStatus(str, Enum):
    """What happened to one workspace during single-user sync."""

    NOT_A_MEMBER = "not_a_member"
    TIER_UNKNOWN = "tier_unknown"
    UNMAPPED = "unmapped"
    USER_UNKNOWN = "user_unknown"
    UNCHANGED = "unchanged"
    UPDATED = "updated"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class TierSyncResult:
    tier_id: int
    rank: int
    status: TierStatus
    members: int = 0
    ranks_upserted: int = 0
    roles_granted: int = 0
    roles_revoked: int = 0


@dataclass(frozen=True, slots=True)
class BulkSyncStats:
    group_id: int
    outcome: SyncOutcome
    minimum_tracked_rank: int = 0
    tiers: tuple[TierSyncResult, ...] = field(default_factory=tuple)

    @property
    def tiers_processed(self) -> int:
        return sum(
            1
            for tier in self.tiers
            if tier.status not in (TierStatus.FAILED, TierStatus.UNAVAILABLE)
        )

    @property
    def tiers_failed(self) -> int:
        return sum(1 for tier in self.tiers if tier.status is TierStatus.FAILED)

    @property
    def tiers_unavailable(self) -> int:
        return sum(1 for tier in self.tiers if tier.status is TierStatus.UNAVAILABLE)

    @property
    def ranks_upserted(self) -> int:
        return sum(tier.ranks_upserted for tier in self.tiers)

    @property
    def roles_granted(self) -> int:
        return sum(tier.roles_granted for tier in self.tiers)

    @property
    def roles_revoked(self) -> int:
        return sum(tier.roles_revoked for tier in self.tiers)

    @property
    def mutations(self) -> int:
        return self.ranks_upserted + self.roles_granted + self.roles_revoked

    def as_dict(self) -> dict[str, object]:
        return {
            "group_id": self.group_id,
            "outcome": self.outcome.value,
            "minimum_tracked_rank": self.minimum_tracked_rank,
            "tiers_processed": self.tiers_processed,
            "tiers_failed": self.tiers_failed,
            "tiers_unavailable": self.tiers_unavailable,
            "ranks_upserted": self.ranks_upserted,
            "roles_granted": self.roles_granted,
            "roles_revoked": self.roles_revoked,
            "tiers": [
                {
                    "tier_id": tier.tier_id,
                    "rank": tier.rank,
                    "status": tier.status.value,
                    "members": tier.members,
                    "ranks_upserted": tier.ranks_upserted,
                    "roles_granted": tier.roles_granted,
                    "roles_revoked": tier.roles_revoked,
                }
                for tier in self.tiers
            ],
        }


@dataclass(frozen=True, slots=True)
class WorkspaceSyncResult:
    group_id: int
    status: WorkspaceStatus
    rank: int = 0
    role_id: str | None = None
    roles_revoked: int = 0
    roles_granted: int = 0


@dataclass(frozen=True, slots=True)
class UserSyncStats:
    member_id: int
    workspaces: tuple[WorkspaceSyncResult, ...] = field(default_factory=tuple)

    @property
    def workspaces_failed(self) -> int:
        return sum(1 for ws in self.workspaces if ws.status is WorkspaceStatus.FAILED)

    def as_dict(self) -> dict[str, object]:
        return {
            "member_id": self.member_id,
            "workspaces_failed": self.workspaces_failed,
            "workspaces": [
                {
                    "group_id": ws.group_id,
                    "status": ws.status.value,
                    "rank": ws.rank,
                    "role_id": ws.role_id,
                    "roles_granted": ws.roles_granted,
                    "roles_revoked": ws.roles_revoked,
                }
                for ws in self.workspaces
            ],
        }


__all__ = [
    "BulkSyncStats",
    "SyncOutcome",
    "TierStatus",
    "TierSyncResult",
    "UserSyncStats",
    "WorkspaceStatus",
    "WorkspaceSyncResult",
]
