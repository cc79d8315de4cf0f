"""Domain-specific exceptions for workspace roles."""

from __future__ import annotations

from collections.abc import Iterable


class RoleNotFoundError(Exception):
    """Raised when a role record cannot be resolved."""


class RoleTierConflictError(Exception):
    """Raised when tiers are already mapped to another role of the workspace."""

    def __init__(self, tier_ids: Iterable[int]) -> None:
        self.tier_ids = sorted(set(tier_ids))
        super().__init__(f"tiers already mapped: {', '.join(map(str, self.tier_ids))}")


__all__ = ["RoleNotFoundError", "RoleTierConflictError"]
