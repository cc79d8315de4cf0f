"""Workspace roles: tier mappings and membership reconciliation."""

from .exceptions import RoleNotFoundError, RoleTierConflictError
from .mutations import GrantRole, MutationBatch, RevokeRole
from .reconciler import MappedRole, ReconcileOutcome, RoleReconciler
from .service import RolesService, tier_role_map
from .snapshot import KnownUser, load_known_users

__all__ = [
    "GrantRole",
    "KnownUser",
    "MappedRole",
    "MutationBatch",
    "ReconcileOutcome",
    "RevokeRole",
    "RoleNotFoundError",
    "RoleReconciler",
    "RoleTierConflictError",
    "RolesService",
    "load_known_users",
    "tier_role_map",
]
