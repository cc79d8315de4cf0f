"""Workspace permission checks."""

from .service import AccessDecision, AccessReason, PermissionsService

__all__ = ["AccessDecision", "AccessReason", "PermissionsService"]
