"""Domain-specific exceptions for workspace management."""

from __future__ import annotations


class WorkspaceAlreadyExistsError(Exception):
    """Raised when creating a workspace would break the workspace limit."""


class WorkspaceNotFoundError(Exception):
    """Raised when a workspace record cannot be resolved."""


__all__ = ["WorkspaceAlreadyExistsError", "WorkspaceNotFoundError"]
