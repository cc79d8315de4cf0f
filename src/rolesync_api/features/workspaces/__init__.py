"""Workspace bootstrap and lookups."""

from .exceptions import WorkspaceAlreadyExistsError, WorkspaceNotFoundError
from .service import (
    DEFAULT_WORKSPACE_COLOR,
    OWNER_ROLE_NAME,
    OWNER_ROLE_PERMISSIONS,
    WorkspacesService,
)

__all__ = [
    "DEFAULT_WORKSPACE_COLOR",
    "OWNER_ROLE_NAME",
    "OWNER_ROLE_PERMISSIONS",
    "WorkspaceAlreadyExistsError",
    "WorkspaceNotFoundError",
    "WorkspacesService",
]
