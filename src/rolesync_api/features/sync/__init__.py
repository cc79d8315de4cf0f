"""Bulk and single-user group role synchronization."""

from .bulk import BulkSynchronizer
from .exceptions import StoreFailure
from .runtime import SyncRuntime
from .scheduler import run_sync_loop, sync_all_workspaces
from .single_user import SingleUserSynchronizer
from .stats import (
    BulkSyncStats,
    SyncOutcome,
    TierStatus,
    TierSyncResult,
    UserSyncStats,
    WorkspaceStatus,
    WorkspaceSyncResult,
)

__all__ = [
    "BulkSyncStats",
    "BulkSynchronizer",
    "SingleUserSynchronizer",
    "StoreFailure",
    "SyncOutcome",
    "SyncRuntime",
    "TierStatus",
    "TierSyncResult",
    "UserSyncStats",
    "WorkspaceStatus",
    "WorkspaceSyncResult",
    "run_sync_loop",
    "sync_all_workspaces",
]
