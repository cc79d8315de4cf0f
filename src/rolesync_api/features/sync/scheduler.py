"""Periodic bulk sync of every workspace."""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy import select

from rolesync_api.common.logging import clear_sync_context, log_context
from rolesync_db.models import Workspace

from .exceptions import StoreFailure
from .runtime import SyncRuntime
from .stats import BulkSyncStats, SyncOutcome

logger = logging.getLogger(__name__)


async def sync_all_workspaces(runtime: SyncRuntime) -> list[BulkSyncStats]:
    """Bulk-sync each workspace in turn and return the per-workspace stats."""

    async with runtime.session_factory() as session:
        group_ids = list(
            (await session.execute(select(Workspace.group_id).order_by(Workspace.group_id))).scalars()
        )

    results: list[BulkSyncStats] = []
    for group_id in group_ids:
        try:
            results.append(await runtime.bulk.sync_group(group_id))
        except StoreFailure:
            logger.exception("sync.loop.workspace.failed", extra=log_context(group_id=group_id))
            results.append(BulkSyncStats(group_id=group_id, outcome=SyncOutcome.STORE_FAILED))
        finally:
            clear_sync_context()
    return results


async def run_sync_loop(runtime: SyncRuntime, *, interval_seconds: float | None = None) -> None:
    """Run :func:`sync_all_workspaces` forever, sleeping between iterations.

    A failed iteration is logged and the loop carries on; cancel the task to stop.
    """

    interval = interval_seconds if interval_seconds is not None else runtime.settings.sync_interval_seconds
    logger.info("sync.loop.start", extra=log_context(interval_seconds=interval))
    while True:
        try:
            results = await sync_all_workspaces(runtime)
            logger.info(
                "sync.loop.iteration",
                extra=log_context(
                    workspaces=len(results),
                    mutations=sum(stats.mutations for stats in results),
                ),
            )
        except asyncio.CancelledError:
            logger.info("sync.loop.stopped")
            raise
        except Exception:
            logger.exception("sync.loop.failed")
        await asyncio.sleep(interval)


__all__ = ["run_sync_loop", "sync_all_workspaces"]
