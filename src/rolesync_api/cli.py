"""`rolesync` command line: one-off syncs, the periodic loop and database setup."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Annotated, Any

import typer

from rolesync_api.common.logging import setup_logging
from rolesync_api.features.sync import (
    StoreFailure,
    SyncOutcome,
    SyncRuntime,
    run_sync_loop,
)
from rolesync_api.features.workspaces import (
    WorkspaceAlreadyExistsError,
    WorkspacesService,
)
from rolesync_api.settings import Settings, get_settings
from rolesync_db.engine import session_scope
from rolesync_db.migrations_runner import run_migrations

app = typer.Typer(
    add_completion=False,
    invoke_without_command=True,
    help="Group role sync CLI (sync-group, sync-user, run-loop, init-db, create-workspace).",
)


def build_runtime(settings: Settings) -> SyncRuntime:
    return SyncRuntime(settings)


def _bootstrap() -> Settings:
    settings = get_settings()
    setup_logging(settings)
    return settings


def _emit(payload: dict[str, Any]) -> None:
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))


def _run_with_runtime(
    settings: Settings,
    handler: Callable[[SyncRuntime], Awaitable[int]],
) -> int:
    async def _main() -> int:
        async with build_runtime(settings) as runtime:
            return await handler(runtime)

    try:
        return asyncio.run(_main())
    except StoreFailure as exc:
        typer.echo(f"error: database unavailable during {exc}", err=True)
        return 1


@app.callback()
def _main(ctx: typer.Context) -> None:
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


@app.command(name="sync-group", help="Resync every tracked tier of one workspace.")
def sync_group(
    group_id: Annotated[int, typer.Argument(help="External group identifier.")],
) -> None:
    settings = _bootstrap()

    async def _handler(runtime: SyncRuntime) -> int:
        stats = await runtime.bulk.sync_group(group_id)
        _emit(stats.as_dict())
        if stats.outcome in {SyncOutcome.WORKSPACE_NOT_FOUND, SyncOutcome.DIRECTORY_UNAVAILABLE}:
            return 1
        return 1 if stats.tiers_failed else 0

    raise typer.Exit(code=_run_with_runtime(settings, _handler))


@app.command(name="sync-user", help="Resync one member across every workspace.")
def sync_user(
    member_id: Annotated[int, typer.Argument(help="External member identifier.")],
) -> None:
    settings = _bootstrap()

    async def _handler(runtime: SyncRuntime) -> int:
        stats = await runtime.single_user.sync_user(member_id)
        _emit(stats.as_dict())
        return 1 if stats.workspaces_failed else 0

    raise typer.Exit(code=_run_with_runtime(settings, _handler))


@app.command(name="run-loop", help="Bulk-sync every workspace on a fixed interval.")
def run_loop(
    interval: Annotated[
        int | None,
        typer.Option("--interval", min=1, help="Seconds between passes (default: settings)."),
    ] = None,
) -> None:
    settings = _bootstrap()

    async def _handler(runtime: SyncRuntime) -> int:
        await run_sync_loop(runtime, interval_seconds=interval)
        return 0

    try:
        code = _run_with_runtime(settings, _handler)
    except KeyboardInterrupt:
        code = 0
    raise typer.Exit(code=code)


@app.command(name="init-db", help="Apply database migrations up to head.")
def init_db(
    revision: Annotated[str, typer.Option("--revision", help="Target revision.")] = "head",
) -> None:
    settings = _bootstrap()
    run_migrations(settings, revision=revision)
    typer.echo(f"database migrated to {revision}")


@app.command(name="create-workspace", help="Create the workspace and its owner role.")
def create_workspace(
    group_id: Annotated[int, typer.Argument(help="External group identifier.")],
    owner_userid: Annotated[int, typer.Argument(help="External member id of the owner.")],
    owner_username: Annotated[str | None, typer.Option("--owner-username")] = None,
    color: Annotated[str | None, typer.Option("--color", help="Customization color.")] = None,
) -> None:
    settings = _bootstrap()

    async def _handler(runtime: SyncRuntime) -> int:
        try:
            async with session_scope(runtime.session_factory) as session:
                await WorkspacesService(session, settings).create_workspace(
                    group_id,
                    owner_userid,
                    owner_username=owner_username,
                    color=color,
                )
        except WorkspaceAlreadyExistsError as exc:
            typer.echo(f"error: {exc}", err=True)
            return 1
        _emit({"group_id": group_id, "owner_userid": owner_userid})
        return 0

    raise typer.Exit(code=_run_with_runtime(settings, _handler))


__all__ = ["app", "build_runtime"]
