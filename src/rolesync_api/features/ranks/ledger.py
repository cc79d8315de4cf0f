"""Rank ledger: upserts of each member's last observed rank."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rolesync_db import utc_now
from rolesync_db.dialects import upsert_insert
from rolesync_db.models import Rank

# Keeps multi-row VALUES under the SQLite bound-parameter limit.
_ROWS_PER_STATEMENT = 150


@dataclass(frozen=True, slots=True)
class RankEntry:
    user_id: int
    rank_id: int


class RankLedger:
    """Persist ``(user, workspace, rank)`` triples keyed by ``(user_id, workspace_group_id)``.

    Writes run inside the caller's transaction; store errors propagate.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _upsert_statement(self, rows: list[dict[str, Any]]) -> Any:
        stmt = upsert_insert(self._session, Rank).values(rows)
        return stmt.on_conflict_do_update(
            index_elements=[Rank.user_id, Rank.workspace_group_id],
            set_={
                "rank_id": stmt.excluded.rank_id,
                "updated_at": stmt.excluded.updated_at,
            },
        )

    async def upsert(self, *, user_id: int, workspace_group_id: int, rank_id: int) -> None:
        await self.upsert_many(
            workspace_group_id=workspace_group_id,
            entries=[RankEntry(user_id=user_id, rank_id=rank_id)],
        )

    async def upsert_many(
        self,
        *,
        workspace_group_id: int,
        entries: Iterable[RankEntry],
    ) -> int:
        """Upsert ``entries`` in multi-row statements and return the row count."""

        now = utc_now()
        rows_by_user: dict[int, dict[str, Any]] = {}
        for entry in entries:
            rows_by_user[entry.user_id] = {
                "user_id": entry.user_id,
                "workspace_group_id": workspace_group_id,
                "rank_id": entry.rank_id,
                "created_at": now,
                "updated_at": now,
            }
        if not rows_by_user:
            return 0
        rows = list(rows_by_user.values())
        for start in range(0, len(rows), _ROWS_PER_STATEMENT):
            chunk = rows[start : start + _ROWS_PER_STATEMENT]
            await self._session.execute(self._upsert_statement(chunk))
        return len(rows)

    async def snapshot(self, workspace_group_id: int) -> dict[int, int]:
        """Return the current ``user_id -> rank_id`` ledger for a workspace."""

        result = await self._session.execute(
            select(Rank.user_id, Rank.rank_id).where(
                Rank.workspace_group_id == workspace_group_id
            )
        )
        return {user_id: rank_id for user_id, rank_id in result.all()}

    @staticmethod
    def changed_entries(
        entries: Iterable[RankEntry],
        current: Mapping[int, int],
    ) -> list[RankEntry]:
        """Drop entries whose rank already matches the ledger."""

        return [entry for entry in entries if current.get(entry.user_id) != entry.rank_id]


__all__ = ["RankEntry", "RankLedger"]
