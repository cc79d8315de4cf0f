"""Async client for the external group directory (Roblox groups API)."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any, TypeVar

import httpx

from rolesync_api.common.logging import log_context
from rolesync_api.settings import Settings

from .exceptions import DirectoryUnavailable
from .schemas import RankTier, TierMember

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MAX_PAGES = 10_000


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _retry_after_seconds(response: httpx.Response) -> float | None:
    raw = response.headers.get("Retry-After")
    if raw is None:
        return None
    try:
        return max(float(raw), 0.0)
    except ValueError:
        return None


class GroupDirectoryClient:
    """Read-only access to group tiers and memberships.

    ``fetch_*`` methods raise :class:`DirectoryUnavailable`; the ``list_*`` and
    ``get_*`` methods degrade failures to empty or ``None`` results.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = settings.directory_base_url
        self._max_retries = settings.directory_max_retries
        self._backoff = settings.directory_retry_backoff_seconds
        self._page_size = settings.directory_page_size
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=settings.directory_timeout_seconds,
            headers={"Accept": "application/json"},
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> GroupDirectoryClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Transport

    async def _get_json(
        self,
        path: str,
        *,
        operation: str,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self._base_url}{path}"
        attempt = 0
        while True:
            try:
                response = await self._client.get(url, params=params)
            except httpx.HTTPError as exc:
                raise DirectoryUnavailable(operation, detail=str(exc) or type(exc).__name__) from exc

            if response.status_code == 429 and attempt < self._max_retries:
                delay = _retry_after_seconds(response)
                if delay is None:
                    delay = self._backoff * (2**attempt)
                attempt += 1
                logger.info(
                    "directory.rate_limited",
                    extra=log_context(operation=operation, attempt=attempt, delay=delay),
                )
                await asyncio.sleep(delay)
                continue

            if response.is_error:
                raise DirectoryUnavailable(
                    operation,
                    detail=f"HTTP {response.status_code}",
                    status_code=response.status_code,
                )
            try:
                payload = response.json()
            except ValueError as exc:
                raise DirectoryUnavailable(operation, detail="invalid JSON body") from exc
            if not isinstance(payload, dict):
                raise DirectoryUnavailable(operation, detail="unexpected response shape")
            return payload

    # ------------------------------------------------------------------
    # Raising operations

    async def fetch_rank_tiers(self, group_id: int) -> list[RankTier]:
        payload = await self._get_json(
            f"/v1/groups/{group_id}/roles",
            operation="list_rank_tiers",
        )
        records = payload.get("roles")
        tiers: list[RankTier] = []
        if isinstance(records, list):
            for record in records:
                if not isinstance(record, dict):
                    continue
                tier_id = _as_int(record.get("id"))
                rank = _as_int(record.get("rank"))
                if tier_id is None or rank is None:
                    continue
                tiers.append(
                    RankTier(
                        tier_id=tier_id,
                        rank=rank,
                        name=str(record.get("name") or "").strip(),
                    )
                )
        return sorted(tiers, key=lambda tier: tier.rank)

    async def fetch_members_at_tier(self, group_id: int, tier_id: int) -> list[TierMember]:
        members: list[TierMember] = []
        cursor: str | None = None
        for _ in range(_MAX_PAGES):
            params: dict[str, Any] = {"limit": self._page_size, "sortOrder": "Asc"}
            if cursor:
                params["cursor"] = cursor
            payload = await self._get_json(
                f"/v1/groups/{group_id}/roles/{tier_id}/users",
                operation="list_members_at_tier",
                params=params,
            )
            page_items = payload.get("data")
            if isinstance(page_items, list):
                for item in page_items:
                    if not isinstance(item, dict):
                        continue
                    member_id = _as_int(item.get("userId"))
                    if member_id is None:
                        continue
                    username = str(item.get("username") or "").strip() or None
                    members.append(TierMember(member_id=member_id, username=username))
            next_cursor = payload.get("nextPageCursor")
            cursor = next_cursor if isinstance(next_cursor, str) and next_cursor else None
            if cursor is None:
                break
        return members

    async def fetch_member_rank(self, group_id: int, member_id: int) -> int | None:
        payload = await self._get_json(
            f"/v2/users/{member_id}/groups/roles",
            operation="get_member_rank",
        )
        records = payload.get("data")
        if not isinstance(records, list):
            return None
        for record in records:
            if not isinstance(record, dict):
                continue
            group = record.get("group")
            role = record.get("role")
            if not isinstance(group, dict) or not isinstance(role, dict):
                continue
            if _as_int(group.get("id")) == group_id:
                return _as_int(role.get("rank"))
        return None

    async def fetch_tier_by_rank(self, group_id: int, rank: int) -> RankTier | None:
        for tier in await self.fetch_rank_tiers(group_id):
            if tier.rank == rank:
                return tier
        return None

    # ------------------------------------------------------------------
    # Fail-open operations

    async def list_rank_tiers(self, group_id: int) -> list[RankTier]:
        return await self._fail_open(self.fetch_rank_tiers(group_id), [], group_id=group_id)

    async def list_members_at_tier(self, group_id: int, tier_id: int) -> list[TierMember]:
        return await self._fail_open(
            self.fetch_members_at_tier(group_id, tier_id),
            [],
            group_id=group_id,
            tier_id=tier_id,
        )

    async def get_member_rank(self, group_id: int, member_id: int) -> int | None:
        return await self._fail_open(
            self.fetch_member_rank(group_id, member_id),
            None,
            group_id=group_id,
            member_id=member_id,
        )

    async def get_tier_by_rank(self, group_id: int, rank: int) -> RankTier | None:
        return await self._fail_open(
            self.fetch_tier_by_rank(group_id, rank),
            None,
            group_id=group_id,
            rank=rank,
        )

    @staticmethod
    async def _fail_open(call: Awaitable[T], default: T, **context: Any) -> T:
        try:
            return await call
        except DirectoryUnavailable as exc:
            logger.warning(
                "directory.unavailable",
                extra=log_context(
                    operation=exc.operation,
                    detail=exc.detail,
                    status_code=exc.status_code,
                    **context,
                ),
            )
            return default


__all__ = ["GroupDirectoryClient"]
