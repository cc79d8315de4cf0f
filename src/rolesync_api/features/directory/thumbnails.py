"""Avatar thumbnail lookups used to backfill user pictures."""

from __future__ import annotations

import logging
from collections.abc import Iterable

import httpx

from rolesync_api.common.logging import log_context
from rolesync_api.settings import Settings

logger = logging.getLogger(__name__)

_BATCH_SIZE = 100


class ThumbnailClient:
    """Resolve member ids to headshot image URLs.

    Lookups never raise: members whose thumbnail cannot be resolved are simply
    missing from the result.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = settings.thumbnails_base_url
        self._size = settings.thumbnail_size
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=settings.directory_timeout_seconds,
            headers={"Accept": "application/json"},
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def get_headshots(self, member_ids: Iterable[int]) -> dict[int, str]:
        ids = list(dict.fromkeys(member_ids))
        resolved: dict[int, str] = {}
        for start in range(0, len(ids), _BATCH_SIZE):
            batch = ids[start : start + _BATCH_SIZE]
            resolved.update(await self._fetch_batch(batch))
        return resolved

    async def _fetch_batch(self, member_ids: list[int]) -> dict[int, str]:
        params = {
            "userIds": ",".join(str(member_id) for member_id in member_ids),
            "size": self._size,
            "format": "Png",
            "isCircular": "false",
        }
        try:
            response = await self._client.get(
                f"{self._base_url}/v1/users/avatar-headshot",
                params=params,
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(
                "thumbnails.unavailable",
                extra=log_context(count=len(member_ids), detail=str(exc) or type(exc).__name__),
            )
            return {}

        resolved: dict[int, str] = {}
        records = payload.get("data") if isinstance(payload, dict) else None
        if isinstance(records, list):
            for record in records:
                if not isinstance(record, dict) or record.get("state") != "Completed":
                    continue
                target_id = record.get("targetId")
                image_url = record.get("imageUrl")
                if isinstance(target_id, int) and isinstance(image_url, str) and image_url:
                    resolved[target_id] = image_url
        return resolved


__all__ = ["ThumbnailClient"]
