"""In-process cache of per-workspace config values."""

from __future__ import annotations

from copy import deepcopy
from typing import Any


class ConfigCache:
    """Explicit config cache with eviction on write.

    Only values that exist in the store are cached; a miss always falls
    through to the database.
    """

    def __init__(self) -> None:
        self._values: dict[tuple[int, str], Any] = {}

    def lookup(self, group_id: int, key: str) -> tuple[bool, Any]:
        cache_key = (group_id, key)
        if cache_key not in self._values:
            return False, None
        return True, deepcopy(self._values[cache_key])

    def store(self, group_id: int, key: str, value: Any) -> None:
        self._values[(group_id, key)] = deepcopy(value)

    def evict(self, group_id: int, key: str) -> None:
        self._values.pop((group_id, key), None)

    def evict_workspace(self, group_id: int) -> None:
        for cache_key in [item for item in self._values if item[0] == group_id]:
            del self._values[cache_key]

    def clear(self) -> None:
        self._values.clear()

    def __len__(self) -> int:
        return len(self._values)


__all__ = ["ConfigCache"]
