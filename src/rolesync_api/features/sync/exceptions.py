"""Errors surfaced by the synchronizers."""

from __future__ import annotations


class StoreFailure(Exception):
    """Raised when the persistence layer fails outside a retryable unit.

    Tier and workspace units record their own store failures and keep going;
    this error is only raised when a whole run cannot start.
    """

    def __init__(self, operation: str, *, group_id: int | None = None) -> None:
        message = operation if group_id is None else f"{operation} (group {group_id})"
        super().__init__(message)
        self.operation = operation
        self.group_id = group_id


__all__ = ["StoreFailure"]
