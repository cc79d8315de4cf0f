"""Errors raised by the external group directory clients."""

from __future__ import annotations


class DirectoryUnavailable(Exception):
    """Raised when the external directory cannot answer a request.

    Covers network errors, timeouts and non-success HTTP responses.
    """

    def __init__(
        self,
        operation: str,
        *,
        detail: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(f"{operation}: {detail}" if detail else operation)
        self.operation = operation
        self.detail = detail
        self.status_code = status_code


__all__ = ["DirectoryUnavailable"]
