"""Process-wide logging for the role sync service.

Two output formats are supported, selected by ``ROLESYNC_LOG_FORMAT``:

* ``console``: one line per record, structured fields appended as ``key=value``;
* ``json``: one JSON object per record, for log shippers.

Every record carries the correlation ID of the sync run that emitted it.
Synchronizers bind one with :func:`bind_sync_context`; call sites pass
structured fields through ``extra=log_context(...)`` and use dotted event
names as the message (``sync.bulk.tier.reconciled``).
"""

from __future__ import annotations

import json
import logging
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from rolesync_api.settings import Settings

_CORRELATION_ID: ContextVar[str | None] = ContextVar("rolesync_correlation_id", default=None)

# Attributes every LogRecord has; anything else on a record came from ``extra``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.NOTSET, "", 0, "", (), None))
) | {"message", "asctime", "correlation_id"}

# Third-party loggers routed through the root handler.
_LIBRARY_LOGGERS = (
    "alembic",
    "alembic.runtime.migration",
    "httpx",
    "httpcore",
    "sqlalchemy",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
)
_HTTP_LOGGERS = ("httpx", "httpcore")
_DATABASE_LOGGERS = ("sqlalchemy", "sqlalchemy.engine", "sqlalchemy.pool")

_SETUP_MARKER = "_rolesync_logging"


class _SyncRunFormatter(logging.Formatter):
    """Shared behaviour: UTC millisecond timestamps and the correlation ID."""

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=UTC)
        return stamp.strftime(datefmt or "%Y-%m-%dT%H:%M:%S") + f".{int(record.msecs):03d}Z"

    @staticmethod
    def _bind_correlation_id(record: logging.LogRecord) -> str:
        cid = getattr(record, "correlation_id", None) or _CORRELATION_ID.get() or "-"
        record.correlation_id = cid
        return cid


class ConsoleLogFormatter(_SyncRunFormatter):
    """Single-line console output.

    Example::

        2025-11-27T02:57:00.302Z INFO  rolesync_api.features.sync.bulk [cid=1234abcd]
        sync.bulk.complete group_id=42 tiers_processed=3
    """

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)-5s %(name)s [cid=%(correlation_id)s] %(message)s"
        )

    def format(self, record: logging.LogRecord) -> str:
        self._bind_correlation_id(record)
        line = super().format(record)
        fields = _extra_fields(record)
        if not fields:
            return line
        rendered = " ".join(f"{key}={_console_value(fields[key])}" for key in sorted(fields))
        return f"{line} {rendered}"


class JsonLogFormatter(_SyncRunFormatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "service": "rolesync",
            "logger": record.name,
            "correlation_id": self._bind_correlation_id(record),
            "message": record.getMessage(),
            **_extra_fields(record),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, separators=(",", ":"))


def setup_logging(settings: Settings) -> None:
    """Install one root StreamHandler and route library loggers through it.

    Safe to call repeatedly: the first call replaces whatever handlers the
    root logger had; later calls reuse the installed handler and only swap
    its formatter and the levels.
    """

    root = logging.getLogger()
    if getattr(root, _SETUP_MARKER, False) and root.handlers:
        root.handlers = root.handlers[:1]
    else:
        root.handlers = [logging.StreamHandler()]
        setattr(root, _SETUP_MARKER, True)

    formatter = JsonLogFormatter() if settings.log_format == "json" else ConsoleLogFormatter()
    root.handlers[0].setFormatter(formatter)
    root.setLevel(settings.log_level)

    for name in _LIBRARY_LOGGERS:
        library_logger = logging.getLogger(name)
        library_logger.handlers.clear()
        library_logger.propagate = True
        library_logger.disabled = False
        library_logger.setLevel(logging.NOTSET)

    # httpx logs every request at INFO.
    for name in _HTTP_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    # Opt in to SQL logging with ROLESYNC_DATABASE_LOG_LEVEL=INFO|DEBUG.
    for name in _DATABASE_LOGGERS:
        logging.getLogger(name).setLevel(settings.database_log_level or "WARNING")


def bind_sync_context(correlation_id: str | None = None) -> str:
    """Bind a correlation ID for the current sync run and return it."""

    cid = correlation_id or uuid4().hex[:12]
    _CORRELATION_ID.set(cid)
    return cid


def clear_sync_context() -> None:
    _CORRELATION_ID.set(None)


def current_correlation_id() -> str | None:
    return _CORRELATION_ID.get()


def log_context(
    *,
    group_id: int | None = None,
    tier_id: int | None = None,
    member_id: int | None = None,
    role_id: str | None = None,
    **fields: Any,
) -> dict[str, Any]:
    """Build the ``extra`` mapping for a structured log call.

    The identifier keywords are dropped when ``None``; any other keyword is
    passed through as is::

        logger.info(
            "sync.bulk.tier.reconciled",
            extra=log_context(group_id=gid, tier_id=tier.tier_id, granted=2),
        )
    """

    identifiers = {
        "group_id": group_id,
        "tier_id": tier_id,
        "member_id": member_id,
        "role_id": role_id,
    }
    context = {key: value for key, value in identifiers.items() if value is not None}
    context.update(fields)
    return context


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


def _console_value(value: Any) -> str:
    return "null" if value is None else str(value)


__all__ = [
    "ConsoleLogFormatter",
    "JsonLogFormatter",
    "bind_sync_context",
    "clear_sync_context",
    "current_correlation_id",
    "log_context",
    "setup_logging",
]
