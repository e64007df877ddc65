"""
Structured logging for the payrun kernel.

Each record is written as one JSON line:

    {"time": "2024-03-01T17:00:00+00:00", "level": "INFO",
     "component": "services.settlement", "event": "slot_settled",
     "board": {"operation": "settle_slot", "slot_id": "...", "work_item_id": "..."},
     "amount": "10.00", "paid_amount": "10.00", "completed": true}

``board`` holds whatever the running operation bound with ``LogContext.bind``.
A logged kernel error becomes an ``error`` object made of its code and data
attributes; any other exception also carries its traceback.
"""

__all__ = [
    "ROOT_LOGGER",
    "LogContext",
    "PayrunFormatter",
    "get_logger",
    "configure_logging",
]

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from payrun_kernel.exceptions import PayrunKernelError

ROOT_LOGGER = "payrun_kernel"

_board_fields: ContextVar[dict[str, str] | None] = ContextVar(
    "payrun_board_fields", default=None
)


class LogContext:
    """Board fields (operation, slot_id, work_item_id) stamped on every record."""

    @staticmethod
    def current() -> dict[str, str]:
        return dict(_board_fields.get() or {})

    @staticmethod
    @contextmanager
    def bind(**fields: str | None) -> Iterator[None]:
        """Add fields for the duration of the block; nested binds stack."""
        merged = LogContext.current()
        merged.update({k: v for k, v in fields.items() if v is not None})
        token = _board_fields.set(merged)
        try:
            yield
        finally:
            _board_fields.reset(token)

    @staticmethod
    def clear() -> None:
        _board_fields.set(None)


_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


def _to_json(value: Any) -> str:
    # Money stays a string so "10.50" never turns into 10.5
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    return repr(value)


def _describe_error(exc: BaseException) -> dict[str, Any]:
    error: dict[str, Any] = {"type": type(exc).__name__, "message": str(exc)}
    if isinstance(exc, PayrunKernelError):
        error["code"] = exc.code
        error.update(
            (key, value) for key, value in vars(exc).items() if not key.startswith("_")
        )
    return error


class PayrunFormatter(logging.Formatter):
    """Renders a record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "component": record.name.removeprefix(f"{ROOT_LOGGER}."),
            "event": record.getMessage(),
        }
        board = LogContext.current()
        if board:
            entry["board"] = board

        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS:
                entry.setdefault(key, value)

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            entry["error"] = _describe_error(exc)
            if not isinstance(exc, PayrunKernelError):
                entry["traceback"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=_to_json)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def configure_logging(
    level: int | str = logging.INFO,
    handler: logging.Handler | None = None,
) -> logging.Handler:
    """
    Send payrun_kernel records to ``handler`` (stderr by default) as JSON.

    Calling it again replaces the handler installed by the previous call,
    so the kernel never logs a record twice.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    for existing in list(logger.handlers):
        if isinstance(existing.formatter, PayrunFormatter):
            logger.removeHandler(existing)

    handler = handler or logging.StreamHandler()
    handler.setFormatter(PayrunFormatter())
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return handler
