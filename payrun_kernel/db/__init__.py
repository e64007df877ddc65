"""Database layer - engine, base classes, types, and ledger invariants."""

from payrun_kernel.db.base import UUID, Base, TimestampedBase, UUIDString
from payrun_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)
from payrun_kernel.db.types import Label, LongText, Money

__all__ = [
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "drop_tables",
    "Base",
    "TimestampedBase",
    "UUIDString",
    "UUID",
    "Money",
    "Label",
    "LongText",
]
