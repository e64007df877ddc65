"""
Pure domain layer.

Data transfer objects and board/backlog rules with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O (except SystemClock)
"""

from payrun_kernel.domain.board import (
    BOARD_CAPACITY,
    check_capacity,
    check_layout,
    empty_positions,
    plan_fill,
    plan_slot_move,
    validate_index,
)
from payrun_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from payrun_kernel.domain.dtos import (
    AutoFillResult,
    BoardPosition,
    BoardView,
    HistoryEntryInfo,
    PersonInfo,
    PersonSummary,
    ReconciliationMismatch,
    SettlementBatchResult,
    SettlementResult,
    SlotInfo,
    WorkItemInfo,
)
from payrun_kernel.domain.ordering import contiguous_ranks, move_item, next_priority

__all__ = [
    "BOARD_CAPACITY",
    "check_capacity",
    "check_layout",
    "empty_positions",
    "plan_fill",
    "plan_slot_move",
    "validate_index",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "AutoFillResult",
    "BoardPosition",
    "BoardView",
    "HistoryEntryInfo",
    "PersonInfo",
    "PersonSummary",
    "ReconciliationMismatch",
    "SettlementBatchResult",
    "SettlementResult",
    "SlotInfo",
    "WorkItemInfo",
    "contiguous_ranks",
    "move_item",
    "next_priority",
]
