"""Domain models for the payrun kernel."""

from payrun_kernel.models.board_lock import BoardLock
from payrun_kernel.models.board_slot import BoardSlot
from payrun_kernel.models.history import HistoryEntry
from payrun_kernel.models.person import Person
from payrun_kernel.models.work_item import WorkItem

__all__ = [
    "BoardLock",
    "BoardSlot",
    "HistoryEntry",
    "Person",
    "WorkItem",
]
