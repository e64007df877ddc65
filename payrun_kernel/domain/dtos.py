"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Immutable structures returned by services and selectors.  Callers of the
    kernel never receive ORM entities, so nothing they hold can lazily load
    or be flushed back by accident.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    ``from_model()`` class methods are boundary converters invoked only from
    the service/selector layer.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from payrun_kernel.models.board_slot import BoardSlot
    from payrun_kernel.models.history import HistoryEntry
    from payrun_kernel.models.person import Person
    from payrun_kernel.models.work_item import WorkItem


@dataclass(frozen=True)
class PersonInfo:
    id: UUID
    name: str
    role: str

    @classmethod
    def from_model(cls, person: Person) -> PersonInfo:
        return cls(id=person.id, name=person.name, role=person.role)


@dataclass(frozen=True)
class WorkItemInfo:
    """A work item with its owner's display fields and balance."""

    id: UUID
    person_id: UUID
    person_name: str
    person_role: str
    description: str
    total_amount: Decimal
    paid_amount: Decimal
    completed: bool
    priority: int
    slotted: bool = False

    @property
    def remaining_amount(self) -> Decimal:
        return self.total_amount - self.paid_amount

    @classmethod
    def from_model(cls, item: WorkItem, slotted: bool = False) -> WorkItemInfo:
        return cls(
            id=item.id,
            person_id=item.person_id,
            person_name=item.person.name,
            person_role=item.person.role,
            description=item.description,
            total_amount=item.total_amount,
            paid_amount=item.paid_amount,
            completed=item.completed,
            priority=item.priority,
            slotted=slotted,
        )


@dataclass(frozen=True)
class SlotInfo:
    id: UUID
    position: int
    work_item_id: UUID
    amount: Decimal
    person_name: str
    person_role: str
    work_description: str

    @classmethod
    def from_model(cls, slot: BoardSlot) -> SlotInfo:
        return cls(
            id=slot.id,
            position=slot.position,
            work_item_id=slot.work_item_id,
            amount=slot.amount,
            person_name=slot.person_name,
            person_role=slot.person_role,
            work_description=slot.work_description,
        )


@dataclass(frozen=True)
class BoardPosition:
    position: int
    slot: SlotInfo | None = None

    @property
    def is_empty(self) -> bool:
        return self.slot is None


@dataclass(frozen=True)
class BoardView:
    """
    Snapshot of the whole board: every position, empty or occupied.

    ``week_total`` is the amount that approving the board would pay out.
    """

    capacity: int
    positions: tuple[BoardPosition, ...]

    @property
    def slots(self) -> tuple[SlotInfo, ...]:
        return tuple(p.slot for p in self.positions if p.slot is not None)

    @property
    def occupied_count(self) -> int:
        return len(self.slots)

    @property
    def is_full(self) -> bool:
        return self.occupied_count >= self.capacity

    @property
    def week_total(self) -> Decimal:
        return sum((slot.amount for slot in self.slots), Decimal("0.00"))


@dataclass(frozen=True)
class HistoryEntryInfo:
    id: UUID
    person_id: UUID
    work_item_id: UUID
    person_name: str
    person_role: str
    work_description: str
    amount: Decimal
    paid_at: datetime

    @classmethod
    def from_model(cls, entry: HistoryEntry) -> HistoryEntryInfo:
        return cls(
            id=entry.id,
            person_id=entry.person_id,
            work_item_id=entry.work_item_id,
            person_name=entry.person_name,
            person_role=entry.person_role,
            work_description=entry.work_description,
            amount=entry.amount,
            paid_at=entry.paid_at,
        )


@dataclass(frozen=True)
class SettlementResult:
    """Outcome of settling one slot."""

    slot_id: UUID
    entry: HistoryEntryInfo
    work_item: WorkItemInfo

    @property
    def completed(self) -> bool:
        return self.work_item.completed


@dataclass(frozen=True)
class SettlementBatchResult:
    """Outcome of approving the whole board."""

    results: tuple[SettlementResult, ...]

    @property
    def entries(self) -> tuple[HistoryEntryInfo, ...]:
        return tuple(r.entry for r in self.results)

    @property
    def total(self) -> Decimal:
        return sum((r.entry.amount for r in self.results), Decimal("0.00"))

    @property
    def completed_work_item_ids(self) -> tuple[UUID, ...]:
        return tuple(r.work_item.id for r in self.results if r.completed)


@dataclass(frozen=True)
class AutoFillResult:
    """Slots created by one auto-fill pass (empty on a no-op)."""

    filled: tuple[SlotInfo, ...]

    @property
    def count(self) -> int:
        return len(self.filled)


@dataclass(frozen=True)
class PersonSummary:
    """Per-person running totals: what is still owed, and what was paid."""

    person: PersonInfo
    outstanding_amount: Decimal
    total_paid: Decimal
    pending_items: int


@dataclass(frozen=True)
class ReconciliationMismatch:
    """A work item whose paid_amount disagrees with its history."""

    work_item_id: UUID
    paid_amount: Decimal
    history_total: Decimal
