"""
Module: payrun_kernel.models.board_slot
Responsibility: ORM persistence for the weekly payment board: one row per
    occupied position, bound to one work item and a snapshotted amount.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - UNIQUE(position): no two slots share a board position.
    - UNIQUE(work_item_id): a work item occupies at most one slot.
    - 0 <= position < capacity and occupied count <= capacity are enforced at
      the write boundary (BoardService), since capacity is configuration.
    - amount > 0.

Audit relevance:
    person_name, person_role and work_description are captured at fill time
    and copied into the HistoryEntry on settlement, so the ledger shows what
    the operator approved even if the source rows change later.
"""

from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payrun_kernel.db.base import TimestampedBase, UUIDString
from payrun_kernel.db.types import Label, LongText, Money
from payrun_kernel.models.work_item import WorkItem


class BoardSlot(TimestampedBase):
    """An occupied board position awaiting settlement."""

    __tablename__ = "board_slots"

    __table_args__ = (
        UniqueConstraint("position", name="uq_board_slot_position"),
        UniqueConstraint("work_item_id", name="uq_board_slot_work_item"),
        CheckConstraint("amount > 0", name="ck_board_slot_amount_positive"),
    )

    work_item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("work_items.id", ondelete="CASCADE"),
        nullable=False,
    )

    position: Mapped[int] = mapped_column(Integer, nullable=False)

    amount: Mapped[Money] = mapped_column(nullable=False)

    # Display snapshot taken at fill time
    person_name: Mapped[Label] = mapped_column(nullable=False)
    person_role: Mapped[Label] = mapped_column(nullable=False)
    work_description: Mapped[LongText] = mapped_column(nullable=False)

    work_item: Mapped[WorkItem] = relationship(WorkItem)

    def __repr__(self) -> str:
        return f"<BoardSlot #{self.position} {self.person_name}: {self.amount}>"
