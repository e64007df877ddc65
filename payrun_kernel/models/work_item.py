"""
Module: payrun_kernel.models.work_item
Responsibility: ORM persistence for work items owed to a person, with their
    running paid balance and backlog priority rank.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - 0 <= paid_amount <= total_amount (CHECK constraints + ORM listener).
    - completed == (paid_amount >= total_amount) (ORM listener, see
      db/immutability.py).
    - total_amount is immutable after INSERT.
    - paid_amount never decreases.

Failure modes:
    - IntegrityError if a CHECK constraint is violated by raw SQL.
    - ImmutabilityViolationError if ORM code edits total_amount or lowers
      paid_amount.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payrun_kernel.db.base import TimestampedBase, UUIDString
from payrun_kernel.db.types import ZERO, LongText, Money
from payrun_kernel.models.person import Person


class WorkItem(TimestampedBase):
    """
    A unit of work owed to one person.

    Contract:
        Created by the work intake service at the back of the backlog.
        Mutated only by settlement (paid_amount / completed) and by backlog
        reordering (priority).  Never deleted except by the Person cascade.
    """

    __tablename__ = "work_items"

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_work_item_total_non_negative"),
        CheckConstraint("paid_amount >= 0", name="ck_work_item_paid_non_negative"),
        CheckConstraint("paid_amount <= total_amount", name="ck_work_item_paid_le_total"),
        Index("idx_work_item_person", "person_id"),
        Index("idx_work_item_pending_priority", "completed", "priority"),
    )

    person_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("persons.id", ondelete="CASCADE"),
        nullable=False,
    )

    description: Mapped[LongText] = mapped_column(nullable=False)

    total_amount: Mapped[Money] = mapped_column(nullable=False)

    paid_amount: Mapped[Money] = mapped_column(nullable=False, default=ZERO)

    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Lower = more urgent.  Contiguous 0..N-1 over pending items after a reorder.
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    person: Mapped[Person] = relationship(Person, lazy="joined")

    @property
    def remaining_amount(self) -> Decimal:
        """Balance still owed on this item."""
        return self.total_amount - self.paid_amount

    def __repr__(self) -> str:
        return (
            f"<WorkItem {self.description!r}: {self.paid_amount}/{self.total_amount}"
            f" p={self.priority}>"
        )
