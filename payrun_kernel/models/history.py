"""
Module: payrun_kernel.models.history
Responsibility: Append-only payment ledger.  One row per settled slot.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Rows are immutable from creation (ORM listeners in db/immutability.py
      reject UPDATE and DELETE).
    - For every work item, sum(amount) over its rows == work_items.paid_amount.
      This is the reconciliation invariant; HistorySelector.reconcile()
      reports any violation.

Audit relevance:
    This table is the system of record for "total paid".  Rows disappear only
    through the database-level Person cascade.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from payrun_kernel.db.base import Base, UUIDString
from payrun_kernel.db.types import Label, LongText, Money


class HistoryEntry(Base):
    """Immutable record of a completed settlement."""

    __tablename__ = "history_entries"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_history_amount_positive"),
        Index("idx_history_person", "person_id"),
        Index("idx_history_work_item", "work_item_id"),
        Index("idx_history_paid_at", "paid_at"),
    )

    person_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("persons.id", ondelete="CASCADE"),
        nullable=False,
    )

    work_item_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("work_items.id", ondelete="CASCADE"),
        nullable=False,
    )

    person_name: Mapped[Label] = mapped_column(nullable=False)
    person_role: Mapped[Label] = mapped_column(nullable=False)
    work_description: Mapped[LongText] = mapped_column(nullable=False)

    amount: Mapped[Money] = mapped_column(nullable=False)

    paid_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<HistoryEntry {self.person_name}: {self.amount} @ {self.paid_at}>"
