"""
Module: payrun_kernel.selectors.history_selector
Responsibility: Read-only queries over the payment ledger: the history
    listing, per-person running totals and the reconciliation check between
    work item balances and the ledger.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - The ledger is the system of record for "total paid".  person_summary()
      reads it from history rows, not from work_items.paid_amount.
    - reconcile() reports every work item where
      paid_amount != sum(history.amount).  An empty result means the ledger
      and the balances agree.

Sums are taken over Decimals in Python so the result is exact on every
backend (SQLite has no native decimal type).
"""

from collections import defaultdict
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from payrun_kernel.db.types import ZERO
from payrun_kernel.domain.dtos import (
    HistoryEntryInfo,
    PersonInfo,
    PersonSummary,
    ReconciliationMismatch,
)
from payrun_kernel.exceptions import PersonNotFoundError
from payrun_kernel.models.history import HistoryEntry
from payrun_kernel.models.person import Person
from payrun_kernel.models.work_item import WorkItem
from payrun_kernel.selectors.base import BaseSelector


class HistorySelector(BaseSelector[HistoryEntry]):
    """Ledger reads."""

    def list_history(
        self,
        person_id: UUID | None = None,
        limit: int | None = None,
    ) -> list[HistoryEntryInfo]:
        """
        History entries, newest first.

        Args:
            person_id: Only entries paid to this person.
            limit: Maximum number of entries to return.
        """
        stmt = select(HistoryEntry).order_by(
            HistoryEntry.paid_at.desc(), HistoryEntry.person_name, HistoryEntry.id
        )
        if person_id is not None:
            stmt = stmt.where(HistoryEntry.person_id == person_id)
        if limit is not None:
            stmt = stmt.limit(limit)
        return [
            HistoryEntryInfo.from_model(entry)
            for entry in self.session.execute(stmt).scalars()
        ]

    def total_paid(self, person_id: UUID | None = None) -> Decimal:
        """Sum of ledger amounts, for one person or everyone."""
        stmt = select(HistoryEntry.amount)
        if person_id is not None:
            stmt = stmt.where(HistoryEntry.person_id == person_id)
        return sum(self.session.execute(stmt).scalars(), ZERO)

    def person_summary(self, person_id: UUID) -> PersonSummary:
        """
        Outstanding balance over pending items and total paid from history.

        Raises:
            PersonNotFoundError: If the person doesn't exist.
        """
        person = self.session.get(Person, person_id)
        if person is None:
            raise PersonNotFoundError(str(person_id))

        pending = list(
            self.session.execute(
                select(WorkItem).where(
                    WorkItem.person_id == person_id,
                    WorkItem.completed.is_(False),
                )
            ).scalars().unique()
        )
        return PersonSummary(
            person=PersonInfo.from_model(person),
            outstanding_amount=sum((item.remaining_amount for item in pending), ZERO),
            total_paid=self.total_paid(person_id),
            pending_items=len(pending),
        )

    def reconcile(self) -> list[ReconciliationMismatch]:
        """Work items whose paid_amount disagrees with their ledger rows."""
        history_totals: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
        for work_item_id, amount in self.session.execute(
            select(HistoryEntry.work_item_id, HistoryEntry.amount)
        ):
            history_totals[work_item_id] += amount

        mismatches = []
        for work_item_id, paid_amount in self.session.execute(
            select(WorkItem.id, WorkItem.paid_amount).order_by(WorkItem.id)
        ):
            ledger = history_totals.get(work_item_id, ZERO)
            if ledger != paid_amount:
                mismatches.append(
                    ReconciliationMismatch(
                        work_item_id=work_item_id,
                        paid_amount=paid_amount,
                        history_total=ledger,
                    )
                )
        return mismatches
