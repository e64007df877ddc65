"""
SettlementService -- pays board slots into the history ledger.

Responsibility:
    Settling a slot appends a HistoryEntry for the slot amount, advances the
    work item's paid balance (completing it when fully paid) and clears the
    slot.  Approving the board does this for every occupied slot.

Architecture position:
    Kernel > Services -- imperative shell.  Flush-only: the coordinator's
    transaction commits a single settlement or a whole approval as one unit,
    or rolls all of it back.

Invariants enforced:
    - Money conservation: each settlement adds the same amount to the
      ledger and to paid_amount.
    - 0 < amount <= remaining, so paid_amount never passes total_amount.
    - completed flips to True exactly when paid_amount reaches total_amount.
    - Settled slots are deleted; approval leaves the board empty.

Failure modes:
    - SlotNotFoundError: slot absent.
    - WorkItemNotFoundError: slot references a missing work item.
    - OverpaymentError: slot amount exceeds the remaining balance.
    - InvalidAmountError: slot amount is not positive.
    - EmptyBoardError: approve_board() with no occupied slots.
    - BoardCapacityExceededError: approve_board() on a board that does not
      fit the capacity.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from payrun_kernel.db.types import ZERO, round_money
from payrun_kernel.domain.board import BOARD_CAPACITY, check_capacity
from payrun_kernel.domain.clock import Clock, SystemClock
from payrun_kernel.domain.dtos import (
    HistoryEntryInfo,
    SettlementBatchResult,
    SettlementResult,
    WorkItemInfo,
)
from payrun_kernel.exceptions import (
    EmptyBoardError,
    InvalidAmountError,
    OverpaymentError,
    SlotNotFoundError,
    WorkItemNotFoundError,
)
from payrun_kernel.logging_config import LogContext, get_logger
from payrun_kernel.models.board_slot import BoardSlot
from payrun_kernel.models.history import HistoryEntry
from payrun_kernel.models.work_item import WorkItem
from payrun_kernel.services.base import BaseService

logger = get_logger("services.settlement")


class SettlementService(BaseService[HistoryEntry]):
    """Turns board slots into payments."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        capacity: int = BOARD_CAPACITY,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self.capacity = capacity

    def _settle(self, slot: BoardSlot) -> SettlementResult:
        item = self.session.get(WorkItem, slot.work_item_id)
        if item is None:
            raise WorkItemNotFoundError(
                str(slot.work_item_id), reason="referenced by board slot"
            )

        amount = slot.amount
        if amount <= ZERO:
            raise InvalidAmountError(amount, "settlement amount must be positive")
        remaining = item.remaining_amount
        if amount > remaining:
            raise OverpaymentError(str(item.id), str(amount), str(remaining))

        entry = HistoryEntry(
            person_id=item.person_id,
            work_item_id=item.id,
            person_name=slot.person_name,
            person_role=slot.person_role,
            work_description=slot.work_description,
            amount=amount,
            paid_at=self._clock.now(),
        )
        self.session.add(entry)

        item.paid_amount = round_money(item.paid_amount + amount)
        item.completed = item.paid_amount >= item.total_amount

        slot_id = slot.id
        self.session.delete(slot)
        self.session.flush()

        return SettlementResult(
            slot_id=slot_id,
            entry=HistoryEntryInfo.from_model(entry),
            work_item=WorkItemInfo.from_model(item),
        )

    def settle_slot(self, slot_id: UUID) -> SettlementResult:
        """
        Pay one slot.

        Raises:
            SlotNotFoundError: If the slot doesn't exist.
            WorkItemNotFoundError: If the slot's work item is gone.
            OverpaymentError: If the slot amount exceeds the remaining balance.
        """
        slot = self.session.get(BoardSlot, slot_id)
        if slot is None:
            raise SlotNotFoundError(slot_id=str(slot_id))

        with LogContext.bind(slot_id=str(slot_id), work_item_id=str(slot.work_item_id)):
            result = self._settle(slot)
            logger.info(
                "slot_settled",
                extra={
                    "amount": str(result.entry.amount),
                    "paid_amount": str(result.work_item.paid_amount),
                    "completed": result.completed,
                },
            )
        return result

    def approve_board(self) -> SettlementBatchResult:
        """
        Pay every occupied slot, in position order, and clear the board.

        All-or-nothing within the caller's transaction: if any slot fails,
        the exception propagates and the caller rolls back every entry.

        Raises:
            EmptyBoardError: If no slot is occupied.
            BoardCapacityExceededError: If the stored slots do not fit the
                capacity, so the board shown is not the board that would be
                paid.  Nothing is settled.
        """
        slots = list(
            self.session.execute(
                select(BoardSlot).order_by(BoardSlot.position)
            ).scalars()
        )
        if not slots:
            raise EmptyBoardError()
        check_capacity((slot.position for slot in slots), self.capacity)

        results = []
        for slot in slots:
            with LogContext.bind(slot_id=str(slot.id), work_item_id=str(slot.work_item_id)):
                results.append(self._settle(slot))

        batch = SettlementBatchResult(results=tuple(results))
        logger.info(
            "board_approved",
            extra={
                "slots": len(batch.results),
                "total": str(batch.total),
                "completed_items": len(batch.completed_work_item_ids),
            },
        )
        return batch
