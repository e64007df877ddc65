"""
BoardService -- the weekly payment board.

Responsibility:
    Reads the board, removes and reorders slots, and fills empty positions
    from the backlog.  Layout decisions come from ``domain/board.py``; this
    service loads the current slots, asks for the new layout and writes it.

Architecture position:
    Kernel > Services -- imperative shell around the board rules.
    The caller holds the board lock (BoardLockService) for the transaction.

Invariants enforced:
    - At most ``capacity`` slots, every position in 0..capacity-1.
    - A work item occupies at most one slot (also UNIQUE in the schema).
    - Removing or moving a slot never touches paid_amount or completed.
    - Reorder writes are two-phase (park at negative positions, then place),
      so UNIQUE(position) never sees a transient clash mid-flush.

Failure modes:
    - SlotNotFoundError: slot id absent, or ``from_index`` empty.
    - InvalidPositionError: index outside the board.
    - ConflictError: ``expected_slot_id`` is no longer at ``from_index``.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from payrun_kernel.db.types import round_money
from payrun_kernel.domain.board import (
    BOARD_CAPACITY,
    check_capacity,
    check_layout,
    plan_fill,
    plan_slot_move,
    validate_index,
)
from payrun_kernel.domain.dtos import AutoFillResult, BoardPosition, BoardView, SlotInfo
from payrun_kernel.exceptions import ConflictError, SlotNotFoundError
from payrun_kernel.logging_config import get_logger
from payrun_kernel.models.board_slot import BoardSlot
from payrun_kernel.services.backlog_service import BacklogService
from payrun_kernel.services.base import BaseService

logger = get_logger("services.board")


class BoardService(BaseService[BoardSlot]):
    """Slot board with a fixed number of positions."""

    def __init__(
        self,
        session: Session,
        backlog: BacklogService | None = None,
        capacity: int = BOARD_CAPACITY,
    ):
        super().__init__(session)
        self._backlog = backlog or BacklogService(session)
        self.capacity = capacity

    def _slots(self) -> list[BoardSlot]:
        stmt = select(BoardSlot).order_by(BoardSlot.position)
        return list(self.session.execute(stmt).scalars())

    def _board_slots(self) -> list[BoardSlot]:
        """Current slots, rejected if the board no longer fits the capacity."""
        slots = self._slots()
        check_capacity((slot.position for slot in slots), self.capacity)
        return slots

    def _get_slot(self, slot_id: UUID) -> BoardSlot:
        slot = self.session.get(BoardSlot, slot_id)
        if slot is None:
            raise SlotNotFoundError(slot_id=str(slot_id))
        return slot

    def _view(self, slots: list[BoardSlot]) -> BoardView:
        by_position = {slot.position: SlotInfo.from_model(slot) for slot in slots}
        return BoardView(
            capacity=self.capacity,
            positions=tuple(
                BoardPosition(position=position, slot=by_position.get(position))
                for position in range(self.capacity)
            ),
        )

    def list_slots(self) -> BoardView:
        """
        Every board position, empty or occupied, ascending.

        Raises:
            BoardCapacityExceededError: If stored slots do not fit the capacity.
        """
        return self._view(self._board_slots())

    def remove_slot(self, slot_id: UUID) -> SlotInfo:
        """
        Take a slot off the board without paying it.

        The work item goes to the back of the backlog and stays eligible for
        later fills, so the next auto-fill pulls the next item instead.  When
        no other pending item is off the board, that auto-fill puts the same
        item straight back, at the lowest empty position.

        Works on a board that no longer fits the capacity, so slots can be
        cleared after the capacity shrinks.

        Raises:
            SlotNotFoundError: If the slot doesn't exist.
        """
        slot = self._get_slot(slot_id)
        info = SlotInfo.from_model(slot)
        work_item = slot.work_item

        self.session.delete(slot)
        self.session.flush()

        if not work_item.completed:
            self._backlog.send_to_back(work_item.id)

        logger.info(
            "slot_removed",
            extra={
                "slot_id": str(slot_id),
                "position": info.position,
                "work_item_id": str(info.work_item_id),
            },
        )
        return info

    def reorder_slots(
        self,
        from_index: int,
        to_index: int,
        expected_slot_id: UUID | None = None,
    ) -> BoardView:
        """
        Move the slot at board position ``from_index`` to ``to_index``.

        Onto an occupied position the slots in between rotate toward
        ``from_index``; onto an empty position the slot just relocates.

        Args:
            from_index: Position of the slot to move.
            to_index: Target position.
            expected_slot_id: The slot the caller believes is at
                ``from_index``.  Guards against acting on a stale board.

        Raises:
            InvalidPositionError: If either index is outside the board.
            SlotNotFoundError: If ``from_index`` is empty.
            ConflictError: If ``expected_slot_id`` is not at ``from_index``.
        """
        validate_index(from_index, self.capacity)
        validate_index(to_index, self.capacity)

        slots = self._board_slots()
        by_id = {slot.id: slot for slot in slots}
        layout = {slot.position: slot.id for slot in slots}

        if expected_slot_id is not None and layout.get(from_index) != expected_slot_id:
            raise ConflictError(
                f"Slot {expected_slot_id} is no longer at position {from_index}",
                slot_id=str(expected_slot_id),
                found=str(layout.get(from_index)),
            )

        new_layout = plan_slot_move(layout, from_index, to_index, self.capacity)
        check_layout(new_layout, self.capacity)

        moved = {
            slot_id: position
            for position, slot_id in new_layout.items()
            if by_id[slot_id].position != position
        }
        if moved:
            # Phase 1: park
            for parking, slot_id in enumerate(moved, start=1):
                by_id[slot_id].position = -parking
            self.session.flush()
            # Phase 2: place
            for slot_id, position in moved.items():
                by_id[slot_id].position = position
            self.session.flush()

        logger.info(
            "slots_reordered",
            extra={
                "from_index": from_index,
                "to_index": to_index,
                "slot_id": str(layout[from_index]),
                "slots_moved": len(moved),
            },
        )
        return self._view(self._slots())

    def auto_fill(self) -> AutoFillResult:
        """
        Fill empty positions, ascending, from the front of the backlog.

        Each new slot's amount is the item's remaining balance at fill time.
        A no-op on a full board or an empty backlog.

        Raises:
            BoardCapacityExceededError: If stored slots do not fit the capacity.
        """
        occupied = [slot.position for slot in self._board_slots()]

        candidates = self._backlog.fill_candidates(self.capacity - len(occupied))
        plan = plan_fill(occupied, candidates, self.capacity)

        created = []
        for position, item in plan:
            slot = BoardSlot(
                work_item_id=item.id,
                position=position,
                amount=round_money(item.remaining_amount),
                person_name=item.person.name,
                person_role=item.person.role,
                work_description=item.description,
            )
            self.session.add(slot)
            created.append(slot)
        if created:
            self.session.flush()

        filled = tuple(SlotInfo.from_model(slot) for slot in created)
        logger.info(
            "auto_fill_completed",
            extra={
                "filled": len(filled),
                "occupied": len(occupied) + len(filled),
                "capacity": self.capacity,
            },
        )
        return AutoFillResult(filled=filled)
