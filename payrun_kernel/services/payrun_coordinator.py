"""
PayrunCoordinator -- the operation surface of the payrun kernel.

Responsibility:
    Owns transaction boundaries.  Every public method opens one
    ``session_scope()`` transaction, builds the flush-only services on that
    session, runs the operation and commits.  Board-mutating operations
    acquire the board lock first, so their read-modify-write of slot
    positions is serialized against every other writer.

Architecture position:
    Kernel > Services -- imperative shell, owns commit/rollback.
    Callers (a UI, an API, a CLI, tests) talk to this class only and receive
    frozen DTOs.

Invariants enforced:
    - A settlement or a whole-board approval commits as one unit or not at
      all.
    - Any SQLAlchemyError rolls the transaction back and surfaces as
      StorageError chained to the driver error.  Kernel errors propagate
      unchanged after the rollback.
    - Auto-fill after settle, approve, remove, intake and person delete runs
      in its own transaction.  Its failure is logged as ``auto_fill_failed``
      and never undoes or fails the operation that triggered it.

Usage:
    coordinator = PayrunCoordinator(get_session_factory())
    person = coordinator.create_person("Ada", "Dev")
    coordinator.create_work_item(person.id, "API client", "1200.00")
    board = coordinator.list_slots()
    coordinator.approve_board()
"""

from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal
from typing import Generator
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from payrun_kernel.db.engine import session_scope
from payrun_kernel.db.immutability import register_immutability_listeners
from payrun_kernel.domain.board import BOARD_CAPACITY
from payrun_kernel.domain.clock import Clock, SystemClock
from payrun_kernel.domain.dtos import (
    AutoFillResult,
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
from payrun_kernel.exceptions import StorageError
from payrun_kernel.logging_config import LogContext, get_logger
from payrun_kernel.selectors.history_selector import HistorySelector
from payrun_kernel.services.backlog_service import BacklogService
from payrun_kernel.services.board_lock_service import BoardLockService
from payrun_kernel.services.board_service import BoardService
from payrun_kernel.services.person_service import PersonService
from payrun_kernel.services.settlement_service import SettlementService
from payrun_kernel.services.work_intake_service import WorkIntakeService

logger = get_logger("services.coordinator")


class PayrunCoordinator:
    """Transactional entry point for board, backlog, settlement and registry operations."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        capacity: int = BOARD_CAPACITY,
    ):
        if capacity < 1:
            raise ValueError(f"Board capacity must be positive, got {capacity}")
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self.capacity = capacity
        register_immutability_listeners()

    # ------------------------------------------------------------------
    # Transaction plumbing
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(
        self, operation: str, *, lock: bool = False
    ) -> Generator[Session, None, None]:
        with LogContext.bind(operation=operation):
            try:
                with session_scope(self._session_factory) as session:
                    if lock:
                        BoardLockService(session).acquire()
                    yield session
            except SQLAlchemyError as exc:
                logger.error(
                    "storage_failure",
                    extra={"error_type": type(exc).__name__},
                )
                raise StorageError(operation, str(exc)) from exc

    def _board(self, session: Session) -> BoardService:
        return BoardService(session, BacklogService(session), self.capacity)

    def _settlement(self, session: Session) -> SettlementService:
        return SettlementService(session, self._clock, self.capacity)

    def _auto_fill_after(self, trigger: str) -> AutoFillResult | None:
        try:
            return self.run_auto_fill()
        except Exception:
            # The triggering operation has already committed
            logger.error(
                "auto_fill_failed",
                extra={"trigger": trigger},
                exc_info=True,
            )
            return None

    # ------------------------------------------------------------------
    # Backlog
    # ------------------------------------------------------------------

    def list_backlog(self) -> list[WorkItemInfo]:
        """Pending work items in fill order."""
        with self._transaction("list_backlog") as session:
            return BacklogService(session).list()

    def reorder_backlog(self, item_id: UUID, new_index: int) -> list[WorkItemInfo]:
        """Move a pending item to ``new_index``; returns the new backlog."""
        with self._transaction("reorder_backlog", lock=True) as session:
            return BacklogService(session).reorder(item_id, new_index)

    # ------------------------------------------------------------------
    # Board
    # ------------------------------------------------------------------

    def list_slots(self) -> BoardView:
        with self._transaction("list_slots") as session:
            return self._board(session).list_slots()

    def remove_slot(self, slot_id: UUID) -> SlotInfo:
        """Take a slot off the board unpaid, then refill the board."""
        with self._transaction("remove_slot", lock=True) as session:
            removed = self._board(session).remove_slot(slot_id)
        self._auto_fill_after("remove_slot")
        return removed

    def reorder_slots(
        self,
        from_index: int,
        to_index: int,
        expected_slot_id: UUID | None = None,
    ) -> BoardView:
        with self._transaction("reorder_slots", lock=True) as session:
            return self._board(session).reorder_slots(
                from_index, to_index, expected_slot_id
            )

    def run_auto_fill(self) -> AutoFillResult:
        """Fill empty board positions from the front of the backlog."""
        with self._transaction("auto_fill", lock=True) as session:
            return self._board(session).auto_fill()

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    def settle_slot(self, slot_id: UUID) -> SettlementResult:
        """Pay one slot, then refill the board."""
        with self._transaction("settle_slot", lock=True) as session:
            result = self._settlement(session).settle_slot(slot_id)
        self._auto_fill_after("settle_slot")
        return result

    def approve_board(self) -> SettlementBatchResult:
        """
        Pay every slot on the board in one transaction, then refill it.

        Raises:
            EmptyBoardError: If the board has no occupied slots.
            StorageError: If persistence fails; nothing was paid.
        """
        with self._transaction("approve_board", lock=True) as session:
            batch = self._settlement(session).approve_board()
        self._auto_fill_after("approve_board")
        return batch

    # ------------------------------------------------------------------
    # Persons and work intake
    # ------------------------------------------------------------------

    def create_person(self, name: str, role: str) -> PersonInfo:
        with self._transaction("create_person") as session:
            return PersonService(session).create_person(name, role)

    def list_persons(self) -> list[PersonInfo]:
        with self._transaction("list_persons") as session:
            return PersonService(session).list_persons()

    def get_person(self, person_id: UUID) -> PersonInfo:
        with self._transaction("get_person") as session:
            return PersonService(session).get_person(person_id)

    def delete_person(self, person_id: UUID) -> PersonInfo:
        """
        Delete a person with all their work items, slots and history.

        Irreversible.  Callers must confirm with the operator first.
        """
        with self._transaction("delete_person", lock=True) as session:
            deleted = PersonService(session).delete_person(person_id)
        self._auto_fill_after("delete_person")
        return deleted

    def create_work_item(
        self,
        person_id: UUID,
        description: str,
        total_amount: Decimal | int | str,
    ) -> WorkItemInfo:
        """Record new work at the back of the backlog, then refill the board."""
        with self._transaction("create_work_item", lock=True) as session:
            item = WorkIntakeService(session).create_work_item(
                person_id, description, total_amount
            )
        self._auto_fill_after("create_work_item")
        return item

    def list_work_items(
        self,
        person_id: UUID | None = None,
        pending_only: bool = True,
    ) -> list[WorkItemInfo]:
        with self._transaction("list_work_items") as session:
            return WorkIntakeService(session).list_work_items(person_id, pending_only)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def list_history(
        self,
        person_id: UUID | None = None,
        limit: int | None = None,
    ) -> list[HistoryEntryInfo]:
        with self._transaction("list_history") as session:
            return HistorySelector(session).list_history(person_id, limit)

    def person_summary(self, person_id: UUID) -> PersonSummary:
        with self._transaction("person_summary") as session:
            return HistorySelector(session).person_summary(person_id)

    def reconcile(self) -> list[ReconciliationMismatch]:
        """Work items whose balance disagrees with the ledger (empty when consistent)."""
        with self._transaction("reconcile") as session:
            mismatches = HistorySelector(session).reconcile()
        if mismatches:
            logger.error(
                "reconciliation_mismatch",
                extra={"mismatches": len(mismatches)},
            )
        return mismatches
