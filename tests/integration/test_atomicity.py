"""
Atomicity of settlement under injected storage faults.

A listener raises OperationalError part-way through a flush.  The
coordinator must roll back everything the operation wrote, report
StorageError chained to the driver error, and leave the board, balances and
ledger exactly as they were.
"""

from decimal import Decimal

import pytest
from sqlalchemy import event, func, select
from sqlalchemy.exc import OperationalError

from payrun_kernel.exceptions import StorageError
from payrun_kernel.models import BoardSlot, HistoryEntry, WorkItem
from payrun_kernel.services.payrun_coordinator import PayrunCoordinator


def _snapshot(session) -> dict:
    return {
        "slots": sorted(
            (slot.position, str(slot.work_item_id), slot.amount)
            for slot in session.execute(select(BoardSlot)).scalars()
        ),
        "items": sorted(
            (str(item.id), item.paid_amount, item.completed, item.priority)
            for item in session.execute(select(WorkItem)).scalars().unique()
        ),
        "history": session.execute(
            select(func.count()).select_from(HistoryEntry)
        ).scalar_one(),
    }


@pytest.fixture
def inject_fault():
    """
    Make the Nth ``event`` on ``model`` raise OperationalError (or ``error``).

    Usage::

        inject_fault(HistoryEntry, "before_insert", fail_on=2)
        inject_fault(BoardSlot, "before_insert", error=RuntimeError("boom"))
    """
    installed = []

    def _inject(model, event_name, fail_on=1, error=None):
        calls = {"n": 0}

        def _fail(mapper, connection, target):
            calls["n"] += 1
            if calls["n"] >= fail_on:
                if error is not None:
                    raise error
                raise OperationalError(
                    "INSERT/UPDATE", {}, Exception("injected disk I/O error")
                )

        event.listen(model, event_name, _fail)
        installed.append((model, event_name, _fail))
        return calls

    yield _inject

    for model, event_name, fn in installed:
        event.remove(model, event_name, fn)


class TestBulkApprovalAtomicity:
    @pytest.mark.parametrize("fail_on", [1, 2, 3])
    def test_history_insert_failure_rolls_back_everything(
        self, coordinator, seed, fresh_session, inject_fault, fail_on
    ):
        seed("Ana", "Dev", ["100", "50", "100"])
        with fresh_session() as session:
            before = _snapshot(session)

        inject_fault(HistoryEntry, "before_insert", fail_on=fail_on)
        with pytest.raises(StorageError) as exc_info:
            coordinator.approve_board()

        assert exc_info.value.operation == "approve_board"
        assert isinstance(exc_info.value.__cause__, OperationalError)
        with fresh_session() as session:
            assert _snapshot(session) == before

    def test_balance_update_failure_rolls_back(
        self, coordinator, seed, fresh_session, inject_fault
    ):
        seed("Ana", "Dev", ["100", "50", "100"])
        with fresh_session() as session:
            before = _snapshot(session)

        inject_fault(WorkItem, "before_update", fail_on=3)
        with pytest.raises(StorageError):
            coordinator.approve_board()

        with fresh_session() as session:
            assert _snapshot(session) == before
        assert coordinator.reconcile() == []

    def test_retry_after_fault_succeeds(self, coordinator, seed, inject_fault):
        seed("Ana", "Dev", ["100", "50"])
        calls = inject_fault(HistoryEntry, "before_insert", fail_on=2)
        with pytest.raises(StorageError):
            coordinator.approve_board()

        calls["n"] = -100
        batch = coordinator.approve_board()

        assert batch.total == Decimal("150.00")
        assert coordinator.reconcile() == []


class TestSingleSettlementAtomicity:
    def test_settle_failure_keeps_slot(self, coordinator, seed, fresh_session, inject_fault):
        seed("Ana", "Dev", ["100"])
        slot = coordinator.list_slots().slots[0]
        with fresh_session() as session:
            before = _snapshot(session)

        inject_fault(WorkItem, "before_update")
        with pytest.raises(StorageError) as exc_info:
            coordinator.settle_slot(slot.id)

        assert exc_info.value.operation == "settle_slot"
        with fresh_session() as session:
            assert _snapshot(session) == before


class TestAutoFillIsolation:
    def test_auto_fill_failure_does_not_undo_settlement(
        self, session_factory, deterministic_clock, fresh_session, inject_fault, captured_logs
    ):
        coordinator = PayrunCoordinator(session_factory, clock=deterministic_clock, capacity=1)
        ana = coordinator.create_person("Ana", "Dev")
        first = coordinator.create_work_item(ana.id, "First", Decimal("10"))
        second = coordinator.create_work_item(ana.id, "Second", Decimal("20"))
        slot = coordinator.list_slots().slots[0]
        assert slot.work_item_id == first.id

        inject_fault(BoardSlot, "before_insert")
        result = coordinator.settle_slot(slot.id)

        assert result.completed is True
        assert coordinator.list_slots().occupied_count == 0
        failures = [r for r in captured_logs() if r["event"] == "auto_fill_failed"]
        assert len(failures) == 1
        assert failures[0]["trigger"] == "settle_slot"
        assert failures[0]["error"]["code"] == "STORAGE_ERROR"
        with fresh_session() as session:
            assert session.get(WorkItem, first.id).completed is True
            assert session.get(WorkItem, second.id).paid_amount == Decimal("0.00")

    def test_rollback_is_logged(self, coordinator, seed, inject_fault, captured_logs):
        seed("Ana", "Dev", ["10"])
        inject_fault(HistoryEntry, "before_insert")
        with pytest.raises(StorageError):
            coordinator.approve_board()

        messages = [r["event"] for r in captured_logs()]
        assert "transaction_rolled_back" in messages
        assert "storage_failure" in messages

    def test_unexpected_auto_fill_error_is_logged_not_raised(
        self, session_factory, deterministic_clock, fresh_session, inject_fault, captured_logs
    ):
        coordinator = PayrunCoordinator(session_factory, clock=deterministic_clock, capacity=1)
        ana = coordinator.create_person("Ana", "Dev")
        first = coordinator.create_work_item(ana.id, "First", Decimal("10"))
        coordinator.create_work_item(ana.id, "Second", Decimal("20"))
        slot = coordinator.list_slots().slots[0]

        inject_fault(BoardSlot, "before_insert", error=RuntimeError("listener blew up"))
        result = coordinator.settle_slot(slot.id)

        assert result.entry.amount == Decimal("10.00")
        (failure,) = [r for r in captured_logs() if r["event"] == "auto_fill_failed"]
        assert failure["trigger"] == "settle_slot"
        assert failure["error"]["type"] == "RuntimeError"
        assert "code" not in failure["error"]
        assert "listener blew up" in failure["traceback"]
        with fresh_session() as session:
            assert session.get(WorkItem, first.id).paid_amount == Decimal("10.00")
