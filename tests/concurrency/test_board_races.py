"""
Concurrent board mutations with real multi-connection parallelism.

Runs against the per-test database (SQLite file, or PostgreSQL when
DATABASE_URL is set).  Writers are serialized by the board lock, so racing
operations apply one after the other against fresh state: a stale intent
fails with a typed error and never corrupts the board.
"""

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from threading import Barrier

import pytest
from sqlalchemy import func, select

from payrun_kernel.exceptions import (
    ConflictError,
    EmptyBoardError,
    SlotNotFoundError,
)
from payrun_kernel.models import HistoryEntry
from payrun_kernel.services.board_lock_service import BoardLockService

pytestmark = [pytest.mark.slow_locks]

THREADS = 6


def _race(calls):
    """Start every call at once; return (result, error) per call."""
    barrier = Barrier(len(calls))

    def _run(call):
        barrier.wait()
        try:
            return call(), None
        except Exception as exc:
            return None, exc

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        return list(pool.map(_run, calls))


def _assert_board_valid(board):
    positions = [slot.position for slot in board.slots]
    items = [slot.work_item_id for slot in board.slots]
    assert len(positions) == len(set(positions))
    assert all(0 <= p < board.capacity for p in positions)
    assert len(items) == len(set(items))
    assert board.occupied_count <= board.capacity


class TestConcurrentReorder:
    def test_same_intent_applies_once(self, coordinator, seed):
        seed("Ana", "Dev", ["10"] * 6)
        target = coordinator.list_slots().positions[0].slot

        outcomes = _race([
            lambda: coordinator.reorder_slots(0, 5, expected_slot_id=target.id)
            for _ in range(THREADS)
        ])

        successes = [r for r, e in outcomes if e is None]
        errors = [e for r, e in outcomes if e is not None]
        assert len(successes) == 1
        assert all(isinstance(e, ConflictError) for e in errors)
        board = coordinator.list_slots()
        assert board.positions[5].slot.id == target.id
        _assert_board_valid(board)

    def test_reorder_races_remove(self, coordinator, seed):
        seed("Ana", "Dev", ["10"] * 12)
        board = coordinator.list_slots()
        victim = board.positions[3].slot

        outcomes = _race([
            lambda: coordinator.remove_slot(victim.id),
            lambda: coordinator.reorder_slots(3, 0, expected_slot_id=victim.id),
            lambda: coordinator.reorder_slots(7, 1),
        ])

        for _, error in outcomes:
            assert error is None or isinstance(error, (ConflictError, SlotNotFoundError))
        assert outcomes[0][1] is None
        after = coordinator.list_slots()
        _assert_board_valid(after)
        assert victim.id not in {slot.id for slot in after.slots}
        assert after.is_full

    def test_lock_version_counts_writers(self, coordinator, seed, fresh_session):
        seed("Ana", "Dev", ["10"] * 4)
        with fresh_session() as session:
            before = BoardLockService(session).current_version()

        _race([lambda: coordinator.reorder_slots(0, 1) for _ in range(THREADS)])

        with fresh_session() as session:
            assert BoardLockService(session).current_version() == before + THREADS


class TestConcurrentSettlement:
    def test_same_slot_settled_once(self, coordinator, seed, fresh_session):
        seed("Ana", "Dev", ["100"])
        slot = coordinator.list_slots().slots[0]

        outcomes = _race([lambda: coordinator.settle_slot(slot.id) for _ in range(THREADS)])

        successes = [r for r, e in outcomes if e is None]
        assert len(successes) == 1
        assert all(isinstance(e, SlotNotFoundError) for _, e in outcomes if e is not None)
        with fresh_session() as session:
            assert session.execute(
                select(func.count()).select_from(HistoryEntry)
            ).scalar_one() == 1
        assert coordinator.reconcile() == []

    def test_concurrent_approvals_pay_once(self, coordinator, seed):
        seed("Ana", "Dev", ["100", "50", "25"])

        outcomes = _race([coordinator.approve_board for _ in range(THREADS)])

        batches = [r for r, e in outcomes if e is None]
        assert len(batches) == 1
        assert batches[0].total == Decimal("175.00")
        assert all(isinstance(e, EmptyBoardError) for _, e in outcomes if e is not None)
        assert coordinator.reconcile() == []
        assert len(coordinator.list_history()) == 3
