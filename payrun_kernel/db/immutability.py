"""
ORM-Level Ledger Invariant Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

The payment ledger must be tamper-proof, and a work item's balance must never
drift from what the ledger says was paid.  Services are written to respect
these rules; this module makes the ORM refuse to flush anything that breaks
them, no matter which code path produced the change.

    session.flush()
         |
         v
    [before_insert / before_update / before_delete]
         |--> _check_*() --> ImmutabilityViolationError / ConflictError
         v
    SQL sent to database (only if checks pass)

If a check fails the flush is aborted and the enclosing transaction is rolled
back by its owner.  The database is never modified.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity        | Rule                                    | Why
--------------|-----------------------------------------|-----------------------------
HistoryEntry  | No UPDATE, no DELETE (ever)             | Ledger is append-only
WorkItem      | total_amount immutable after INSERT     | Changing it rewrites debt
WorkItem      | paid_amount never decreases             | Payments are not reversible
WorkItem      | 0 <= paid <= total                      | Money conservation
WorkItem      | completed == (paid >= total)            | Derived flag stays derived

The Person cascade (ON DELETE CASCADE) removes history rows at the database
level and does not pass through these listeners.

===============================================================================
USAGE
===============================================================================

    from payrun_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # idempotent, called once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event
from sqlalchemy.orm.attributes import get_history

from payrun_kernel.db.types import ZERO
from payrun_kernel.exceptions import ConflictError, ImmutabilityViolationError
from payrun_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _blocked(entity_type: str, entity_id, operation: str, reason: str) -> ImmutabilityViolationError:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            "reason": reason,
        },
    )
    return ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _check_history_entry_update(mapper, connection, target):
    """History entries are immutable from creation."""
    raise _blocked(
        "HistoryEntry", target.id, "UPDATE",
        "History entries are append-only and cannot be modified",
    )


def _check_history_entry_delete(mapper, connection, target):
    """History entries can only disappear through the Person cascade."""
    raise _blocked(
        "HistoryEntry", target.id, "DELETE",
        "History entries are append-only and cannot be deleted",
    )


def _check_balance_consistency(target) -> None:
    """Shared insert/update check: 0 <= paid <= total and completed is derived."""
    # Column defaults are not applied to the instance before INSERT.
    paid = target.paid_amount if target.paid_amount is not None else ZERO
    total = target.total_amount
    if paid < 0 or paid > total:
        logger.error(
            "balance_invariant_blocked",
            extra={
                "work_item_id": str(target.id),
                "paid_amount": paid,
                "total_amount": total,
            },
        )
        raise ConflictError(
            f"Work item {target.id}: paid {paid} outside 0..{total}",
            work_item_id=str(target.id),
        )
    if bool(target.completed) != (paid >= total):
        raise ConflictError(
            f"Work item {target.id}: completed flag disagrees with balance "
            f"({paid}/{total})",
            work_item_id=str(target.id),
        )


def _check_work_item_insert(mapper, connection, target):
    _check_balance_consistency(target)


def _check_work_item_update(mapper, connection, target):
    """
    Guard balance fields on WorkItem updates.

    Priority changes pass through untouched; balance changes must move
    forward and stay consistent.
    """
    total_history = get_history(target, "total_amount")
    if total_history.deleted and total_history.deleted[0] != target.total_amount:
        raise _blocked(
            "WorkItem", target.id, "UPDATE",
            "total_amount is fixed at creation",
        )

    paid_history = get_history(target, "paid_amount")
    if paid_history.deleted and paid_history.added:
        if paid_history.added[0] < paid_history.deleted[0]:
            raise _blocked(
                "WorkItem", target.id, "UPDATE",
                "paid_amount cannot decrease",
            )

    completed_history = get_history(target, "completed")
    if completed_history.deleted and completed_history.deleted[0] and not target.completed:
        raise _blocked(
            "WorkItem", target.id, "UPDATE",
            "a completed work item cannot be reopened",
        )

    _check_balance_consistency(target)


_LISTENERS = (
    ("HistoryEntry", "before_update", _check_history_entry_update),
    ("HistoryEntry", "before_delete", _check_history_entry_delete),
    ("WorkItem", "before_insert", _check_work_item_insert),
    ("WorkItem", "before_update", _check_work_item_update),
)


def _targets() -> dict:
    from payrun_kernel.models.history import HistoryEntry
    from payrun_kernel.models.work_item import WorkItem

    return {"HistoryEntry": HistoryEntry, "WorkItem": WorkItem}


def register_immutability_listeners() -> None:
    """
    Register all ledger invariant listeners.

    Safe to call more than once; already-registered listeners are skipped.
    """
    targets = _targets()
    for model_name, event_name, fn in _LISTENERS:
        model = targets[model_name]
        if not event.contains(model, event_name, fn):
            event.listen(model, event_name, fn)


def unregister_immutability_listeners() -> None:
    """
    Remove ledger invariant listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate the rules to verify detection.
    """
    targets = _targets()
    for model_name, event_name, fn in _LISTENERS:
        model = targets[model_name]
        if event.contains(model, event_name, fn):
            event.remove(model, event_name, fn)
