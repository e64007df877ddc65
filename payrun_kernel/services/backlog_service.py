"""
BacklogService -- the priority-ordered queue of pending work.

Responsibility:
    Lists pending work items in fill order, rewrites their priority ranks
    when the operator moves one, and places new or bumped items at the back.
    The ranking rules themselves live in ``domain/ordering.py``.

Architecture position:
    Kernel > Services -- imperative shell around the ordering rules.

Invariants enforced:
    - Fill order is (priority, created_at, id): total and deterministic.
    - After ``reorder()``, pending ranks are exactly 0..N-1.
    - Completed items are never listed, ranked or offered to auto-fill.

Failure modes:
    - WorkItemNotFoundError if the item is absent or already completed.
    - InvalidPositionError if the target index is outside 0..N-1.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select

from payrun_kernel.domain.dtos import WorkItemInfo
from payrun_kernel.domain.ordering import contiguous_ranks, move_item, next_priority
from payrun_kernel.exceptions import WorkItemNotFoundError
from payrun_kernel.logging_config import get_logger
from payrun_kernel.models.board_slot import BoardSlot
from payrun_kernel.models.work_item import WorkItem
from payrun_kernel.services.base import BaseService

logger = get_logger("services.backlog")


class BacklogService(BaseService[WorkItem]):
    """Ordered collection of pending (not fully paid) work items."""

    def _pending(self) -> list[WorkItem]:
        stmt = (
            select(WorkItem)
            .where(WorkItem.completed.is_(False))
            .order_by(WorkItem.priority, WorkItem.created_at, WorkItem.id)
        )
        return list(self.session.execute(stmt).scalars().unique())

    def _slotted_ids(self) -> set[UUID]:
        return set(self.session.execute(select(BoardSlot.work_item_id)).scalars())

    def _get_pending(self, item_id: UUID) -> WorkItem:
        item = self.session.get(WorkItem, item_id)
        if item is None:
            raise WorkItemNotFoundError(str(item_id))
        if item.completed:
            raise WorkItemNotFoundError(str(item_id), reason="already completed")
        return item

    def list(self) -> list[WorkItemInfo]:
        """Pending items in fill order, flagged if already on the board."""
        slotted = self._slotted_ids()
        return [
            WorkItemInfo.from_model(item, slotted=item.id in slotted)
            for item in self._pending()
        ]

    def fill_candidates(self, limit: int) -> list[WorkItem]:
        """The first ``limit`` pending items not already on the board."""
        if limit <= 0:
            return []
        slotted = self._slotted_ids()
        candidates = [item for item in self._pending() if item.id not in slotted]
        return candidates[:limit]

    def next_priority(self) -> int:
        """Rank that places an item at the back of the backlog."""
        current_max = self.session.execute(
            select(func.max(WorkItem.priority)).where(WorkItem.completed.is_(False))
        ).scalar_one_or_none()
        return next_priority([current_max])

    def insert(self, item: WorkItem) -> WorkItem:
        """Add a new item at the back of the backlog."""
        item.priority = self.next_priority()
        self.session.add(item)
        self.session.flush()
        logger.debug(
            "backlog_item_inserted",
            extra={"work_item_id": str(item.id), "priority": item.priority},
        )
        return item

    def send_to_back(self, item_id: UUID) -> int:
        """
        Move a pending item behind every other pending item.

        Returns:
            The item's new priority.
        """
        item = self._get_pending(item_id)
        others = [
            other.priority for other in self._pending() if other.id != item.id
        ]
        item.priority = next_priority(others)
        self.session.flush()
        logger.debug(
            "backlog_item_sent_to_back",
            extra={"work_item_id": str(item_id), "priority": item.priority},
        )
        return item.priority

    def reorder(self, item_id: UUID, new_index: int) -> list[WorkItemInfo]:
        """
        Move a pending item to ``new_index`` and renumber the whole backlog.

        Every pending item gets rank equal to its index in the new order, so
        ranks are contiguous 0..N-1 afterwards.

        Raises:
            WorkItemNotFoundError: If the item is missing or not pending.
            InvalidPositionError: If ``new_index`` is outside 0..N-1.
        """
        self._get_pending(item_id)
        pending = self._pending()
        by_id = {item.id: item for item in pending}

        order = move_item([item.id for item in pending], item_id, new_index)
        changed = 0
        for rank_id, rank in contiguous_ranks(order).items():
            item = by_id[rank_id]
            if item.priority != rank:
                item.priority = rank
                changed += 1
        self.session.flush()

        logger.info(
            "backlog_reordered",
            extra={
                "work_item_id": str(item_id),
                "new_index": new_index,
                "pending_count": len(order),
                "ranks_changed": changed,
            },
        )
        return self.list()
