"""
Service layer for work intake.

Creates work items owed to a person and places them at the back of the
backlog.  An item whose total is zero has nothing left to pay and is created
already completed, so it never reaches the board.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from payrun_kernel.db.types import ZERO, parse_amount
from payrun_kernel.domain.dtos import WorkItemInfo
from payrun_kernel.exceptions import MissingFieldError, PersonNotFoundError
from payrun_kernel.logging_config import get_logger
from payrun_kernel.models.board_slot import BoardSlot
from payrun_kernel.models.person import Person
from payrun_kernel.models.work_item import WorkItem
from payrun_kernel.services.backlog_service import BacklogService
from payrun_kernel.services.base import BaseService

logger = get_logger("services.work_intake")


class WorkIntakeService(BaseService[WorkItem]):
    """Records new work owed to persons."""

    def __init__(self, session: Session, backlog: BacklogService | None = None):
        super().__init__(session)
        self._backlog = backlog or BacklogService(session)

    def create_work_item(
        self,
        person_id: UUID,
        description: str,
        total_amount: Decimal | int | str,
    ) -> WorkItemInfo:
        """
        Create a work item at the back of the backlog.

        Raises:
            PersonNotFoundError: If the person doesn't exist.
            MissingFieldError: If description is blank.
            InvalidAmountError: If total_amount is negative or not a number.
        """
        if self.session.get(Person, person_id) is None:
            raise PersonNotFoundError(str(person_id))
        if description is None or not description.strip():
            raise MissingFieldError("description")
        total = parse_amount(total_amount)

        item = WorkItem(
            person_id=person_id,
            description=description.strip(),
            total_amount=total,
            paid_amount=ZERO,
            completed=total == ZERO,
        )
        self._backlog.insert(item)

        logger.info(
            "work_item_created",
            extra={
                "work_item_id": str(item.id),
                "person_id": str(person_id),
                "total_amount": str(total),
                "priority": item.priority,
                "completed": item.completed,
            },
        )
        return WorkItemInfo.from_model(item)

    def list_work_items(
        self,
        person_id: UUID | None = None,
        pending_only: bool = True,
    ) -> list[WorkItemInfo]:
        """Work items, optionally for one person, in backlog order."""
        stmt = select(WorkItem).order_by(
            WorkItem.priority, WorkItem.created_at, WorkItem.id
        )
        if person_id is not None:
            stmt = stmt.where(WorkItem.person_id == person_id)
        if pending_only:
            stmt = stmt.where(WorkItem.completed.is_(False))

        slotted = set(self.session.execute(select(BoardSlot.work_item_id)).scalars())
        return [
            WorkItemInfo.from_model(item, slotted=item.id in slotted)
            for item in self.session.execute(stmt).scalars().unique()
        ]
