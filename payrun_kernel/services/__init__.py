"""Services for the payrun kernel (write side)."""

from payrun_kernel.services.backlog_service import BacklogService
from payrun_kernel.services.board_lock_service import BoardLockService
from payrun_kernel.services.board_service import BoardService
from payrun_kernel.services.payrun_coordinator import PayrunCoordinator
from payrun_kernel.services.person_service import PersonService
from payrun_kernel.services.settlement_service import SettlementService
from payrun_kernel.services.work_intake_service import WorkIntakeService

__all__ = [
    "BacklogService",
    "BoardLockService",
    "BoardService",
    "PayrunCoordinator",
    "PersonService",
    "SettlementService",
    "WorkIntakeService",
]
