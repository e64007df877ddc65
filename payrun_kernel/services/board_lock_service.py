"""
BoardLockService -- serializes board writers via a locked row.

Responsibility:
    Every board-mutating transaction (fill, remove, reorder, settle,
    approve, backlog reorder, person delete) calls ``acquire()`` first.
    On PostgreSQL this takes ``SELECT ... FOR UPDATE`` on the named lock
    row, so the whole read-modify-write of slot positions happens while
    no other writer can touch the board.  On SQLite the transaction
    already holds the database write lock (BEGIN IMMEDIATE); the row
    update still records the version bump.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Single writer per board: two concurrent reorders, or a reorder racing
      a removal, are applied one after the other against fresh state.
    - The lock is released only by the caller's commit/rollback.

Failure modes:
    - IntegrityError: concurrent lock-row creation race (handled via
      savepoint rollback and re-select).
    - Lock wait bounded by the backend's lock/busy timeout.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from payrun_kernel.logging_config import get_logger
from payrun_kernel.models.board_lock import BoardLock

logger = get_logger("services.board_lock")


class BoardLockService:
    """
    Acquire the board lock inside the caller's transaction.

    Usage:
        with session_scope() as session:
            BoardLockService(session).acquire()
            # ... read and rewrite slots ...
    """

    BOARD = "board"

    def __init__(self, session: Session):
        self._session = session

    def _select_locked(self, name: str) -> BoardLock | None:
        return self._session.execute(
            select(BoardLock)
            .where(BoardLock.name == name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def acquire(self, name: str = BOARD) -> int:
        """
        Lock the named board for the rest of the transaction.

        Returns:
            The lock's new version number (strictly increasing per commit).
        """
        lock = self._select_locked(name)

        if lock is None:
            # First use: create the row.  Another transaction may race us,
            # so the insert runs in a savepoint.
            savepoint = self._session.begin_nested()
            try:
                lock = BoardLock(name=name, version=0)
                self._session.add(lock)
                self._session.flush()
                savepoint.commit()
            except IntegrityError:
                logger.debug("board_lock_create_race", extra={"lock_name": name})
                savepoint.rollback()
                lock = self._select_locked(name)
                if lock is None:
                    raise

        lock.version += 1
        self._session.flush()
        logger.debug(
            "board_lock_acquired",
            extra={"lock_name": name, "version": lock.version},
        )
        return lock.version

    def current_version(self, name: str = BOARD) -> int:
        """Version of the named lock without locking it (0 if never used)."""
        version = self._session.execute(
            select(BoardLock.version).where(BoardLock.name == name)
        ).scalar_one_or_none()
        return version or 0
