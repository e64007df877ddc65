"""
Module: payrun_kernel.models.board_lock
Responsibility: Named lock rows that serialize board writers.
Architecture position: Kernel > Models.  May import from db/ only.

Each board-mutating transaction locks the row named "board" with
SELECT ... FOR UPDATE before reading slot positions.  The row carries a
version counter bumped on every acquisition, so a committed board mutation is
always visible as a version change.
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from payrun_kernel.db.base import Base


class BoardLock(Base):
    """Lock row; one per named board."""

    __tablename__ = "board_locks"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
