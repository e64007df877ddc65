"""
Module: payrun_kernel.models.person
Responsibility: ORM persistence for the people work is owed to.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - name and role are NOT NULL.  Blank-string rejection happens in
      PersonService before the row is built.
    - Deleting a person cascades (ON DELETE CASCADE) to work_items,
      board_slots and history_entries.  The cascade is performed by the
      database, never by the ORM, so the history immutability listeners
      are not involved.
"""

from sqlalchemy.orm import Mapped, mapped_column

from payrun_kernel.db.base import TimestampedBase
from payrun_kernel.db.types import Label


class Person(TimestampedBase):
    """A person that work items are owed to, labelled with a role."""

    __tablename__ = "persons"

    name: Mapped[Label] = mapped_column(nullable=False)

    # Job role label shown next to the name (e.g., "Dev", "Designer")
    role: Mapped[Label] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<Person {self.name} ({self.role})>"
