"""
Service layer for Person operations.

The person registry: create, list, fetch and delete.  Deletion is the
irreversible cascade to work items, board slots and payment history; the
service performs no confirmation of its own.

Returns PersonInfo DTOs instead of ORM entities.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select

from payrun_kernel.domain.dtos import PersonInfo
from payrun_kernel.exceptions import MissingFieldError, PersonNotFoundError
from payrun_kernel.logging_config import get_logger
from payrun_kernel.models.person import Person
from payrun_kernel.services.base import BaseService

logger = get_logger("services.person")


def _required(value: str | None, field_name: str) -> str:
    if value is None or not value.strip():
        raise MissingFieldError(field_name)
    return value.strip()


class PersonService(BaseService[Person]):
    """Manages the people work is owed to."""

    def _get_by_id(self, person_id: UUID) -> Person:
        """Get person by ID, raising if not found."""
        person = self.session.get(Person, person_id)
        if person is None:
            raise PersonNotFoundError(str(person_id))
        return person

    def get_person(self, person_id: UUID) -> PersonInfo:
        """
        Get person by ID.

        Raises:
            PersonNotFoundError: If person doesn't exist.
        """
        return PersonInfo.from_model(self._get_by_id(person_id))

    def list_persons(self) -> list[PersonInfo]:
        """All persons ordered by name."""
        stmt = select(Person).order_by(Person.name, Person.id)
        return [PersonInfo.from_model(p) for p in self.session.execute(stmt).scalars()]

    def create_person(self, name: str, role: str) -> PersonInfo:
        """
        Register a new person.

        Raises:
            MissingFieldError: If name or role is blank.
        """
        person = Person(
            name=_required(name, "name"),
            role=_required(role, "role"),
        )
        self.session.add(person)
        self.session.flush()
        logger.info("person_created", extra={"person_id": str(person.id)})
        return PersonInfo.from_model(person)

    def delete_person(self, person_id: UUID) -> PersonInfo:
        """
        Delete a person and, by database cascade, everything that references it.

        Destructive and irreversible: work items, their board slots and
        their payment history all go.  Callers must obtain confirmation
        before invoking this.

        Raises:
            PersonNotFoundError: If person doesn't exist.
        """
        person = self.get_person(person_id)
        # Core DELETE: the cascade is left to ON DELETE CASCADE so history
        # rows never pass through the ORM immutability listeners.
        self.session.execute(delete(Person).where(Person.id == person_id))
        self.session.expire_all()
        logger.warning(
            "person_deleted_with_cascade",
            extra={"person_id": str(person_id)},
        )
        return person
