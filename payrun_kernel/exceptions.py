"""
Typed Exception Hierarchy for the Payrun Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (an API layer, a CLI, a test) must be able to tell "the slot you
clicked no longer exists" apart from "the database is down" without parsing
message strings. Every error therefore has:

  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (slot_id, work_item_id, amounts, ...)

Example:
    try:
        coordinator.approve_board()
    except EmptyBoardError as e:
        api_response(code=e.code)            # nothing to approve, not retried
    except StorageError as e:
        api_response(code=e.code, op=e.operation)  # rolled back, caller retries

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PayrunKernelError (base)
    |
    +-- NotFoundError
    |   +-- PersonNotFoundError
    |   +-- WorkItemNotFoundError
    |   +-- SlotNotFoundError
    |
    +-- ValidationError
    |   +-- MissingFieldError
    |   +-- InvalidAmountError
    |   +-- InvalidPositionError
    |
    +-- EmptyBoardError
    |
    +-- ConflictError
    |   +-- OverpaymentError
    |   +-- BoardCapacityExceededError
    |
    +-- StorageError
    |
    +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Not found       | PERSON_NOT_FOUND            | Person ID doesn't exist
                | WORK_ITEM_NOT_FOUND         | Work item absent or not pending
                | SLOT_NOT_FOUND              | Slot ID / board position is empty
----------------|-----------------------------|-----------------------------------------
Validation      | MISSING_FIELD               | Required text field blank
                | INVALID_AMOUNT              | Negative / non-numeric amount
                | INVALID_POSITION            | Index outside the valid range
----------------|-----------------------------|-----------------------------------------
Board           | EMPTY_BOARD                 | approve_board() with no slots
----------------|-----------------------------|-----------------------------------------
Conflict        | CONFLICT                    | Concurrent mutation invalidated intent
                | OVERPAYMENT                 | Slot amount exceeds remaining balance
                | BOARD_CAPACITY_EXCEEDED     | Write would exceed board capacity
----------------|-----------------------------|-----------------------------------------
Storage         | STORAGE_ERROR               | Persistence failure, rolled back
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | Update/delete of a history entry

===============================================================================
PROPAGATION POLICY
===============================================================================

NotFoundError, ValidationError and EmptyBoardError are reported synchronously
and never retried. StorageError is raised only after the enclosing transaction
has been rolled back: no partial state is ever left for the caller to
reconcile. Retry policy belongs to the caller.
"""


class PayrunKernelError(Exception):
    """
    Base exception for all payrun kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PAYRUN_KERNEL_ERROR"


# Not-found exceptions


class NotFoundError(PayrunKernelError):
    """Base exception for a referenced entity that does not exist."""

    code: str = "NOT_FOUND"


class PersonNotFoundError(NotFoundError):
    """Person with given ID was not found."""

    code: str = "PERSON_NOT_FOUND"

    def __init__(self, person_id: str):
        self.person_id = person_id
        super().__init__(f"Person not found: {person_id}")


class WorkItemNotFoundError(NotFoundError):
    """Work item was not found, or is not pending where a pending item is required."""

    code: str = "WORK_ITEM_NOT_FOUND"

    def __init__(self, work_item_id: str, reason: str | None = None):
        self.work_item_id = work_item_id
        self.reason = reason
        message = f"Work item not found: {work_item_id}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class SlotNotFoundError(NotFoundError):
    """Board slot was not found, by ID or by position."""

    code: str = "SLOT_NOT_FOUND"

    def __init__(self, slot_id: str | None = None, position: int | None = None):
        self.slot_id = slot_id
        self.position = position
        if slot_id is not None:
            super().__init__(f"Board slot not found: {slot_id}")
        else:
            super().__init__(f"No board slot at position {position}")


# Validation exceptions


class ValidationError(PayrunKernelError):
    """Base exception for rejected input."""

    code: str = "VALIDATION_ERROR"


class MissingFieldError(ValidationError):
    """A required text field was missing or blank."""

    code: str = "MISSING_FIELD"

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Field '{field_name}' is required")


class InvalidAmountError(ValidationError):
    """Monetary amount is not a valid non-negative decimal."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: object, reason: str):
        self.amount = str(amount)
        self.reason = reason
        super().__init__(f"Invalid amount {amount!r}: {reason}")


class InvalidPositionError(ValidationError):
    """Index is outside the valid range for the board or backlog."""

    code: str = "INVALID_POSITION"

    def __init__(self, index: int, upper_bound: int, target: str):
        self.index = index
        self.upper_bound = upper_bound
        self.target = target
        super().__init__(
            f"Index {index} is outside {target} range 0..{upper_bound - 1}"
        )


# Board exceptions


class EmptyBoardError(PayrunKernelError):
    """Bulk approval requested while the board has no occupied slots."""

    code: str = "EMPTY_BOARD"

    def __init__(self):
        super().__init__("Board has no occupied slots to approve")


# Conflict exceptions


class ConflictError(PayrunKernelError):
    """
    A concurrent mutation invalidated the operation's preconditions.

    Example: a reorder names slot A at position 3, but another operator
    removed or moved it before this transaction acquired the board lock.
    """

    code: str = "CONFLICT"

    def __init__(self, message: str, **details: str | None):
        self.details = details
        super().__init__(message)


class OverpaymentError(ConflictError):
    """Settlement amount exceeds the work item's remaining balance."""

    code: str = "OVERPAYMENT"

    def __init__(self, work_item_id: str, amount: str, remaining: str):
        self.work_item_id = work_item_id
        self.amount = amount
        self.remaining = remaining
        super().__init__(
            f"Settlement of {amount} exceeds remaining balance {remaining} "
            f"on work item {work_item_id}",
            work_item_id=work_item_id,
        )


class BoardCapacityExceededError(ConflictError):
    """The board holds, or a write would leave, more slots than fit its capacity."""

    code: str = "BOARD_CAPACITY_EXCEEDED"

    def __init__(self, occupied: int, capacity: int, position: int | None = None):
        self.occupied = occupied
        self.capacity = capacity
        self.position = position
        if position is not None:
            message = f"Board has a slot at position {position}, capacity is {capacity}"
        else:
            message = f"Board would hold {occupied} slots, capacity is {capacity}"
        super().__init__(message)


# Storage exceptions


class StorageError(PayrunKernelError):
    """
    Persistence failure. The enclosing transaction was rolled back.

    The original driver exception is chained as ``__cause__``.
    """

    code: str = "STORAGE_ERROR"

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Storage failure during {operation}: {reason}")


# Immutability exceptions


class ImmutabilityViolationError(PayrunKernelError):
    """Attempted to modify or delete an append-only record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
