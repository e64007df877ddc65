"""
Board -- Pure slot-board layout rules.

Responsibility:
    Decides where slots go.  The board is a sparse mapping from position to
    slot identity (never a fixed-size array with placeholders); this module
    computes fill plans and reorder layouts over such mappings and validates
    them against the capacity.  BoardService applies the result to the
    database.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Every position is in 0..capacity-1.
    - At most ``capacity`` occupied positions.
    - No slot identity appears at two positions.
    - Fill order: empty positions ascending, candidates in backlog order.
"""

from typing import Hashable, Iterable, Mapping, Sequence, TypeVar

from payrun_kernel.domain.ordering import move_item
from payrun_kernel.exceptions import (
    BoardCapacityExceededError,
    ConflictError,
    InvalidPositionError,
    SlotNotFoundError,
)

T = TypeVar("T", bound=Hashable)
C = TypeVar("C")

BOARD_CAPACITY = 10


def validate_index(index: int, capacity: int = BOARD_CAPACITY) -> int:
    """Return ``index`` if it is a board position, else raise InvalidPositionError."""
    if not 0 <= index < capacity:
        raise InvalidPositionError(index, capacity, "board")
    return index


def empty_positions(occupied: Iterable[int], capacity: int = BOARD_CAPACITY) -> list[int]:
    """Positions in 0..capacity-1 not present in ``occupied``, ascending."""
    taken = set(occupied)
    return [position for position in range(capacity) if position not in taken]


def plan_fill(
    occupied: Iterable[int],
    candidates: Sequence[C],
    capacity: int = BOARD_CAPACITY,
) -> list[tuple[int, C]]:
    """
    Pair empty positions with fill candidates.

    Args:
        occupied: Positions already holding a slot.
        candidates: Eligible items in backlog order (already excluding
            completed and already-slotted items).
        capacity: Board capacity.

    Returns:
        (position, candidate) pairs; empty on a full board or when there are
        no candidates.  Deterministic for the same inputs.
    """
    return list(zip(empty_positions(occupied, capacity), candidates))


def plan_slot_move(
    layout: Mapping[int, T],
    from_index: int,
    to_index: int,
    capacity: int = BOARD_CAPACITY,
) -> dict[int, T]:
    """
    Compute the layout after moving the slot at ``from_index`` to ``to_index``.

    Moving onto an occupied position rotates the occupied slots between the
    two positions; the set of occupied positions is unchanged.  Moving onto
    an empty position relocates the slot and nothing else moves.

    Raises:
        InvalidPositionError: If either index is outside the board.
        SlotNotFoundError: If ``from_index`` is empty.
    """
    validate_index(from_index, capacity)
    validate_index(to_index, capacity)
    if from_index not in layout:
        raise SlotNotFoundError(position=from_index)

    moving = layout[from_index]
    if from_index == to_index:
        return dict(layout)

    if to_index not in layout:
        relocated = {pos: slot for pos, slot in layout.items() if pos != from_index}
        relocated[to_index] = moving
        return relocated

    positions = sorted(layout)
    order = [layout[pos] for pos in positions]
    order = move_item(order, moving, positions.index(to_index))
    return dict(zip(positions, order))


def check_capacity(positions: Iterable[int], capacity: int = BOARD_CAPACITY) -> None:
    """
    Reject a stored board that does not fit ``capacity``.

    A board written under a larger capacity can hold more slots than the
    board now shows, or slots past its last position.  Reading or paying it
    would disagree with what the operator sees.

    Raises:
        BoardCapacityExceededError: Too many slots, or a slot outside
            0..capacity-1 (``position`` names the first such slot).
    """
    positions = sorted(positions)
    if len(positions) > capacity:
        raise BoardCapacityExceededError(len(positions), capacity)
    stray = [position for position in positions if not 0 <= position < capacity]
    if stray:
        raise BoardCapacityExceededError(len(positions), capacity, position=stray[0])


def check_layout(layout: Mapping[int, T], capacity: int = BOARD_CAPACITY) -> None:
    """
    Validate a full board layout before it is written.

    Raises:
        BoardCapacityExceededError: More occupied positions than capacity.
        InvalidPositionError: A position outside 0..capacity-1.
        ConflictError: The same slot identity at two positions.
    """
    if len(layout) > capacity:
        raise BoardCapacityExceededError(len(layout), capacity)
    for position in layout:
        validate_index(position, capacity)
    identities = list(layout.values())
    if len(set(identities)) != len(identities):
        raise ConflictError("Board layout places one slot at two positions")
