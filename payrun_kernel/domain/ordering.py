"""
Ordering -- Pure backlog ranking rules.

Responsibility:
    Computes priority ranks for the backlog.  The service layer loads the
    pending items in their current order, asks this module for the new
    order, and writes the resulting ranks back.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - After ``contiguous_ranks()``, ranks are exactly 0..N-1 with no gaps or
      duplicates.  Auto-fill consumes strictly by rank, so a gap or tie would
      make fill order depend on tie-breaking instead of operator intent.
    - ``move_item()`` keeps the relative order of every other item.
"""

from typing import Hashable, Iterable, Sequence, TypeVar

from payrun_kernel.exceptions import InvalidPositionError

T = TypeVar("T", bound=Hashable)


def move_item(items: Sequence[T], item: T, new_index: int) -> list[T]:
    """
    Move ``item`` to ``new_index``; everything else keeps its relative order.

    Args:
        items: Current order.  Must contain ``item`` exactly once.
        item: The element to move.
        new_index: Target index in the resulting list, 0..len(items)-1.

    Returns:
        A new list in the resulting order.

    Raises:
        ValueError: If ``item`` is not in ``items``.
        InvalidPositionError: If ``new_index`` is out of range.
    """
    if not 0 <= new_index < len(items):
        raise InvalidPositionError(new_index, len(items), "backlog")
    reordered = list(items)
    reordered.remove(item)
    reordered.insert(new_index, item)
    return reordered


def contiguous_ranks(items: Sequence[T]) -> dict[T, int]:
    """Map each item to its index: ranks 0..N-1 in the given order."""
    return {item: rank for rank, item in enumerate(items)}


def next_priority(existing: Iterable[int | None]) -> int:
    """Rank for a new item at the back of the backlog: max + 1, or 0 if empty."""
    ranks = [rank for rank in existing if rank is not None]
    if not ranks:
        return 0
    return max(ranks) + 1
