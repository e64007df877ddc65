"""Read-only selectors for the payrun kernel."""

from payrun_kernel.selectors.base import BaseSelector
from payrun_kernel.selectors.history_selector import HistorySelector

__all__ = [
    "BaseSelector",
    "HistorySelector",
]
