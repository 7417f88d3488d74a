"""Read-only selectors."""

from inventory_kernel.selectors.allocation_selector import AllocationSelector
from inventory_kernel.selectors.history_selector import HistorySelector

__all__ = ["AllocationSelector", "HistorySelector"]
