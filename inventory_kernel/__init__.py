"""
Inventory Kernel

Warehouse inventory lot adjustment and consistency engine:
- Stock tracked at three granularities (lot, warehouse aggregate, global item)
- Batch-atomic adjustments under pessimistic row locks
- Non-negativity and terminal-status invariants
- Derived status cascaded lot -> warehouse -> global item
- Activity log plus checksum-verified history log
- FIFO / FEFO lot selection for allocation
"""

__version__ = "0.1.0"
