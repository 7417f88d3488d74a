"""
Values -- enumerations shared by the inventory kernel.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Names here match the ``name`` column
    of the corresponding reference-data rows.
"""

from enum import Enum


class LotStatus(str, Enum):
    """Stock status names (``warehouse_lot_status`` domain)."""

    IN_STOCK = "in_stock"
    OUT_OF_STOCK = "out_of_stock"
    EXPIRED = "expired"
    SHIPPED = "shipped"
    SOLD_OUT = "sold_out"


class LifecycleStatus(str, Enum):
    """Lifecycle status names (generic ``status`` domain)."""

    ACTIVE = "active"
    INACTIVE = "inactive"


class AllocationStrategy(str, Enum):
    """Lot ordering used when selecting stock to deplete."""

    FIFO = "fifo"
    FEFO = "fefo"

    @classmethod
    def parse(cls, value: "AllocationStrategy | str") -> "AllocationStrategy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown allocation strategy {value!r}; expected one of "
                f"{[s.value for s in cls]}"
            ) from None


class MissingAdjustmentTypePolicy(str, Enum):
    """What the adjustment engine does with an unresolvable adjustment type."""

    SKIP = "skip"
    FAIL = "fail"


class ActionTypeName(str, Enum):
    """Inventory action types the kernel itself records."""

    MANUAL_ADJUSTMENT = "manual_adjustment"
    MANUAL_STOCK_INSERT = "manual_stock_insert"
    MANUAL_STOCK_INSERT_UPDATE = "manual_stock_insert_update"


class SourceType(str, Enum):
    """Origin recorded on history rows."""

    LOT_ADJUSTMENT = "lot_adjustment"
    MANUAL_STOCK_INSERT = "manual_stock_insert"
