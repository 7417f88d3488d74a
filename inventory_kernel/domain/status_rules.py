"""
Status rules -- pure status gate and status derivation.

Responsibility:
    Decides whether a lot may be adjusted in its current status, and derives
    the status of a lot, a warehouse aggregate and a global item from
    quantities.  No I/O: callers pass names and sums, and persist the result.

Invariants enforced:
    - Terminal lot statuses (shipped, expired, sold_out) admit no adjustment.
    - An out_of_stock lot admits no negative adjustment.
    - Aggregate status is out_of_stock iff both quantity and reserved sums
      are zero; otherwise in_stock.
"""

from inventory_kernel.domain.values import LotStatus
from inventory_kernel.exceptions import DepletedLotError, TerminalLotStatusError

TERMINAL_LOT_STATUSES: frozenset[str] = frozenset(
    {LotStatus.SHIPPED.value, LotStatus.EXPIRED.value, LotStatus.SOLD_OUT.value}
)


def is_terminal(status_name: str) -> bool:
    return status_name in TERMINAL_LOT_STATUSES


def check_lot_adjustable(
    lot_id: str,
    lot_number: str,
    status_name: str,
    delta: int,
) -> None:
    """
    Raise if a lot in ``status_name`` may not take ``delta``.

    Raises:
        TerminalLotStatusError: status is shipped, expired or sold_out.
        DepletedLotError: status is out_of_stock and delta < 0.
    """
    if status_name in TERMINAL_LOT_STATUSES:
        raise TerminalLotStatusError(lot_id, lot_number, status_name)
    if status_name == LotStatus.OUT_OF_STOCK.value and delta < 0:
        raise DepletedLotError(lot_id, lot_number, delta)


def derive_lot_status(
    current_status: str,
    new_quantity: int,
    reserved_quantity: int,
) -> str:
    """
    Status of a lot after an adjustment.

    Effective stock is ``new_quantity + reserved_quantity``.  Zero gives
    out_of_stock; positive stock moves any non-in_stock status to in_stock;
    otherwise the current status is kept.
    """
    effective = new_quantity + reserved_quantity
    if effective == 0:
        return LotStatus.OUT_OF_STOCK.value
    if current_status != LotStatus.IN_STOCK.value:
        return LotStatus.IN_STOCK.value
    return current_status


def derive_aggregate_status(quantity_sum: int, reserved_sum: int) -> str:
    """Status of a warehouse aggregate or global item from its sums."""
    if quantity_sum == 0 and reserved_sum == 0:
        return LotStatus.OUT_OF_STOCK.value
    return LotStatus.IN_STOCK.value
