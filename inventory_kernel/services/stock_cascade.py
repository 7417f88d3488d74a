"""
StockCascade -- apply one lot delta through lot, warehouse and global item.

Responsibility:
    The shared mutation core of the adjustment engine and the insert path.
    Given a locked lot and a quantity delta it validates every invariant,
    then writes the lot, the warehouse aggregate and the global item, each
    with its freshly derived status.

Architecture position:
    Kernel > Services.  The single writer of stock rows; LotAdjustmentEngine
    and LotInsertService are its only callers.

Invariants enforced:
    - Lock order: lot (taken by the caller) -> warehouse aggregate ->
      global item.
    - Validation order: negative lot quantity, negative warehouse
      available quantity, then the lot status gate.  Every check runs
      before the first write.
    - Lot status: out_of_stock when quantity + reserved == 0; in_stock when
      positive and previously anything else; otherwise unchanged.
    - Warehouse status: out_of_stock iff the lot sums of quantity and
      reserved for the pair are both zero.
    - Item status: out_of_stock iff the warehouse sums of available and
      reserved for the item are both zero.

Failure modes:
    - NegativeStockError, NegativeAvailableQuantityError.
    - TerminalLotStatusError, DepletedLotError.
    - WarehouseInventoryNotFoundError, InventoryItemNotFoundError.
    - StatusNotFoundError if status reference data is incomplete.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from inventory_kernel.domain.dtos import CascadeResult
from inventory_kernel.domain.status_rules import (
    check_lot_adjustable,
    derive_aggregate_status,
    derive_lot_status,
)
from inventory_kernel.exceptions import NegativeStockError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.warehouse_inventory import WarehouseInventoryLot
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.inventory_item_store import InventoryItemStore
from inventory_kernel.services.lot_store import LotStore
from inventory_kernel.services.status_resolver import StatusResolver
from inventory_kernel.services.warehouse_inventory_store import (
    WarehouseInventoryStore,
)

logger = get_logger("services.stock_cascade")


class StockCascade(BaseService[WarehouseInventoryLot]):
    """
    Applies a quantity delta to a locked lot and cascades totals and status upward.

    Contract:
        The caller has already locked ``lot`` FOR UPDATE inside the current
        transaction.  apply() flushes; it never commits.

    Non-goals:
        - Audit rows.  The caller queues activity/history/adjustment rows
          from the returned CascadeResult.
    """

    def __init__(
        self,
        session: Session,
        status_resolver: StatusResolver,
        lot_store: LotStore | None = None,
        warehouse_store: WarehouseInventoryStore | None = None,
        item_store: InventoryItemStore | None = None,
    ):
        super().__init__(session)
        self._statuses = status_resolver
        self._lots = lot_store or LotStore(session)
        self._warehouses = warehouse_store or WarehouseInventoryStore(session)
        self._items = item_store or InventoryItemStore(session)

    def apply(
        self,
        lot: WarehouseInventoryLot,
        delta: int,
        actor_id: UUID,
        now: datetime,
    ) -> CascadeResult:
        previous_quantity = lot.quantity
        new_quantity = previous_quantity + delta
        if new_quantity < 0:
            raise NegativeStockError(str(lot.id), lot.lot_number, previous_quantity, delta)

        warehouse_row = self._warehouses.get(
            lot.warehouse_id, lot.inventory_id, for_update=True
        )
        self._warehouses.check_available_delta(warehouse_row, delta)

        item = self._items.get(lot.inventory_id, for_update=True)

        current_status = self._statuses.resolve(status_id=lot.status_id)
        check_lot_adjustable(str(lot.id), lot.lot_number, current_status.name, delta)

        # All checks passed; writes start here.
        lot_status = self._statuses.resolve(
            name=derive_lot_status(current_status.name, new_quantity, lot.reserved_quantity)
        )
        self._lots.apply_delta(lot, delta, status_id=lot_status.id, actor_id=actor_id)

        quantity_sum, reserved_sum = self._lots.sum_for_pair(
            lot.warehouse_id, lot.inventory_id
        )
        warehouse_status = self._statuses.resolve(
            name=derive_aggregate_status(quantity_sum, reserved_sum)
        )
        self._warehouses.apply_delta(
            warehouse_row,
            delta,
            status_id=warehouse_status.id,
            actor_id=actor_id,
            now=now,
        )

        available_total, reserved_total = self._warehouses.sum_for_item(lot.inventory_id)
        item_status = self._statuses.resolve(
            name=derive_aggregate_status(available_total, reserved_total)
        )
        self._items.apply_totals(
            item,
            available_total,
            reserved_total,
            status_id=item_status.id,
            actor_id=actor_id,
        )

        if lot_status.id != current_status.id:
            logger.info(
                "lot_status_changed",
                extra={
                    "lot_id": str(lot.id),
                    "from_status": current_status.name,
                    "to_status": lot_status.name,
                },
            )

        return CascadeResult(
            previous_quantity=previous_quantity,
            new_quantity=new_quantity,
            lot_status=lot_status,
            warehouse_status=warehouse_status,
            item_status=item_status,
        )
