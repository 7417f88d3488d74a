"""
LotStore -- per-(warehouse, item, lot_number) stock state.

Responsibility:
    Reads and locks lot rows and applies quantity deltas to them.  The lot
    is the first row locked in every stock mutation.

Architecture position:
    Kernel > Services.  Called only by StockCascade (adjustment engine and
    insert path); no other component writes lot rows.

Invariants enforced:
    - quantity >= 0 and reserved_quantity >= 0 after every apply_delta.
      A delta that would break this raises instead of clamping, leaving the
      caller's transaction to roll back.
    - for_update=True issues SELECT ... FOR UPDATE with populate_existing,
      so the returned row reflects the committed state at lock time.

Failure modes:
    - LotNotFoundError from get().
    - NegativeStockError / NegativeReservedQuantityError from apply_delta().
"""

from datetime import date
from uuid import UUID

from sqlalchemy import func, select

from inventory_kernel.exceptions import (
    LotNotFoundError,
    NegativeReservedQuantityError,
    NegativeStockError,
)
from inventory_kernel.models.warehouse_inventory import WarehouseInventoryLot
from inventory_kernel.services.base import BaseService


class LotStore(BaseService[WarehouseInventoryLot]):
    """Lock-aware accessor for WarehouseInventoryLot rows."""

    def get(self, lot_id: UUID, for_update: bool = False) -> WarehouseInventoryLot:
        """
        Load a lot by id.

        Raises:
            LotNotFoundError: No lot with this id.
        """
        stmt = select(WarehouseInventoryLot).where(WarehouseInventoryLot.id == lot_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        lot = self.session.execute(stmt).scalar_one_or_none()
        if lot is None:
            raise LotNotFoundError(str(lot_id))
        return lot

    def find_by_key(
        self,
        warehouse_id: UUID,
        inventory_id: UUID,
        lot_number: str,
        for_update: bool = False,
    ) -> WarehouseInventoryLot | None:
        stmt = select(WarehouseInventoryLot).where(
            WarehouseInventoryLot.warehouse_id == warehouse_id,
            WarehouseInventoryLot.inventory_id == inventory_id,
            WarehouseInventoryLot.lot_number == lot_number,
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self.session.execute(stmt).scalar_one_or_none()

    def apply_delta(
        self,
        lot: WarehouseInventoryLot,
        quantity_delta: int,
        reserved_delta: int = 0,
        status_id: UUID | None = None,
        actor_id: UUID | None = None,
        outbound_date: date | None = None,
    ) -> WarehouseInventoryLot:
        """
        Apply quantity/reserved deltas (and optionally a new status) to a locked lot.

        Raises:
            NegativeStockError: quantity would drop below zero.
            NegativeReservedQuantityError: reserved would drop below zero.
        """
        new_quantity = lot.quantity + quantity_delta
        if new_quantity < 0:
            raise NegativeStockError(
                str(lot.id), lot.lot_number, lot.quantity, quantity_delta
            )
        new_reserved = lot.reserved_quantity + reserved_delta
        if new_reserved < 0:
            raise NegativeReservedQuantityError(
                "lot", str(lot.id), lot.reserved_quantity, reserved_delta
            )

        lot.quantity = new_quantity
        lot.reserved_quantity = new_reserved
        if status_id is not None:
            lot.status_id = status_id
        if outbound_date is not None:
            lot.outbound_date = outbound_date
        if actor_id is not None:
            lot.updated_by_id = actor_id
        self.session.flush()
        return lot

    def sum_for_pair(self, warehouse_id: UUID, inventory_id: UUID) -> tuple[int, int]:
        """Sum of (quantity, reserved_quantity) across all lots of a (warehouse, item) pair."""
        row = self.session.execute(
            select(
                func.coalesce(func.sum(WarehouseInventoryLot.quantity), 0),
                func.coalesce(func.sum(WarehouseInventoryLot.reserved_quantity), 0),
            ).where(
                WarehouseInventoryLot.warehouse_id == warehouse_id,
                WarehouseInventoryLot.inventory_id == inventory_id,
            )
        ).one()
        return int(row[0]), int(row[1])
