"""
WarehouseInventoryStore -- per-(warehouse, item) aggregate state.

Invariants enforced:
    - available_quantity >= 0 and reserved_quantity >= 0 after every
      apply_delta; violations raise rather than clamp.
    - Locked after the lot and before the global item.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select

from inventory_kernel.exceptions import (
    NegativeAvailableQuantityError,
    NegativeReservedQuantityError,
    WarehouseInventoryNotFoundError,
)
from inventory_kernel.models.warehouse_inventory import WarehouseInventory
from inventory_kernel.services.base import BaseService


class WarehouseInventoryStore(BaseService[WarehouseInventory]):
    """Lock-aware accessor for WarehouseInventory rows."""

    def get(
        self,
        warehouse_id: UUID,
        inventory_id: UUID,
        for_update: bool = False,
    ) -> WarehouseInventory:
        """
        Load the aggregate for a (warehouse, item) pair.

        Raises:
            WarehouseInventoryNotFoundError: No aggregate for the pair.
        """
        stmt = select(WarehouseInventory).where(
            WarehouseInventory.warehouse_id == warehouse_id,
            WarehouseInventory.inventory_id == inventory_id,
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        row = self.session.execute(stmt).scalar_one_or_none()
        if row is None:
            raise WarehouseInventoryNotFoundError(str(warehouse_id), str(inventory_id))
        return row

    def check_available_delta(self, row: WarehouseInventory, available_delta: int) -> int:
        """
        Return the available quantity after ``available_delta``.

        Raises:
            NegativeAvailableQuantityError: result would be negative.
        """
        new_available = row.available_quantity + available_delta
        if new_available < 0:
            raise NegativeAvailableQuantityError(
                str(row.warehouse_id),
                str(row.inventory_id),
                row.available_quantity,
                available_delta,
            )
        return new_available

    def apply_delta(
        self,
        row: WarehouseInventory,
        available_delta: int,
        reserved_delta: int = 0,
        status_id: UUID | None = None,
        actor_id: UUID | None = None,
        now: datetime | None = None,
    ) -> WarehouseInventory:
        """
        Apply deltas (and optionally a new status) to a locked aggregate.

        Raises:
            NegativeAvailableQuantityError / NegativeReservedQuantityError.
        """
        new_available = self.check_available_delta(row, available_delta)
        new_reserved = row.reserved_quantity + reserved_delta
        if new_reserved < 0:
            raise NegativeReservedQuantityError(
                "warehouse_inventory", str(row.id), row.reserved_quantity, reserved_delta
            )

        row.available_quantity = new_available
        row.reserved_quantity = new_reserved
        if status_id is not None:
            row.status_id = status_id
        if actor_id is not None:
            row.updated_by_id = actor_id
        if now is not None:
            row.last_update = now
        self.session.flush()
        return row

    def sum_for_item(self, inventory_id: UUID) -> tuple[int, int]:
        """Sum of (available_quantity, reserved_quantity) across all warehouses of an item."""
        row = self.session.execute(
            select(
                func.coalesce(func.sum(WarehouseInventory.available_quantity), 0),
                func.coalesce(func.sum(WarehouseInventory.reserved_quantity), 0),
            ).where(WarehouseInventory.inventory_id == inventory_id)
        ).one()
        return int(row[0]), int(row[1])
