"""
InventoryItemStore -- global per-item totals and status.

The item row is the last lock taken in a stock mutation
(lot -> warehouse aggregate -> global item), so concurrent batches touching
the same item in different warehouses serialize on it.
"""

from uuid import UUID

from sqlalchemy import select

from inventory_kernel.exceptions import (
    InventoryItemNotFoundError,
    InvariantViolationError,
)
from inventory_kernel.models.inventory_item import InventoryItem
from inventory_kernel.services.base import BaseService


class InventoryItemStore(BaseService[InventoryItem]):
    """Lock-aware accessor for InventoryItem rows."""

    def get(self, inventory_id: UUID, for_update: bool = False) -> InventoryItem:
        """
        Raises:
            InventoryItemNotFoundError: No item with this id.
        """
        stmt = select(InventoryItem).where(InventoryItem.id == inventory_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        item = self.session.execute(stmt).scalar_one_or_none()
        if item is None:
            raise InventoryItemNotFoundError(str(inventory_id))
        return item

    def find_by_reference(
        self,
        product_ref: str | None = None,
        identifier: str | None = None,
    ) -> InventoryItem | None:
        if product_ref is not None:
            clause = InventoryItem.product_ref == product_ref
        elif identifier is not None:
            clause = InventoryItem.identifier == identifier
        else:
            raise ValueError("find_by_reference needs product_ref or identifier")
        return self.session.execute(select(InventoryItem).where(clause)).scalar_one_or_none()

    def apply_totals(
        self,
        item: InventoryItem,
        available_total: int,
        reserved_total: int,
        status_id: UUID | None = None,
        actor_id: UUID | None = None,
    ) -> InventoryItem:
        """
        Overwrite the item's totals with freshly summed warehouse values.

        Raises:
            InvariantViolationError: a total is negative (warehouse rows are
                corrupt; the batch must not commit on top of them).
        """
        if available_total < 0 or reserved_total < 0:
            raise InvariantViolationError(
                f"Negative totals for item {item.id}: "
                f"available={available_total}, reserved={reserved_total}"
            )
        item.total_available_quantity = available_total
        item.total_reserved_quantity = reserved_total
        if status_id is not None:
            item.status_id = status_id
        if actor_id is not None:
            item.updated_by_id = actor_id
        self.session.flush()
        return item
