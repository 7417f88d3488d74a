"""
Module: inventory_kernel.selectors.allocation_selector
Responsibility: Picks the lot to deplete for a demand (item, warehouse,
    quantity) using FIFO or FEFO ordering.
Architecture position: Kernel > Selectors.  Read-only.

Invariants enforced:
    - Candidates have quantity - reserved_quantity >= quantity needed, lot
      status in_stock, and an active item and warehouse.
    - FIFO orders by inbound_date, FEFO by expiry_date, ascending; lots
      with no date sort last; ties break on lot_number then id.
    - "No candidate" is an expected outcome and returns None.

Failure modes:
    - ValidationError for a non-positive or non-integer quantity.
    - ValueError for an unknown strategy name.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import aliased

from inventory_kernel.domain.dtos import LotCandidate
from inventory_kernel.domain.values import AllocationStrategy, LifecycleStatus, LotStatus
from inventory_kernel.exceptions import ValidationError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.inventory_item import InventoryItem
from inventory_kernel.models.status import (
    LIFECYCLE_STATUS_DOMAIN,
    STOCK_STATUS_DOMAIN,
    Status,
)
from inventory_kernel.models.warehouse import Warehouse
from inventory_kernel.models.warehouse_inventory import WarehouseInventoryLot
from inventory_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.allocation")


class AllocationSelector(BaseSelector[WarehouseInventoryLot]):
    """
    FIFO / FEFO lot selection.

    Non-goals:
        - Reserving the selected quantity.  The caller decides what to do
          with the candidate (and backorders when there is none).
    """

    def select_lot(
        self,
        inventory_id: UUID,
        warehouse_id: UUID,
        quantity: int,
        strategy: AllocationStrategy | str = AllocationStrategy.FEFO,
        exclude_expired_on: date | None = None,
    ) -> LotCandidate | None:
        """
        Return the first qualifying lot in strategy order, or None.

        Args:
            inventory_id: Global item to allocate.
            warehouse_id: Warehouse to allocate from.
            quantity: Unreserved quantity the lot must cover.
            strategy: FIFO (inbound_date) or FEFO (expiry_date).
            exclude_expired_on: If given, lots whose expiry_date is before
                this date are not candidates.
        """
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError(f"quantity must be a positive integer, got {quantity!r}")
        strategy = AllocationStrategy.parse(strategy)

        lot = WarehouseInventoryLot
        lot_status = aliased(Status)
        item_lifecycle = aliased(Status)
        warehouse_lifecycle = aliased(Status)
        sort_column = lot.inbound_date if strategy is AllocationStrategy.FIFO else lot.expiry_date

        stmt = (
            select(lot)
            .join(lot_status, lot.status_id == lot_status.id)
            .join(InventoryItem, InventoryItem.id == lot.inventory_id)
            .join(item_lifecycle, InventoryItem.lifecycle_status_id == item_lifecycle.id)
            .join(Warehouse, Warehouse.id == lot.warehouse_id)
            .join(warehouse_lifecycle, Warehouse.lifecycle_status_id == warehouse_lifecycle.id)
            .where(
                lot.inventory_id == inventory_id,
                lot.warehouse_id == warehouse_id,
                (lot.quantity - lot.reserved_quantity) >= quantity,
                lot_status.domain == STOCK_STATUS_DOMAIN,
                lot_status.name == LotStatus.IN_STOCK.value,
                item_lifecycle.domain == LIFECYCLE_STATUS_DOMAIN,
                item_lifecycle.name == LifecycleStatus.ACTIVE.value,
                warehouse_lifecycle.domain == LIFECYCLE_STATUS_DOMAIN,
                warehouse_lifecycle.name == LifecycleStatus.ACTIVE.value,
            )
            .order_by(sort_column.asc().nulls_last(), lot.lot_number, lot.id)
            .limit(1)
        )
        if exclude_expired_on is not None:
            stmt = stmt.where(
                or_(lot.expiry_date.is_(None), lot.expiry_date >= exclude_expired_on)
            )

        row = self.session.execute(stmt).scalar_one_or_none()
        if row is None:
            logger.info(
                "allocation_no_candidate",
                extra={
                    "inventory_id": str(inventory_id),
                    "warehouse_id": str(warehouse_id),
                    "quantity": quantity,
                    "strategy": strategy.value,
                },
            )
            return None

        return LotCandidate(
            lot_id=row.id,
            warehouse_id=row.warehouse_id,
            inventory_id=row.inventory_id,
            lot_number=row.lot_number,
            quantity=row.quantity,
            reserved_quantity=row.reserved_quantity,
            expiry_date=row.expiry_date,
            inbound_date=row.inbound_date,
        )
