"""
Module: inventory_kernel.models.warehouse_inventory
Responsibility: ORM persistence for the two lockable stock granularities
    below the global item: the per-(warehouse, item) aggregate and the
    per-(warehouse, item, lot_number) lot.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - available_quantity >= 0 and reserved_quantity >= 0 on the aggregate.
    - quantity >= 0 and reserved_quantity >= 0 on the lot.
    - One aggregate per (warehouse_id, inventory_id); one lot per
      (warehouse_id, inventory_id, lot_number).
    - Both rows are written only by the adjustment engine and the insert
      path, always after SELECT ... FOR UPDATE in the order
      lot -> warehouse aggregate -> global item.

Failure modes:
    - IntegrityError if a CHECK constraint is violated.  Services raise
      InvariantViolationError before reaching the database.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase


class WarehouseInventory(TrackedBase):
    """
    Stock aggregate for one item in one warehouse.

    Contract:
        Created on first lot insertion for the pair.  available_quantity
        moves by exactly the lot delta on every adjustment; reserved_quantity
        is untouched by lot adjustments.  status_id is derived from the sums
        over all lots of the pair.
    """

    __tablename__ = "warehouse_inventory"

    __table_args__ = (
        UniqueConstraint(
            "warehouse_id", "inventory_id", name="uq_warehouse_inventory_pair"
        ),
        CheckConstraint(
            "available_quantity >= 0",
            name="chk_warehouse_inventory_available_non_negative",
        ),
        CheckConstraint(
            "reserved_quantity >= 0",
            name="chk_warehouse_inventory_reserved_non_negative",
        ),
        # Query: global cascade sums over all warehouses of an item
        Index("idx_warehouse_inventory_item", "inventory_id"),
    )

    warehouse_id: Mapped[UUID] = mapped_column(
        ForeignKey("warehouses.id"),
        nullable=False,
    )

    inventory_id: Mapped[UUID] = mapped_column(
        ForeignKey("inventory_items.id"),
        nullable=False,
    )

    reserved_quantity: Mapped[int] = mapped_column(nullable=False, default=0)
    available_quantity: Mapped[int] = mapped_column(nullable=False, default=0)

    fee: Mapped[Decimal | None] = mapped_column(nullable=True)

    status_id: Mapped[UUID] = mapped_column(
        ForeignKey("statuses.id"),
        nullable=False,
    )

    last_update: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return (
            f"<WarehouseInventory {self.warehouse_id}/{self.inventory_id} "
            f"available={self.available_quantity}>"
        )


class WarehouseInventoryLot(TrackedBase):
    """
    One physically distinct receipt of stock.

    Contract:
        The finest-grained unit of truth and the row locked first during an
        adjustment.  Logically retired (shipped / expired / sold_out) rather
        than deleted.

    Non-goals:
        - Reservation management.  reserved_quantity is carried and read by
          the status cascade and the allocation selector, never changed by
          lot adjustments.
    """

    __tablename__ = "warehouse_inventory_lots"

    __table_args__ = (
        UniqueConstraint(
            "warehouse_id",
            "inventory_id",
            "lot_number",
            name="uq_warehouse_inventory_lot",
        ),
        CheckConstraint("quantity >= 0", name="chk_lot_quantity_non_negative"),
        CheckConstraint(
            "reserved_quantity >= 0", name="chk_lot_reserved_non_negative"
        ),
        # Query: warehouse cascade sums and allocation candidates
        Index("idx_lot_pair", "warehouse_id", "inventory_id"),
        # Query: FEFO ordering
        Index("idx_lot_expiry", "inventory_id", "expiry_date"),
        # Query: FIFO ordering
        Index("idx_lot_inbound", "inventory_id", "inbound_date"),
    )

    warehouse_id: Mapped[UUID] = mapped_column(
        ForeignKey("warehouses.id"),
        nullable=False,
    )

    inventory_id: Mapped[UUID] = mapped_column(
        ForeignKey("inventory_items.id"),
        nullable=False,
    )

    lot_number: Mapped[str] = mapped_column(String(100), nullable=False)

    quantity: Mapped[int] = mapped_column(nullable=False, default=0)
    reserved_quantity: Mapped[int] = mapped_column(nullable=False, default=0)

    status_id: Mapped[UUID] = mapped_column(
        ForeignKey("statuses.id"),
        nullable=False,
    )

    manufacture_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    inbound_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    outbound_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<WarehouseInventoryLot {self.lot_number} qty={self.quantity}>"
