"""
Module: inventory_kernel.models.inventory_item
Responsibility: ORM persistence for global inventory items -- one row per
    stocked product or non-product identifier, aggregating stock across
    every warehouse.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Exactly one of product_ref / identifier is set (CHECK constraint).
    - total_available_quantity / total_reserved_quantity and status_id are
      derived from the warehouse aggregates beneath the item and written
      only by the status cascade.

Failure modes:
    - IntegrityError on a duplicate product_ref or identifier.
    - IntegrityError if both or neither of product_ref / identifier is set.
"""

from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase


class InventoryKind(str, Enum):
    """What a global inventory item refers to."""

    PRODUCT = "product"
    OTHER = "other"


class InventoryItem(TrackedBase):
    """
    Global stock record for one product or identifier.

    Contract:
        Created on first stocking (see LotInsertService).  Mutated whenever
        any warehouse aggregate for the item changes.  Never physically
        deleted; retirement is a lifecycle status change.
    """

    __tablename__ = "inventory_items"

    __table_args__ = (
        # INVARIANT: exactly one of product_ref / identifier
        CheckConstraint(
            "(product_ref IS NULL) <> (identifier IS NULL)",
            name="chk_inventory_item_single_reference",
        ),
        CheckConstraint(
            "total_available_quantity >= 0",
            name="chk_inventory_item_available_non_negative",
        ),
        CheckConstraint(
            "total_reserved_quantity >= 0",
            name="chk_inventory_item_reserved_non_negative",
        ),
        Index("idx_inventory_item_status", "status_id"),
    )

    kind: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=InventoryKind.PRODUCT.value,
    )

    product_ref: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
        unique=True,
    )

    identifier: Mapped[str | None] = mapped_column(
        String(200),
        nullable=True,
        unique=True,
    )

    # Derived stock status (warehouse_lot_status domain)
    status_id: Mapped[UUID] = mapped_column(
        ForeignKey("statuses.id"),
        nullable=False,
    )

    # Lifecycle (generic status domain)
    lifecycle_status_id: Mapped[UUID] = mapped_column(
        ForeignKey("statuses.id"),
        nullable=False,
    )

    total_available_quantity: Mapped[int] = mapped_column(nullable=False, default=0)
    total_reserved_quantity: Mapped[int] = mapped_column(nullable=False, default=0)

    @property
    def reference(self) -> str:
        return self.product_ref if self.product_ref is not None else self.identifier

    def __repr__(self) -> str:
        return f"<InventoryItem {self.kind}:{self.reference}>"
