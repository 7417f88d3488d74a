"""
Module: inventory_kernel.models.audit
Responsibility: ORM persistence for the three append-only audit collections
    produced by stock mutations:
      - WarehouseLotAdjustment: one row per applied audit-worthy adjustment.
      - InventoryActivityLog: operational log, one row per state change.
      - InventoryHistoryLog: long-retention ledger; every row carries a
        checksum over its own content for tamper detection.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Rows are inserted in bulk by AuditTrailWriter and never updated.
    - InventoryHistoryLog.checksum == compute_history_checksum(row fields);
      checksum_salt makes identical repeated adjustments hash differently.

Failure modes:
    - IntegrityError on a dangling foreign key (unknown lot, type or status).

Audit relevance:
    The history log is the integrity-bearing record of stock over time.
    HistorySelector.verify() recomputes every checksum for an item.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base


class WarehouseLotAdjustment(Base):
    """Audit record of one applied, audit-worthy lot adjustment."""

    __tablename__ = "warehouse_lot_adjustments"

    __table_args__ = (
        Index("idx_lot_adjustment_lot", "lot_id"),
        Index("idx_lot_adjustment_date", "adjustment_date"),
    )

    warehouse_id: Mapped[UUID] = mapped_column(ForeignKey("warehouses.id"), nullable=False)
    inventory_id: Mapped[UUID] = mapped_column(ForeignKey("inventory_items.id"), nullable=False)
    lot_id: Mapped[UUID] = mapped_column(
        ForeignKey("warehouse_inventory_lots.id"), nullable=False
    )
    adjustment_type_id: Mapped[UUID] = mapped_column(
        ForeignKey("lot_adjustment_types.id"), nullable=False
    )
    order_id: Mapped[UUID | None] = mapped_column(nullable=True)

    previous_quantity: Mapped[int] = mapped_column(nullable=False)
    adjusted_quantity: Mapped[int] = mapped_column(nullable=False)
    new_quantity: Mapped[int] = mapped_column(nullable=False)

    adjusted_by: Mapped[UUID] = mapped_column(nullable=False)
    adjustment_date: Mapped[datetime] = mapped_column(nullable=False)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)


class InventoryActivityLog(Base):
    """Operational record of a state-changing action (adjustment, insert)."""

    __tablename__ = "inventory_activity_log"

    __table_args__ = (
        Index("idx_activity_inventory", "inventory_id", "action_timestamp"),
        Index("idx_activity_lot", "lot_id"),
    )

    inventory_id: Mapped[UUID] = mapped_column(ForeignKey("inventory_items.id"), nullable=False)
    warehouse_id: Mapped[UUID] = mapped_column(ForeignKey("warehouses.id"), nullable=False)
    lot_id: Mapped[UUID] = mapped_column(
        ForeignKey("warehouse_inventory_lots.id"), nullable=False
    )
    inventory_action_type_id: Mapped[UUID] = mapped_column(
        ForeignKey("inventory_action_types.id"), nullable=False
    )
    adjustment_type_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("lot_adjustment_types.id"), nullable=True
    )
    order_id: Mapped[UUID | None] = mapped_column(nullable=True)

    previous_quantity: Mapped[int] = mapped_column(nullable=False)
    quantity_change: Mapped[int] = mapped_column(nullable=False)
    new_quantity: Mapped[int] = mapped_column(nullable=False)

    # Resulting lot stock status
    status_id: Mapped[UUID] = mapped_column(ForeignKey("statuses.id"), nullable=False)

    performed_by: Mapped[UUID] = mapped_column(nullable=False)
    action_timestamp: Mapped[datetime] = mapped_column(nullable=False)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)


class InventoryHistoryLog(Base):
    """
    Integrity-bearing ledger row.

    Contract:
        checksum is the SHA-256 of the canonical JSON of the row's
        checksummed fields (see utils.hashing.HISTORY_CHECKSUM_FIELDS).
        recorded_at is deliberately excluded; checksum_salt provides the
        per-row uniqueness token instead.
    """

    __tablename__ = "inventory_history"

    __table_args__ = (
        Index("idx_history_inventory", "inventory_id", "recorded_at"),
        Index("idx_history_checksum", "checksum"),
    )

    inventory_id: Mapped[UUID] = mapped_column(ForeignKey("inventory_items.id"), nullable=False)
    warehouse_id: Mapped[UUID] = mapped_column(ForeignKey("warehouses.id"), nullable=False)
    lot_id: Mapped[UUID] = mapped_column(
        ForeignKey("warehouse_inventory_lots.id"), nullable=False
    )
    inventory_action_type_id: Mapped[UUID] = mapped_column(
        ForeignKey("inventory_action_types.id"), nullable=False
    )
    adjustment_type_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("lot_adjustment_types.id"), nullable=True
    )
    order_id: Mapped[UUID | None] = mapped_column(nullable=True)

    previous_quantity: Mapped[int] = mapped_column(nullable=False)
    quantity_change: Mapped[int] = mapped_column(nullable=False)
    new_quantity: Mapped[int] = mapped_column(nullable=False)

    # Record lifecycle status (generic status domain)
    status_id: Mapped[UUID] = mapped_column(ForeignKey("statuses.id"), nullable=False)

    source_type: Mapped[str] = mapped_column(String(50), nullable=False)
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    recorded_by: Mapped[UUID] = mapped_column(nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(nullable=False)

    checksum: Mapped[str] = mapped_column(String(64), nullable=False)
    checksum_salt: Mapped[str] = mapped_column(String(64), nullable=False)
