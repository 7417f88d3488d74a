"""ORM models for inventory action types and lot adjustment types."""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base


class InventoryActionType(Base):
    """
    Classification of a state-changing inventory action.

    ``category`` groups actions for reporting (adjustment, receipt, outbound,
    return).
    """

    __tablename__ = "inventory_action_types"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<InventoryActionType {self.name}>"


class LotAdjustmentType(Base):
    """Reason code for a lot adjustment (damaged, lost, recalled, ...)."""

    __tablename__ = "lot_adjustment_types"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    inventory_action_type_id: Mapped[UUID] = mapped_column(
        ForeignKey("inventory_action_types.id"),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<LotAdjustmentType {self.name}>"
