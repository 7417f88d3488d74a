"""ORM model for warehouses (stock locations)."""

from uuid import UUID

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase


class Warehouse(TrackedBase):
    """
    A physical stock location.

    Only warehouses whose lifecycle status is ``active`` take part in
    allocation.  Warehouses are never deleted.
    """

    __tablename__ = "warehouses"

    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)

    lifecycle_status_id: Mapped[UUID] = mapped_column(
        ForeignKey("statuses.id"),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Warehouse {self.name}>"
