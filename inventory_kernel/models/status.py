"""
Module: inventory_kernel.models.status
Responsibility: ORM persistence for status reference data.  Statuses are
    grouped by domain: ``warehouse_lot_status`` holds stock states
    (in_stock, out_of_stock, expired, shipped, sold_out) used on lots,
    warehouse aggregates and global items; the generic ``status`` domain
    holds lifecycle states (active, inactive) of items and warehouses.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - (domain, name) is unique; stock rows reference statuses by id only.
"""

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base

STOCK_STATUS_DOMAIN = "warehouse_lot_status"
LIFECYCLE_STATUS_DOMAIN = "status"


class Status(Base):
    """A named status within a domain."""

    __tablename__ = "statuses"

    __table_args__ = (
        UniqueConstraint("domain", "name", name="uq_status_domain_name"),
        Index("idx_status_domain", "domain"),
    )

    domain: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Status {self.domain}:{self.name}>"
