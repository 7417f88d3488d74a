"""
ReferenceDataLoader -- idempotent seeding of statuses and type catalogs.

Every table is seeded with one INSERT ... ON CONFLICT DO NOTHING, so running
the loader again (or concurrently) never duplicates or overwrites rows.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from uuid import uuid4

from sqlalchemy import select

from inventory_kernel.db.bulk import ConflictStrategy, bulk_insert
from inventory_kernel.exceptions import ActionTypeNotFoundError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.reference import InventoryActionType, LotAdjustmentType
from inventory_kernel.models.status import Status
from inventory_kernel.services.base import BaseService

logger = get_logger("services.reference_data")


@dataclass(frozen=True)
class ActionTypeSeed:
    name: str
    category: str


@dataclass(frozen=True)
class AdjustmentTypeSeed:
    name: str
    action_type: str
    is_active: bool = True


class ReferenceDataLoader(BaseService[Status]):
    """Seeds the reference tables the kernel resolves by name."""

    def seed(
        self,
        statuses: Mapping[str, Iterable[str]],
        action_types: Iterable[ActionTypeSeed],
        adjustment_types: Iterable[AdjustmentTypeSeed],
    ) -> dict[str, int]:
        """
        Insert missing reference rows; returns the number created per table.

        Raises:
            ActionTypeNotFoundError: an adjustment type names an action type
                that is neither seeded nor already present.
        """
        status_rows = [
            {"id": uuid4(), "domain": domain, "name": name, "is_active": True}
            for domain, names in statuses.items()
            for name in names
        ]
        created_statuses = bulk_insert(
            self.session,
            Status.__table__,
            status_rows,
            conflict_columns=("domain", "name"),
            strategy=ConflictStrategy.DO_NOTHING,
        )

        action_rows = [
            {
                "id": uuid4(),
                "name": seed.name,
                "category": seed.category,
                "is_active": True,
            }
            for seed in action_types
        ]
        created_actions = bulk_insert(
            self.session,
            InventoryActionType.__table__,
            action_rows,
            conflict_columns=("name",),
            strategy=ConflictStrategy.DO_NOTHING,
        )

        action_ids = dict(
            self.session.execute(
                select(InventoryActionType.name, InventoryActionType.id)
            ).all()
        )
        adjustment_rows = []
        for seed in adjustment_types:
            action_id = action_ids.get(seed.action_type)
            if action_id is None:
                raise ActionTypeNotFoundError(seed.action_type)
            adjustment_rows.append(
                {
                    "id": uuid4(),
                    "name": seed.name,
                    "is_active": seed.is_active,
                    "inventory_action_type_id": action_id,
                }
            )
        created_adjustments = bulk_insert(
            self.session,
            LotAdjustmentType.__table__,
            adjustment_rows,
            conflict_columns=("name",),
            strategy=ConflictStrategy.DO_NOTHING,
        )

        counts = {
            Status.__tablename__: len(created_statuses),
            InventoryActionType.__tablename__: len(created_actions),
            LotAdjustmentType.__tablename__: len(created_adjustments),
        }
        logger.info("reference_data_seeded", extra={"created_counts": counts})
        return counts
