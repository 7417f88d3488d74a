"""
AuditTrailWriter -- queue audit rows during a batch, bulk-insert them at the end.

Responsibility:
    Collects WarehouseLotAdjustment, InventoryActivityLog and
    InventoryHistoryLog rows while a batch is processed and persists each
    collection with a single multi-row INSERT before the transaction commits.

Invariants enforced:
    - One round trip per table per flush(), never one per row.
    - Every history row carries checksum == compute_history_checksum(row);
      a fresh random checksum_salt keeps identical repeated adjustments
      distinguishable.
    - Inserts use ON CONFLICT (id) DO NOTHING, and every queued row must come
      back from RETURNING; a row swallowed by the conflict clause fails the
      flush.
    - Queues are cleared only after all three inserts succeed.

Failure modes:
    - AuditPersistenceError (chained to the database error) if an insert
      fails.  The caller's transaction then rolls back with the batch.

Audit relevance:
    These are the only writes to the audit tables.
"""

import secrets
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from inventory_kernel.db.bulk import ConflictStrategy, bulk_insert
from inventory_kernel.domain.values import LifecycleStatus
from inventory_kernel.exceptions import AuditPersistenceError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.audit import (
    InventoryActivityLog,
    InventoryHistoryLog,
    WarehouseLotAdjustment,
)
from inventory_kernel.models.status import LIFECYCLE_STATUS_DOMAIN
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.status_resolver import StatusResolver
from inventory_kernel.utils.hashing import compute_history_checksum

logger = get_logger("services.audit_trail_writer")


class AuditTrailWriter(BaseService[InventoryHistoryLog]):
    """Batch-scoped queue of audit rows."""

    def __init__(self, session: Session, status_resolver: StatusResolver):
        super().__init__(session)
        self._statuses = status_resolver
        self._adjustments: list[dict[str, Any]] = []
        self._activities: list[dict[str, Any]] = []
        self._history: list[dict[str, Any]] = []

    @property
    def pending_counts(self) -> dict[str, int]:
        return {
            WarehouseLotAdjustment.__tablename__: len(self._adjustments),
            InventoryActivityLog.__tablename__: len(self._activities),
            InventoryHistoryLog.__tablename__: len(self._history),
        }

    def queue_adjustment(
        self,
        *,
        warehouse_id: UUID,
        inventory_id: UUID,
        lot_id: UUID,
        adjustment_type_id: UUID,
        previous_quantity: int,
        adjusted_quantity: int,
        new_quantity: int,
        actor_id: UUID,
        timestamp: datetime,
        comments: str | None = None,
        order_id: UUID | None = None,
    ) -> None:
        self._adjustments.append(
            {
                "id": uuid4(),
                "warehouse_id": warehouse_id,
                "inventory_id": inventory_id,
                "lot_id": lot_id,
                "adjustment_type_id": adjustment_type_id,
                "order_id": order_id,
                "previous_quantity": previous_quantity,
                "adjusted_quantity": adjusted_quantity,
                "new_quantity": new_quantity,
                "adjusted_by": actor_id,
                "adjustment_date": timestamp,
                "comments": comments,
            }
        )

    def queue_activity(
        self,
        *,
        inventory_id: UUID,
        warehouse_id: UUID,
        lot_id: UUID,
        action_type_id: UUID,
        previous_quantity: int,
        quantity_change: int,
        new_quantity: int,
        status_id: UUID,
        actor_id: UUID,
        timestamp: datetime,
        adjustment_type_id: UUID | None = None,
        order_id: UUID | None = None,
        comments: str | None = None,
    ) -> None:
        self._activities.append(
            {
                "id": uuid4(),
                "inventory_id": inventory_id,
                "warehouse_id": warehouse_id,
                "lot_id": lot_id,
                "inventory_action_type_id": action_type_id,
                "adjustment_type_id": adjustment_type_id,
                "order_id": order_id,
                "previous_quantity": previous_quantity,
                "quantity_change": quantity_change,
                "new_quantity": new_quantity,
                "status_id": status_id,
                "performed_by": actor_id,
                "action_timestamp": timestamp,
                "comments": comments,
            }
        )

    def queue_history(
        self,
        *,
        inventory_id: UUID,
        warehouse_id: UUID,
        lot_id: UUID,
        action_type_id: UUID,
        previous_quantity: int,
        quantity_change: int,
        new_quantity: int,
        source_type: str,
        actor_id: UUID,
        timestamp: datetime,
        adjustment_type_id: UUID | None = None,
        order_id: UUID | None = None,
        comments: str | None = None,
    ) -> None:
        active = self._statuses.resolve(
            name=LifecycleStatus.ACTIVE.value, domain=LIFECYCLE_STATUS_DOMAIN
        )
        row = {
            "id": uuid4(),
            "inventory_id": inventory_id,
            "warehouse_id": warehouse_id,
            "lot_id": lot_id,
            "inventory_action_type_id": action_type_id,
            "adjustment_type_id": adjustment_type_id,
            "order_id": order_id,
            "previous_quantity": previous_quantity,
            "quantity_change": quantity_change,
            "new_quantity": new_quantity,
            "status_id": active.id,
            "source_type": source_type,
            "comments": comments,
            "recorded_by": actor_id,
            "recorded_at": timestamp,
            "checksum_salt": secrets.token_hex(16),
        }
        row["checksum"] = compute_history_checksum(row)
        self._history.append(row)

    def flush(self) -> dict[str, int]:
        """
        Bulk-insert every queued row; returns inserted row counts per table.

        Raises:
            AuditPersistenceError: An insert failed or persisted fewer rows
                than were queued.
        """
        counts: dict[str, int] = {}
        for model, rows in (
            (WarehouseLotAdjustment, self._adjustments),
            (InventoryActivityLog, self._activities),
            (InventoryHistoryLog, self._history),
        ):
            table = model.__table__
            if not rows:
                counts[table.name] = 0
                continue
            try:
                inserted = bulk_insert(
                    self.session,
                    table,
                    rows,
                    conflict_columns=("id",),
                    strategy=ConflictStrategy.DO_NOTHING,
                )
            except SQLAlchemyError as exc:
                logger.error(
                    "audit_bulk_insert_failed",
                    extra={"table": table.name, "row_count": len(rows)},
                    exc_info=True,
                )
                raise AuditPersistenceError(table.name, len(rows)) from exc
            if len(inserted) != len(rows):
                logger.error(
                    "audit_rows_dropped",
                    extra={
                        "table": table.name,
                        "row_count": len(rows),
                        "inserted_count": len(inserted),
                    },
                )
                raise AuditPersistenceError(table.name, len(rows))
            counts[table.name] = len(inserted)

        self._adjustments.clear()
        self._activities.clear()
        self._history.clear()
        logger.info("audit_rows_persisted", extra={"counts": counts})
        return counts
