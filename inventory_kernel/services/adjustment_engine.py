"""
LotAdjustmentEngine -- batch-atomic lot quantity adjustments.

Responsibility:
    Applies a batch of adjustment records inside the caller's transaction:
    for each entry, lock the lot, validate, cascade the new quantity and
    status through warehouse aggregate and global item, and queue audit
    rows.  After the loop the audit rows are bulk-inserted.

Architecture position:
    Kernel > Services.  Orchestrates StatusResolver, AdjustmentTypeCatalog,
    LotStore, StockCascade and AuditTrailWriter.  Flush-only; the caller
    (LotInventoryService or ``session_scope``) commits or rolls back.

Invariants enforced:
    - Entries are applied strictly in caller order; an entry sees the
      in-transaction state left by earlier entries for the same key.
    - Any NotFound, InvariantViolation or InvalidStateTransition error
      aborts the batch: it propagates with ``entry_index`` set, and the
      caller rolls the whole transaction back.
    - An unresolvable adjustment type either skips the entry with a warning
      or fails the batch, per MissingAdjustmentTypePolicy.
    - Only idempotent lookups are retried; mutations never are.
    - Audit-worthy types produce a WarehouseLotAdjustment row; every applied
      entry produces an activity row and a checksummed history row.

Failure modes:
    - BatchSizeExceededError / InvalidRecordError / ValidationError before
      any lock is taken.
    - Everything StockCascade raises, tagged with ``entry_index``.
    - AuditPersistenceError from the final bulk insert.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from inventory_kernel.domain.adjustment_policy import AUDIT_WORTHY_ADJUSTMENT_TYPES
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import (
    ActionTypeRef,
    AdjustedLot,
    AdjustmentRequest,
    AdjustmentTypeRef,
)
from inventory_kernel.domain.values import (
    ActionTypeName,
    MissingAdjustmentTypePolicy,
    SourceType,
)
from inventory_kernel.exceptions import (
    AdjustmentTypeNotFoundError,
    BatchSizeExceededError,
    InvalidRecordError,
    InventoryKernelError,
    ValidationError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.models.warehouse_inventory import WarehouseInventoryLot
from inventory_kernel.services.adjustment_type_catalog import AdjustmentTypeCatalog
from inventory_kernel.services.audit_trail_writer import AuditTrailWriter
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.lot_store import LotStore
from inventory_kernel.services.status_resolver import StatusResolver
from inventory_kernel.services.stock_cascade import StockCascade
from inventory_kernel.utils.retry import RetryPolicy

logger = get_logger("services.adjustment_engine")


@dataclass(frozen=True)
class AdjustmentEngineOptions:
    """Tunable behaviour of the adjustment engine."""

    missing_type_policy: MissingAdjustmentTypePolicy = MissingAdjustmentTypePolicy.SKIP
    max_batch_size: int = 100
    audit_worthy_types: frozenset[str] = field(
        default_factory=lambda: AUDIT_WORTHY_ADJUSTMENT_TYPES
    )

    def __post_init__(self) -> None:
        if self.max_batch_size < 1:
            raise ValueError("max_batch_size must be >= 1")


def coerce_actor_id(actor_id: Any) -> UUID:
    """
    Raises:
        ValidationError: actor_id is missing or not a UUID.
    """
    if isinstance(actor_id, UUID):
        return actor_id
    try:
        return UUID(str(actor_id))
    except ValueError:
        raise ValidationError(f"actor_id is not a valid id: {actor_id!r}") from None


def check_batch_size(size: int, max_size: int) -> None:
    if size < 1 or size > max_size:
        raise BatchSizeExceededError(size, max_size)


class LotAdjustmentEngine(BaseService[WarehouseInventoryLot]):
    """
    Orchestrator for adjustment batches.

    Contract:
        adjust_lots() either returns one AdjustedLot per applied (non-skipped)
        entry, with every effect flushed to the session, or raises with the
        session holding partial, unflushed-to-commit state that the caller
        must roll back.

    Guarantees:
        - Lock order per entry: lot -> warehouse aggregate -> global item.
        - Audit rows are persisted with one INSERT per table per batch.

    Non-goals:
        - Does NOT commit.  Does NOT retry the batch.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        options: AdjustmentEngineOptions | None = None,
        retry_policy: RetryPolicy | None = None,
        status_resolver: StatusResolver | None = None,
        catalog: AdjustmentTypeCatalog | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._options = options or AdjustmentEngineOptions()
        self._statuses = status_resolver or StatusResolver(session, retry_policy)
        self._catalog = catalog or AdjustmentTypeCatalog(
            session,
            retry_policy,
            audit_worthy_types=self._options.audit_worthy_types,
        )
        self._lots = LotStore(session)
        self._cascade = StockCascade(session, self._statuses, lot_store=self._lots)

    def adjust_lots(
        self,
        records: Iterable[AdjustmentRequest | Mapping[str, Any]],
        actor_id: UUID,
    ) -> list[AdjustedLot]:
        """
        Apply a batch of adjustments.

        Args:
            records: AdjustmentRequest instances or mappings with lot_id,
                adjustment_type_id, delta and optional comments / order_id.
            actor_id: Who is performing the adjustment.

        Returns:
            One AdjustedLot per applied entry, in input order.
        """
        actor_id = coerce_actor_id(actor_id)
        requests = self._normalize(records)
        batch_id = str(uuid4())

        with LogContext.bind(batch_id=batch_id, actor_id=str(actor_id)):
            action_type = self._catalog.resolve_action_type(
                ActionTypeName.MANUAL_ADJUSTMENT.value
            )
            writer = AuditTrailWriter(self.session, self._statuses)

            applied: list[AdjustedLot] = []
            skipped = 0
            for index, request in enumerate(requests):
                try:
                    result = self._apply_entry(
                        index, request, actor_id, action_type, writer
                    )
                except InventoryKernelError as exc:
                    if exc.entry_index is None:
                        exc.entry_index = index
                    raise
                if result is None:
                    skipped += 1
                else:
                    applied.append(result)

            counts = writer.flush()
            logger.info(
                "lot_adjustment_entries_applied",
                extra={
                    "entry_count": len(requests),
                    "applied_count": len(applied),
                    "skipped_count": skipped,
                    "audit_counts": counts,
                },
            )
            return applied

    def _normalize(
        self, records: Iterable[AdjustmentRequest | Mapping[str, Any]]
    ) -> list[AdjustmentRequest]:
        if records is None or isinstance(records, (str, bytes, Mapping)):
            raise ValidationError("records must be a list of adjustment records")
        records = list(records)
        check_batch_size(len(records), self._options.max_batch_size)

        requests: list[AdjustmentRequest] = []
        for index, record in enumerate(records):
            if isinstance(record, AdjustmentRequest):
                if record.delta == 0:
                    raise InvalidRecordError(index, "delta", "must be non-zero")
                requests.append(record)
            elif isinstance(record, Mapping):
                requests.append(AdjustmentRequest.from_mapping(index, record))
            else:
                raise InvalidRecordError(index, "record", "must be a mapping")
        return requests

    def _resolve_type(self, index: int, request: AdjustmentRequest) -> AdjustmentTypeRef | None:
        try:
            return self._catalog.resolve_adjustment_type(request.adjustment_type_id)
        except AdjustmentTypeNotFoundError:
            if self._options.missing_type_policy is MissingAdjustmentTypePolicy.FAIL:
                raise
            logger.warning(
                "adjustment_entry_skipped",
                extra={
                    "entry_index": index,
                    "lot_ref": str(request.lot_id),
                    "adjustment_type_id": str(request.adjustment_type_id),
                    "reason": "unknown_adjustment_type",
                },
            )
            return None

    def _apply_entry(
        self,
        index: int,
        request: AdjustmentRequest,
        actor_id: UUID,
        action_type: ActionTypeRef,
        writer: AuditTrailWriter,
    ) -> AdjustedLot | None:
        adjustment_type = self._resolve_type(index, request)
        if adjustment_type is None:
            return None

        with LogContext.bind(lot_id=str(request.lot_id)):
            lot = self._lots.get(request.lot_id, for_update=True)
            now = self._clock.now()
            outcome = self._cascade.apply(lot, request.delta, actor_id, now)

            if self._catalog.is_audit_worthy(adjustment_type.name):
                writer.queue_adjustment(
                    warehouse_id=lot.warehouse_id,
                    inventory_id=lot.inventory_id,
                    lot_id=lot.id,
                    adjustment_type_id=adjustment_type.id,
                    previous_quantity=outcome.previous_quantity,
                    adjusted_quantity=request.delta,
                    new_quantity=outcome.new_quantity,
                    actor_id=actor_id,
                    timestamp=now,
                    comments=request.comments,
                    order_id=request.order_id,
                )
            writer.queue_activity(
                inventory_id=lot.inventory_id,
                warehouse_id=lot.warehouse_id,
                lot_id=lot.id,
                action_type_id=action_type.id,
                adjustment_type_id=adjustment_type.id,
                previous_quantity=outcome.previous_quantity,
                quantity_change=request.delta,
                new_quantity=outcome.new_quantity,
                status_id=outcome.lot_status.id,
                actor_id=actor_id,
                timestamp=now,
                order_id=request.order_id,
                comments=request.comments,
            )
            writer.queue_history(
                inventory_id=lot.inventory_id,
                warehouse_id=lot.warehouse_id,
                lot_id=lot.id,
                action_type_id=action_type.id,
                adjustment_type_id=adjustment_type.id,
                previous_quantity=outcome.previous_quantity,
                quantity_change=request.delta,
                new_quantity=outcome.new_quantity,
                source_type=SourceType.LOT_ADJUSTMENT.value,
                actor_id=actor_id,
                timestamp=now,
                order_id=request.order_id,
                comments=request.comments,
            )
            logger.debug(
                "lot_adjusted",
                extra={
                    "entry_index": index,
                    "adjustment_type": adjustment_type.name,
                    "delta": request.delta,
                    "new_quantity": outcome.new_quantity,
                    "lot_status": outcome.lot_status.name,
                },
            )

        return AdjustedLot(
            lot_id=lot.id,
            warehouse_id=lot.warehouse_id,
            inventory_id=lot.inventory_id,
            previous_quantity=outcome.previous_quantity,
            new_quantity=outcome.new_quantity,
            lot_status=outcome.lot_status.name,
        )
