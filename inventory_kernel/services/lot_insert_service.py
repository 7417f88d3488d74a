"""
LotInsertService -- initial stocking path.

Responsibility:
    Receives stock into lots: creates the global item, the warehouse
    aggregate and the lot when absent, and adds the received quantity
    through the same StockCascade used by adjustments, so statuses and
    totals stay consistent at all three granularities.

Architecture position:
    Kernel > Services.  Flush-only; LotInventoryService owns the transaction.

Invariants enforced:
    - Batch size is 1..max_batch_size (default 20).
    - Records sharing (warehouse, resolved item, lot_number) are merged into
      one receipt whose quantity is the sum of theirs.
    - Item, aggregate and lot rows are created with INSERT ... ON CONFLICT
      DO NOTHING, then re-read; a concurrent creator of the same key is
      therefore not an error.
    - Receipt into an existing lot is recorded as manual_stock_insert_update;
      receipt into a lot this call created as manual_stock_insert.
    - A lot in a terminal status cannot receive stock.

Failure modes:
    - ValidationError family for malformed input.
    - WarehouseNotFoundError, InventoryItemNotFoundError.
    - TerminalLotStatusError from StockCascade.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from inventory_kernel.db.bulk import ConflictStrategy, bulk_insert
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import InsertedLot, LotInsertRequest
from inventory_kernel.domain.values import (
    ActionTypeName,
    LifecycleStatus,
    LotStatus,
    SourceType,
)
from inventory_kernel.exceptions import (
    InvalidRecordError,
    InventoryKernelError,
    LotNotFoundError,
    ValidationError,
    WarehouseNotFoundError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.models.inventory_item import InventoryItem
from inventory_kernel.models.status import LIFECYCLE_STATUS_DOMAIN
from inventory_kernel.models.warehouse import Warehouse
from inventory_kernel.models.warehouse_inventory import (
    WarehouseInventory,
    WarehouseInventoryLot,
)
from inventory_kernel.services.adjustment_engine import (
    check_batch_size,
    coerce_actor_id,
)
from inventory_kernel.services.adjustment_type_catalog import AdjustmentTypeCatalog
from inventory_kernel.services.audit_trail_writer import AuditTrailWriter
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.inventory_item_store import InventoryItemStore
from inventory_kernel.services.lot_store import LotStore
from inventory_kernel.services.status_resolver import StatusResolver
from inventory_kernel.services.stock_cascade import StockCascade
from inventory_kernel.utils.retry import RetryPolicy

logger = get_logger("services.lot_insert")

_INSERT_ADJUSTMENT_TYPE = "manual_stock_insert"
_UPDATE_ADJUSTMENT_TYPE = "manual_stock_update"


@dataclass(frozen=True)
class LotInsertOptions:
    max_batch_size: int = 20

    def __post_init__(self) -> None:
        if self.max_batch_size < 1:
            raise ValueError("max_batch_size must be >= 1")


def merge_duplicate_receipts(
    requests: list[tuple[int, LotInsertRequest]],
    item_ids: Mapping[tuple[str, str], UUID],
) -> list[tuple[int, LotInsertRequest]]:
    """
    Collapse receipts that target the same lot, keeping first-seen order.

    Lots are keyed on the resolved item id, so a lot named once by
    inventory_id and once by product_ref or identifier is one receipt.

    Quantities are summed; the first non-empty value wins for every other
    field except comments, which are joined.  The surviving entry keeps the
    index of its first occurrence.
    """
    merged: dict[tuple, tuple[int, LotInsertRequest]] = {}
    for index, request in requests:
        key = (request.warehouse_id, item_ids[request.item_key], request.lot_number)
        existing = merged.get(key)
        if existing is None:
            merged[key] = (index, request)
            continue
        first_index, first = existing
        comments = "; ".join(c for c in (first.comments, request.comments) if c) or None
        merged[key] = (
            first_index,
            replace(
                first,
                quantity=first.quantity + request.quantity,
                manufacture_date=first.manufacture_date or request.manufacture_date,
                expiry_date=first.expiry_date or request.expiry_date,
                inbound_date=first.inbound_date or request.inbound_date,
                fee=first.fee if first.fee is not None else request.fee,
                comments=comments,
            ),
        )
    return list(merged.values())


class LotInsertService(BaseService[WarehouseInventoryLot]):
    """Conflict-safe creation and receipt of lots."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        options: LotInsertOptions | None = None,
        retry_policy: RetryPolicy | None = None,
        status_resolver: StatusResolver | None = None,
        catalog: AdjustmentTypeCatalog | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._options = options or LotInsertOptions()
        self._statuses = status_resolver or StatusResolver(session, retry_policy)
        self._catalog = catalog or AdjustmentTypeCatalog(session, retry_policy)
        self._lots = LotStore(session)
        self._items = InventoryItemStore(session)
        self._cascade = StockCascade(
            session, self._statuses, lot_store=self._lots, item_store=self._items
        )

    def insert_lots(
        self,
        records: Iterable[LotInsertRequest | Mapping[str, Any]],
        actor_id: UUID,
    ) -> list[InsertedLot]:
        """
        Receive stock for every record; returns one InsertedLot per distinct lot.
        """
        actor_id = coerce_actor_id(actor_id)
        requests = self._normalize(records)

        with LogContext.bind(batch_id=str(uuid4()), actor_id=str(actor_id)):
            now = self._clock.now()
            out_of_stock = self._statuses.resolve(name=LotStatus.OUT_OF_STOCK.value)

            self._check_warehouses(requests)
            item_ids = self._resolve_items(requests, actor_id, out_of_stock.id)
            requests = merge_duplicate_receipts(requests, item_ids)
            self._ensure_aggregates(requests, item_ids, actor_id, out_of_stock.id, now)
            created_keys = self._ensure_lots(requests, item_ids, actor_id, out_of_stock.id)

            insert_action = self._catalog.resolve_action_type(
                ActionTypeName.MANUAL_STOCK_INSERT.value
            )
            update_action = self._catalog.resolve_action_type(
                ActionTypeName.MANUAL_STOCK_INSERT_UPDATE.value
            )
            insert_type = self._catalog.resolve_adjustment_type(_INSERT_ADJUSTMENT_TYPE)
            update_type = self._catalog.resolve_adjustment_type(_UPDATE_ADJUSTMENT_TYPE)
            writer = AuditTrailWriter(self.session, self._statuses)

            results: list[InsertedLot] = []
            for index, request in requests:
                inventory_id = item_ids[request.item_key]
                key = (request.warehouse_id, inventory_id, request.lot_number)
                created = key in created_keys
                try:
                    lot = self._lots.find_by_key(*key, for_update=True)
                    if lot is None:
                        raise LotNotFoundError(request.lot_number)
                    with LogContext.bind(lot_id=str(lot.id)):
                        outcome = self._cascade.apply(lot, request.quantity, actor_id, now)
                except InventoryKernelError as exc:
                    if exc.entry_index is None:
                        exc.entry_index = index
                    raise

                action = insert_action if created else update_action
                adjustment_type = insert_type if created else update_type
                if self._catalog.is_audit_worthy(adjustment_type.name):
                    writer.queue_adjustment(
                        warehouse_id=lot.warehouse_id,
                        inventory_id=inventory_id,
                        lot_id=lot.id,
                        adjustment_type_id=adjustment_type.id,
                        previous_quantity=outcome.previous_quantity,
                        adjusted_quantity=request.quantity,
                        new_quantity=outcome.new_quantity,
                        actor_id=actor_id,
                        timestamp=now,
                        comments=request.comments,
                    )
                writer.queue_activity(
                    inventory_id=inventory_id,
                    warehouse_id=lot.warehouse_id,
                    lot_id=lot.id,
                    action_type_id=action.id,
                    adjustment_type_id=adjustment_type.id,
                    previous_quantity=outcome.previous_quantity,
                    quantity_change=request.quantity,
                    new_quantity=outcome.new_quantity,
                    status_id=outcome.lot_status.id,
                    actor_id=actor_id,
                    timestamp=now,
                    comments=request.comments,
                )
                writer.queue_history(
                    inventory_id=inventory_id,
                    warehouse_id=lot.warehouse_id,
                    lot_id=lot.id,
                    action_type_id=action.id,
                    adjustment_type_id=adjustment_type.id,
                    previous_quantity=outcome.previous_quantity,
                    quantity_change=request.quantity,
                    new_quantity=outcome.new_quantity,
                    source_type=SourceType.MANUAL_STOCK_INSERT.value,
                    actor_id=actor_id,
                    timestamp=now,
                    comments=request.comments,
                )
                results.append(
                    InsertedLot(
                        lot_id=lot.id,
                        warehouse_id=lot.warehouse_id,
                        inventory_id=inventory_id,
                        lot_number=lot.lot_number,
                        quantity_received=request.quantity,
                        new_quantity=outcome.new_quantity,
                        created=created,
                    )
                )

            counts = writer.flush()
            logger.info(
                "lots_received",
                extra={
                    "lot_count": len(results),
                    "created_count": sum(1 for r in results if r.created),
                    "audit_counts": counts,
                },
            )
            return results

    def _normalize(
        self, records: Iterable[LotInsertRequest | Mapping[str, Any]]
    ) -> list[tuple[int, LotInsertRequest]]:
        if records is None or isinstance(records, (str, bytes, Mapping)):
            raise ValidationError("records must be a list of lot records")
        records = list(records)
        check_batch_size(len(records), self._options.max_batch_size)

        requests: list[tuple[int, LotInsertRequest]] = []
        for index, record in enumerate(records):
            if isinstance(record, LotInsertRequest):
                request = record
                if request.quantity <= 0:
                    raise InvalidRecordError(index, "quantity", "must be positive")
            elif isinstance(record, Mapping):
                request = LotInsertRequest.from_mapping(index, record)
            else:
                raise InvalidRecordError(index, "record", "must be a mapping")
            if request.inbound_date is None:
                request = replace(request, inbound_date=self._clock.today())
            requests.append((index, request))
        return requests

    def _check_warehouses(self, requests: list[tuple[int, LotInsertRequest]]) -> None:
        seen: set[UUID] = set()
        for index, request in requests:
            if request.warehouse_id in seen:
                continue
            if self.session.get(Warehouse, request.warehouse_id) is None:
                exc = WarehouseNotFoundError(str(request.warehouse_id))
                exc.entry_index = index
                raise exc
            seen.add(request.warehouse_id)

    def _resolve_items(
        self,
        requests: list[tuple[int, LotInsertRequest]],
        actor_id: UUID,
        stock_status_id: UUID,
    ) -> dict[tuple[str, str], UUID]:
        """Map each request's item key to an item id, creating missing items."""
        active = self._statuses.resolve(
            name=LifecycleStatus.ACTIVE.value, domain=LIFECYCLE_STATUS_DOMAIN
        )
        item_ids: dict[tuple[str, str], UUID] = {}
        for index, request in requests:
            key = request.item_key
            if key in item_ids:
                continue
            try:
                if request.inventory_id is not None:
                    item_ids[key] = self._items.get(request.inventory_id).id
                    continue
                item = self._items.find_by_reference(request.product_ref, request.identifier)
                if item is None:
                    item = self._create_item(request, actor_id, stock_status_id, active.id)
            except InventoryKernelError as exc:
                exc.entry_index = index
                raise
            item_ids[key] = item.id
        return item_ids

    def _create_item(
        self,
        request: LotInsertRequest,
        actor_id: UUID,
        stock_status_id: UUID,
        lifecycle_status_id: UUID,
    ) -> InventoryItem:
        conflict_column = "product_ref" if request.product_ref is not None else "identifier"
        inserted = bulk_insert(
            self.session,
            InventoryItem.__table__,
            [
                {
                    "id": uuid4(),
                    "kind": request.kind,
                    "product_ref": request.product_ref,
                    "identifier": request.identifier,
                    "status_id": stock_status_id,
                    "lifecycle_status_id": lifecycle_status_id,
                    "total_available_quantity": 0,
                    "total_reserved_quantity": 0,
                    "created_by_id": actor_id,
                }
            ],
            conflict_columns=(conflict_column,),
            strategy=ConflictStrategy.DO_NOTHING,
        )
        if inserted:
            logger.info(
                "inventory_item_created",
                extra={"inventory_id": str(inserted[0]["id"]), "kind": request.kind},
            )
        return self._items.find_by_reference(request.product_ref, request.identifier)

    def _ensure_aggregates(
        self,
        requests: list[tuple[int, LotInsertRequest]],
        item_ids: dict[tuple[str, str], UUID],
        actor_id: UUID,
        stock_status_id: UUID,
        now: datetime,
    ) -> None:
        fees: dict[tuple[UUID, UUID], Any] = {}
        for _, request in requests:
            pair = (request.warehouse_id, item_ids[request.item_key])
            if fees.get(pair) is None:
                fees[pair] = request.fee

        rows = [
            {
                "id": uuid4(),
                "warehouse_id": warehouse_id,
                "inventory_id": inventory_id,
                "reserved_quantity": 0,
                "available_quantity": 0,
                "fee": fee,
                "status_id": stock_status_id,
                "last_update": now,
                "created_by_id": actor_id,
            }
            # Sorted so concurrent inserters touch pairs in the same order.
            for (warehouse_id, inventory_id), fee in sorted(
                fees.items(), key=lambda kv: (str(kv[0][0]), str(kv[0][1]))
            )
        ]
        inserted = bulk_insert(
            self.session,
            WarehouseInventory.__table__,
            rows,
            conflict_columns=("warehouse_id", "inventory_id"),
            strategy=ConflictStrategy.DO_NOTHING,
        )
        logger.debug(
            "warehouse_inventory_ensured",
            extra={"pair_count": len(rows), "created_count": len(inserted)},
        )

    def _ensure_lots(
        self,
        requests: list[tuple[int, LotInsertRequest]],
        item_ids: dict[tuple[str, str], UUID],
        actor_id: UUID,
        stock_status_id: UUID,
    ) -> set[tuple[UUID, UUID, str]]:
        """Insert missing lots with zero quantity; returns the keys actually created."""
        rows = [
            {
                "id": uuid4(),
                "warehouse_id": request.warehouse_id,
                "inventory_id": item_ids[request.item_key],
                "lot_number": request.lot_number,
                "quantity": 0,
                "reserved_quantity": 0,
                "status_id": stock_status_id,
                "manufacture_date": request.manufacture_date,
                "expiry_date": request.expiry_date,
                "inbound_date": request.inbound_date,
                "outbound_date": None,
                "comments": request.comments,
                "created_by_id": actor_id,
            }
            for _, request in requests
        ]
        inserted = bulk_insert(
            self.session,
            WarehouseInventoryLot.__table__,
            rows,
            conflict_columns=("warehouse_id", "inventory_id", "lot_number"),
            strategy=ConflictStrategy.DO_NOTHING,
        )
        return {
            (row["warehouse_id"], row["inventory_id"], row["lot_number"])
            for row in inserted
        }
