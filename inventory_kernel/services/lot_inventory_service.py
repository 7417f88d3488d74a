"""
LotInventoryService -- the inventory kernel's public entry points.

Responsibility:
    Exposes adjust_lots, select_lot_for_allocation and insert_lots to the
    rest of the application and owns the transaction boundary around each
    mutating call.

Architecture position:
    Kernel > Services -- imperative shell.  Composes LotAdjustmentEngine,
    LotInsertService and AllocationSelector over one session.

Invariants enforced:
    - Transaction boundaries: with auto_commit=True a mutating call commits
      on success and rolls back on any exception, so a failed batch leaves
      no effect behind.  With auto_commit=False the caller owns both.
    - Every call runs under a fresh correlation_id in LogContext and logs
      *_started, *_completed (with duration_ms) or *_failed.

Failure modes:
    - Re-raises every exception from the engine / insert path after
      rollback.  The exception carries ``entry_index`` for batch errors.
"""

import time
from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import (
    AdjustedLot,
    AdjustmentRequest,
    InsertedLot,
    LotCandidate,
    LotInsertRequest,
)
from inventory_kernel.domain.values import AllocationStrategy
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.selectors.allocation_selector import AllocationSelector
from inventory_kernel.services.adjustment_engine import (
    AdjustmentEngineOptions,
    LotAdjustmentEngine,
)
from inventory_kernel.services.adjustment_type_catalog import AdjustmentTypeCatalog
from inventory_kernel.services.lot_insert_service import (
    LotInsertOptions,
    LotInsertService,
)
from inventory_kernel.services.status_resolver import StatusResolver
from inventory_kernel.utils.retry import RetryPolicy

logger = get_logger("services.lot_inventory")


class LotInventoryService:
    """
    Facade over the adjustment engine, insert path and allocation selector.

    Contract:
        One instance per session.  Reference-data caches (statuses,
        adjustment and action types) are shared by all calls on the instance.

    Guarantees:
        - adjust_lots / insert_lots are all-or-nothing when auto_commit=True.
        - select_lot_for_allocation never writes.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        adjustment_options: AdjustmentEngineOptions | None = None,
        insert_options: LotInsertOptions | None = None,
        retry_policy: RetryPolicy | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit

        adjustment_options = adjustment_options or AdjustmentEngineOptions()
        statuses = StatusResolver(session, retry_policy)
        catalog = AdjustmentTypeCatalog(
            session,
            retry_policy,
            audit_worthy_types=adjustment_options.audit_worthy_types,
        )
        self._engine = LotAdjustmentEngine(
            session,
            clock=self._clock,
            options=adjustment_options,
            retry_policy=retry_policy,
            status_resolver=statuses,
            catalog=catalog,
        )
        self._inserter = LotInsertService(
            session,
            clock=self._clock,
            options=insert_options,
            retry_policy=retry_policy,
            status_resolver=statuses,
            catalog=catalog,
        )
        self._allocation = AllocationSelector(session)

    def adjust_lots(
        self,
        records: Iterable[AdjustmentRequest | Mapping[str, Any]],
        actor_id: UUID,
    ) -> list[AdjustedLot]:
        """Apply an adjustment batch; see LotAdjustmentEngine.adjust_lots."""
        return self._run(
            "lot_adjustment",
            actor_id,
            lambda: self._engine.adjust_lots(records, actor_id),
        )

    def insert_lots(
        self,
        records: Iterable[LotInsertRequest | Mapping[str, Any]],
        actor_id: UUID,
    ) -> list[InsertedLot]:
        """Receive stock into lots; see LotInsertService.insert_lots."""
        return self._run(
            "lot_insert",
            actor_id,
            lambda: self._inserter.insert_lots(records, actor_id),
        )

    def select_lot_for_allocation(
        self,
        inventory_id: UUID,
        warehouse_id: UUID,
        quantity: int,
        strategy: AllocationStrategy | str = AllocationStrategy.FEFO,
        exclude_expired_on: date | None = None,
    ) -> LotCandidate | None:
        """Pick the lot to deplete; None when no lot qualifies."""
        return self._allocation.select_lot(
            inventory_id,
            warehouse_id,
            quantity,
            strategy=strategy,
            exclude_expired_on=exclude_expired_on,
        )

    def _run(self, operation: str, actor_id: Any, fn):
        with LogContext.bind(correlation_id=str(uuid4()), actor_id=str(actor_id)):
            logger.info(f"{operation}_started")
            t0 = time.monotonic()
            try:
                result = fn()

                if self._auto_commit:
                    self._session.commit()

                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                logger.info(
                    f"{operation}_completed",
                    extra={"duration_ms": duration_ms, "result_count": len(result)},
                )
                return result

            except Exception:
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                if self._auto_commit:
                    self._session.rollback()
                logger.error(
                    f"{operation}_failed",
                    extra={"duration_ms": duration_ms},
                    exc_info=True,
                )
                raise
