"""
Concurrent adjustment tests.

Many threads adjust the same lot at once, each through its own session.
Row locks (lot -> warehouse aggregate -> global item) must serialize them
so that no update is lost and stock never goes negative.

Requires PostgreSQL; SQLite has no row-level locking.
"""

import os
from concurrent.futures import ThreadPoolExecutor
from threading import Barrier

import pytest

from inventory_kernel.db.engine import get_session_factory
from inventory_kernel.domain.clock import SystemClock
from inventory_kernel.exceptions import NegativeStockError
from inventory_kernel.models.inventory_item import InventoryItem
from inventory_kernel.models.warehouse_inventory import WarehouseInventoryLot
from inventory_kernel.services.lot_inventory_service import LotInventoryService

pytestmark = [
    pytest.mark.postgres,
    pytest.mark.skipif(
        not os.environ.get("DATABASE_URL", "").startswith("postgresql"),
        reason="row-level locking requires PostgreSQL",
    ),
]


def _run_concurrently(lot_id, adjustment_type_id, actor_id, deltas):
    """Apply one single-entry batch per delta, all threads released together."""
    factory = get_session_factory()
    barrier = Barrier(len(deltas))

    def _adjust(delta):
        session = factory()
        try:
            service = LotInventoryService(session, clock=SystemClock())
            barrier.wait()
            try:
                service.adjust_lots(
                    [{"lot_id": lot_id, "adjustment_type_id": adjustment_type_id, "delta": delta}],
                    actor_id,
                )
                return "ok"
            except NegativeStockError:
                return "negative"
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=len(deltas)) as pool:
        return list(pool.map(_adjust, deltas))


def _final_state(session, lot):
    session.expire_all()
    current = session.get(WarehouseInventoryLot, lot.id)
    item = session.get(InventoryItem, lot.inventory_id)
    return current.quantity, item.total_available_quantity


def test_no_lost_updates(session, actor_id, stock_lot, adjustment_type_id):
    lot = stock_lot(100)

    outcomes = _run_concurrently(
        lot.id, adjustment_type_id("adjustment"), actor_id, [-3] * 10 + [2] * 10
    )

    assert outcomes == ["ok"] * 20
    assert _final_state(session, lot) == (90, 90)


def test_oversubscription_never_goes_negative(session, actor_id, stock_lot, adjustment_type_id):
    lot = stock_lot(10)

    outcomes = _run_concurrently(lot.id, adjustment_type_id("damaged"), actor_id, [-1] * 14)

    assert outcomes.count("ok") == 10
    assert outcomes.count("negative") == 4
    assert _final_state(session, lot) == (0, 0)
