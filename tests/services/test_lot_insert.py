"""
Tests for the stock receipt path (LotInventoryService.insert_lots).

Verifies:
- Item, warehouse aggregate and lot get-or-create
- Receipts into an existing lot are recorded as insert updates
- Duplicate receipts in one batch are merged
- Batch limits and reference validation
- Terminal lots cannot receive stock
"""

from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from inventory_kernel.domain.dtos import LotInsertRequest
from inventory_kernel.domain.values import LotStatus
from inventory_kernel.exceptions import (
    BatchSizeExceededError,
    InvalidItemReferenceError,
    InventoryItemNotFoundError,
    TerminalLotStatusError,
    WarehouseNotFoundError,
)
from inventory_kernel.models.audit import (
    InventoryActivityLog,
    InventoryHistoryLog,
    WarehouseLotAdjustment,
)
from inventory_kernel.models.inventory_item import InventoryItem
from inventory_kernel.models.reference import InventoryActionType
from inventory_kernel.models.warehouse_inventory import (
    WarehouseInventory,
    WarehouseInventoryLot,
)


def _action_type_id(session, name):
    return session.execute(
        select(InventoryActionType.id).where(InventoryActionType.name == name)
    ).scalar_one()


def _lot_count(session) -> int:
    return session.execute(select(func.count()).select_from(WarehouseInventoryLot)).scalar_one()


class TestReceiveNewStock:
    def test_creates_item_aggregate_and_lot(self, service, session, actor_id, warehouse, status_id):
        [result] = service.insert_lots(
            [
                {
                    "warehouse_id": warehouse.id,
                    "product_ref": "SKU-100",
                    "lot_number": "L-1",
                    "quantity": 12,
                    "expiry_date": "2025-03-01",
                    "fee": "2.50",
                }
            ],
            actor_id,
        )

        assert result.created is True
        assert result.quantity_received == 12
        assert result.new_quantity == 12

        item = session.get(InventoryItem, result.inventory_id)
        assert item.product_ref == "SKU-100"
        assert item.kind == "product"
        assert item.total_available_quantity == 12
        assert item.status_id == status_id("in_stock")

        aggregate = session.execute(
            select(WarehouseInventory).where(
                WarehouseInventory.warehouse_id == warehouse.id,
                WarehouseInventory.inventory_id == result.inventory_id,
            )
        ).scalar_one()
        assert aggregate.available_quantity == 12
        assert aggregate.fee == Decimal("2.50")
        assert aggregate.status_id == status_id("in_stock")

        lot = session.get(WarehouseInventoryLot, result.lot_id)
        assert lot.quantity == 12
        assert lot.expiry_date == date(2025, 3, 1)
        assert lot.status_id == status_id("in_stock")

    def test_inbound_date_defaults_to_today(self, service, session, actor_id, warehouse, clock):
        [result] = service.insert_lots(
            [{"warehouse_id": warehouse.id, "product_ref": "SKU-1", "lot_number": "L-1", "quantity": 1}],
            actor_id,
        )
        assert session.get(WarehouseInventoryLot, result.lot_id).inbound_date == clock.today()

    def test_identifier_item(self, service, session, actor_id, warehouse):
        [result] = service.insert_lots(
            [{"warehouse_id": warehouse.id, "identifier": "PALLET-9", "lot_number": "L-1", "quantity": 4}],
            actor_id,
        )
        item = session.get(InventoryItem, result.inventory_id)
        assert item.identifier == "PALLET-9"
        assert item.product_ref is None
        assert item.kind == "other"

    def test_existing_item_by_id(self, service, actor_id, warehouse, stock_lot):
        existing = stock_lot(5)
        [result] = service.insert_lots(
            [
                LotInsertRequest(
                    warehouse_id=warehouse.id,
                    inventory_id=existing.inventory_id,
                    lot_number="L-NEW",
                    quantity=3,
                )
            ],
            actor_id,
        )
        assert result.inventory_id == existing.inventory_id
        assert result.created is True

    def test_unknown_inventory_id(self, service, actor_id, warehouse):
        with pytest.raises(InventoryItemNotFoundError) as exc_info:
            service.insert_lots(
                [{"warehouse_id": warehouse.id, "inventory_id": uuid4(), "lot_number": "L", "quantity": 1}],
                actor_id,
            )
        assert exc_info.value.entry_index == 0

    def test_audit_rows_use_insert_action(self, service, session, actor_id, warehouse):
        [result] = service.insert_lots(
            [{"warehouse_id": warehouse.id, "product_ref": "SKU-1", "lot_number": "L-1", "quantity": 8}],
            actor_id,
        )

        activity = session.execute(
            select(InventoryActivityLog).where(InventoryActivityLog.lot_id == result.lot_id)
        ).scalar_one()
        assert activity.inventory_action_type_id == _action_type_id(session, "manual_stock_insert")
        assert (activity.previous_quantity, activity.quantity_change, activity.new_quantity) == (0, 8, 8)

        history = session.execute(
            select(InventoryHistoryLog).where(InventoryHistoryLog.lot_id == result.lot_id)
        ).scalar_one()
        assert history.source_type == "manual_stock_insert"

        adjustments = session.execute(
            select(func.count()).select_from(WarehouseLotAdjustment)
        ).scalar_one()
        assert adjustments == 0


class TestReceiveIntoExistingLot:
    def test_adds_to_existing_lot(self, service, session, actor_id, warehouse, stock_lot):
        lot = stock_lot(10, lot_number="L-1")

        [result] = service.insert_lots(
            [{"warehouse_id": warehouse.id, "product_ref": "SKU-1", "lot_number": "L-1", "quantity": 5}],
            actor_id,
        )

        assert result.created is False
        assert result.lot_id == lot.id
        assert result.new_quantity == 15
        assert _lot_count(session) == 1

        activity = session.execute(
            select(InventoryActivityLog)
            .where(InventoryActivityLog.lot_id == lot.id)
            .order_by(InventoryActivityLog.previous_quantity.desc())
        ).scalars().first()
        assert activity.inventory_action_type_id == _action_type_id(
            session, "manual_stock_insert_update"
        )
        assert activity.previous_quantity == 10

    def test_revives_depleted_lot(
        self, service, session, actor_id, warehouse, stock_lot, set_lot_status, status_id
    ):
        lot = stock_lot(10, lot_number="L-1")
        lot.quantity = 0
        set_lot_status(lot, LotStatus.OUT_OF_STOCK)

        service.insert_lots(
            [{"warehouse_id": warehouse.id, "product_ref": "SKU-1", "lot_number": "L-1", "quantity": 2}],
            actor_id,
        )

        session.expire_all()
        lot = session.get(WarehouseInventoryLot, lot.id)
        assert lot.quantity == 2
        assert lot.status_id == status_id("in_stock")

    def test_terminal_lot_cannot_receive(
        self, service, session, actor_id, warehouse, stock_lot, set_lot_status
    ):
        lot = stock_lot(10, lot_number="L-1")
        set_lot_status(lot, LotStatus.EXPIRED)

        with pytest.raises(TerminalLotStatusError) as exc_info:
            service.insert_lots(
                [{"warehouse_id": warehouse.id, "product_ref": "SKU-1", "lot_number": "L-1", "quantity": 5}],
                actor_id,
            )

        assert exc_info.value.entry_index == 0
        session.expire_all()
        assert session.get(WarehouseInventoryLot, lot.id).quantity == 10


class TestBatches:
    def test_duplicate_receipts_are_merged(self, service, session, actor_id, warehouse):
        record = {"warehouse_id": warehouse.id, "product_ref": "SKU-1", "lot_number": "L-1"}

        results = service.insert_lots(
            [
                {**record, "quantity": 3, "comments": "first truck"},
                {**record, "quantity": 4, "comments": "second truck"},
            ],
            actor_id,
        )

        assert len(results) == 1
        assert results[0].quantity_received == 7
        lot = session.get(WarehouseInventoryLot, results[0].lot_id)
        assert lot.quantity == 7
        assert lot.comments == "first truck; second truck"

    def test_same_lot_by_id_and_by_reference_is_merged(
        self, service, session, actor_id, warehouse, stock_lot
    ):
        existing = stock_lot(1, lot_number="L-0")

        results = service.insert_lots(
            [
                {"warehouse_id": warehouse.id, "inventory_id": existing.inventory_id, "lot_number": "L-2", "quantity": 2},
                {"warehouse_id": warehouse.id, "product_ref": "SKU-1", "lot_number": "L-2", "quantity": 3},
            ],
            actor_id,
        )

        assert len(results) == 1
        assert results[0].created is True
        assert results[0].quantity_received == 5
        assert results[0].inventory_id == existing.inventory_id
        lots = session.execute(
            select(WarehouseInventoryLot).where(WarehouseInventoryLot.lot_number == "L-2")
        ).scalars().all()
        assert [lot.quantity for lot in lots] == [5]

    def test_several_items_in_one_batch(self, service, session, actor_id, warehouse):
        results = service.insert_lots(
            [
                {"warehouse_id": warehouse.id, "product_ref": "SKU-A", "lot_number": "L-1", "quantity": 1},
                {"warehouse_id": warehouse.id, "product_ref": "SKU-B", "lot_number": "L-1", "quantity": 2},
                {"warehouse_id": warehouse.id, "product_ref": "SKU-A", "lot_number": "L-2", "quantity": 3},
            ],
            actor_id,
        )

        assert [r.quantity_received for r in results] == [1, 2, 3]
        assert results[0].inventory_id == results[2].inventory_id
        assert results[0].inventory_id != results[1].inventory_id
        item = session.get(InventoryItem, results[0].inventory_id)
        assert item.total_available_quantity == 4

    def test_batch_limit(self, service, actor_id, warehouse):
        records = [
            {"warehouse_id": warehouse.id, "product_ref": "SKU-1", "lot_number": f"L-{n}", "quantity": 1}
            for n in range(21)
        ]
        with pytest.raises(BatchSizeExceededError) as exc_info:
            service.insert_lots(records, actor_id)
        assert exc_info.value.max_size == 20

    def test_unknown_warehouse_rolls_back_batch(self, service, session, actor_id, warehouse):
        with pytest.raises(WarehouseNotFoundError) as exc_info:
            service.insert_lots(
                [
                    {"warehouse_id": warehouse.id, "product_ref": "SKU-1", "lot_number": "L-1", "quantity": 1},
                    {"warehouse_id": uuid4(), "product_ref": "SKU-1", "lot_number": "L-1", "quantity": 1},
                ],
                actor_id,
            )
        assert exc_info.value.entry_index == 1
        assert _lot_count(session) == 0

    def test_ambiguous_item_reference(self, service, actor_id, warehouse):
        with pytest.raises(InvalidItemReferenceError):
            service.insert_lots(
                [
                    {
                        "warehouse_id": warehouse.id,
                        "product_ref": "SKU-1",
                        "identifier": "BIN-1",
                        "lot_number": "L-1",
                        "quantity": 1,
                    }
                ],
                actor_id,
            )

    def test_receipts_logged(self, service, actor_id, warehouse, captured_logs):
        service.insert_lots(
            [{"warehouse_id": warehouse.id, "product_ref": "SKU-1", "lot_number": "L-1", "quantity": 1}],
            actor_id,
        )
        records = captured_logs()
        received = next(r for r in records if r["message"] == "lots_received")
        assert received["created_count"] == 1
        assert any(r["message"] == "lot_insert_completed" for r in records)
        assert any(r["message"] == "inventory_item_created" for r in records)


def test_fefo_dates_survive_receipt(service, session, actor_id, warehouse, clock):
    expiry = clock.today() + timedelta(days=30)
    [result] = service.insert_lots(
        [
            {
                "warehouse_id": warehouse.id,
                "product_ref": "SKU-1",
                "lot_number": "L-1",
                "quantity": 1,
                "manufacture_date": clock.today(),
                "expiry_date": expiry,
            }
        ],
        actor_id,
    )
    lot = session.get(WarehouseInventoryLot, result.lot_id)
    assert lot.expiry_date == expiry
    assert lot.manufacture_date == clock.today()
