"""
Tests for the lot, warehouse aggregate and global item stores.
"""

from uuid import uuid4

import pytest
from sqlalchemy import select

from inventory_kernel.exceptions import (
    InvariantViolationError,
    InventoryItemNotFoundError,
    LotNotFoundError,
    NegativeAvailableQuantityError,
    NegativeReservedQuantityError,
    NegativeStockError,
    WarehouseInventoryNotFoundError,
)
from inventory_kernel.models.warehouse_inventory import WarehouseInventory
from inventory_kernel.services.inventory_item_store import InventoryItemStore
from inventory_kernel.services.lot_store import LotStore
from inventory_kernel.services.warehouse_inventory_store import WarehouseInventoryStore


class TestLotStore:
    def test_get_and_find_by_key(self, session, stock_lot):
        lot = stock_lot(4, lot_number="L-9")
        store = LotStore(session)
        assert store.get(lot.id, for_update=True) is lot
        assert store.find_by_key(lot.warehouse_id, lot.inventory_id, "L-9") is lot
        assert store.find_by_key(lot.warehouse_id, lot.inventory_id, "L-0") is None

    def test_missing_lot(self, session, engine):
        with pytest.raises(LotNotFoundError):
            LotStore(session).get(uuid4())

    def test_apply_delta_never_clamps(self, session, stock_lot):
        lot = stock_lot(4)
        store = LotStore(session)
        with pytest.raises(NegativeStockError):
            store.apply_delta(lot, -5)
        with pytest.raises(NegativeReservedQuantityError):
            store.apply_delta(lot, 0, reserved_delta=-1)
        assert lot.quantity == 4

    def test_apply_delta_moves_stock_to_reserved(self, session, stock_lot, actor_id):
        lot = stock_lot(4)
        LotStore(session).apply_delta(lot, -3, reserved_delta=3, actor_id=actor_id)
        assert (lot.quantity, lot.reserved_quantity) == (1, 3)
        assert lot.updated_by_id == actor_id

    def test_sum_for_pair(self, session, stock_lot):
        first = stock_lot(4)
        stock_lot(6)
        assert LotStore(session).sum_for_pair(first.warehouse_id, first.inventory_id) == (10, 0)


class TestWarehouseInventoryStore:
    def test_missing_pair(self, session, stock_lot):
        lot = stock_lot(1)
        with pytest.raises(WarehouseInventoryNotFoundError):
            WarehouseInventoryStore(session).get(uuid4(), lot.inventory_id)

    def test_available_cannot_go_negative(self, session, stock_lot):
        lot = stock_lot(2)
        store = WarehouseInventoryStore(session)
        row = store.get(lot.warehouse_id, lot.inventory_id, for_update=True)
        assert store.check_available_delta(row, -2) == 0
        with pytest.raises(NegativeAvailableQuantityError):
            store.apply_delta(row, -3)
        assert row.available_quantity == 2

    def test_sum_for_item_spans_warehouses(self, session, stock_lot, make_warehouse):
        lot = stock_lot(2)
        stock_lot(5, warehouse_id=make_warehouse("Annex").id)
        assert WarehouseInventoryStore(session).sum_for_item(lot.inventory_id) == (7, 0)
        rows = session.execute(
            select(WarehouseInventory).where(WarehouseInventory.inventory_id == lot.inventory_id)
        ).scalars().all()
        assert len(rows) == 2


class TestInventoryItemStore:
    def test_find_by_reference(self, session, stock_lot):
        lot = stock_lot(1, product_ref="SKU-XYZ")
        store = InventoryItemStore(session)
        assert store.find_by_reference(product_ref="SKU-XYZ").id == lot.inventory_id
        assert store.find_by_reference(identifier="SKU-XYZ") is None
        with pytest.raises(ValueError):
            store.find_by_reference()

    def test_missing_item(self, session, engine):
        with pytest.raises(InventoryItemNotFoundError):
            InventoryItemStore(session).get(uuid4())

    def test_negative_totals_rejected(self, session, stock_lot):
        lot = stock_lot(1)
        store = InventoryItemStore(session)
        item = store.get(lot.inventory_id, for_update=True)
        with pytest.raises(InvariantViolationError):
            store.apply_totals(item, -1, 0)
