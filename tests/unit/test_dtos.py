"""Unit tests for record normalization at the service boundary."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from inventory_kernel.domain.dtos import (
    AdjustmentRequest,
    HistoryIntegrityReport,
    LotCandidate,
    LotInsertRequest,
)
from inventory_kernel.domain.values import AllocationStrategy
from inventory_kernel.exceptions import InvalidItemReferenceError, InvalidRecordError


class TestAdjustmentRequest:
    def test_from_mapping_accepts_string_ids(self):
        lot_id, type_id = uuid4(), uuid4()
        request = AdjustmentRequest.from_mapping(
            0, {"lot_id": str(lot_id), "adjustment_type_id": str(type_id), "delta": -3}
        )
        assert request.lot_id == lot_id
        assert request.adjustment_type_id == type_id
        assert request.delta == -3
        assert request.order_id is None

    @pytest.mark.parametrize(
        "record,field",
        [
            ({"adjustment_type_id": uuid4(), "delta": 1}, "lot_id"),
            ({"lot_id": "not-a-uuid", "adjustment_type_id": uuid4(), "delta": 1}, "lot_id"),
            ({"lot_id": uuid4(), "delta": 1}, "adjustment_type_id"),
            ({"lot_id": uuid4(), "adjustment_type_id": uuid4()}, "delta"),
            ({"lot_id": uuid4(), "adjustment_type_id": uuid4(), "delta": 0}, "delta"),
            ({"lot_id": uuid4(), "adjustment_type_id": uuid4(), "delta": 1.5}, "delta"),
            ({"lot_id": uuid4(), "adjustment_type_id": uuid4(), "delta": True}, "delta"),
        ],
    )
    def test_invalid_records(self, record, field):
        with pytest.raises(InvalidRecordError) as exc_info:
            AdjustmentRequest.from_mapping(4, record)
        assert exc_info.value.field == field
        assert exc_info.value.entry_index == 4


class TestLotInsertRequest:
    def _record(self, **overrides):
        record = {"warehouse_id": uuid4(), "lot_number": " L-1 ", "quantity": 5, "product_ref": "SKU"}
        record.update(overrides)
        return record

    def test_normalizes_fields(self):
        request = LotInsertRequest.from_mapping(
            0, self._record(expiry_date="2025-06-30", fee="1.25")
        )
        assert request.lot_number == "L-1"
        assert request.kind == "product"
        assert request.expiry_date == date(2025, 6, 30)
        assert request.fee == Decimal("1.25")
        assert request.item_key == ("product_ref", "SKU")

    def test_identifier_defaults_kind_to_other(self):
        request = LotInsertRequest.from_mapping(
            0, self._record(product_ref=None, identifier="BIN-7")
        )
        assert request.kind == "other"
        assert request.item_key == ("identifier", "BIN-7")

    @pytest.mark.parametrize("product_ref,identifier", [(None, None), ("SKU", "BIN-7")])
    def test_item_reference_must_be_exactly_one(self, product_ref, identifier):
        with pytest.raises(InvalidItemReferenceError) as exc_info:
            LotInsertRequest.from_mapping(
                2, self._record(product_ref=product_ref, identifier=identifier)
            )
        assert exc_info.value.entry_index == 2

    def test_inventory_id_needs_no_reference(self):
        inventory_id = uuid4()
        request = LotInsertRequest.from_mapping(
            0, self._record(product_ref=None, inventory_id=str(inventory_id))
        )
        assert request.item_key == ("id", str(inventory_id))

    @pytest.mark.parametrize(
        "overrides,field",
        [
            ({"quantity": 0}, "quantity"),
            ({"quantity": -2}, "quantity"),
            ({"lot_number": "  "}, "lot_number"),
            ({"fee": "-1"}, "fee"),
            ({"fee": "abc"}, "fee"),
            ({"expiry_date": "soon"}, "expiry_date"),
            (
                {"manufacture_date": "2025-02-01", "expiry_date": "2025-01-01"},
                "expiry_date",
            ),
            ({"kind": "service"}, "kind"),
        ],
    )
    def test_invalid_records(self, overrides, field):
        with pytest.raises(InvalidRecordError) as exc_info:
            LotInsertRequest.from_mapping(1, self._record(**overrides))
        assert exc_info.value.field == field


def test_lot_candidate_unreserved_quantity():
    candidate = LotCandidate(
        lot_id=uuid4(),
        warehouse_id=uuid4(),
        inventory_id=uuid4(),
        lot_number="L",
        quantity=10,
        reserved_quantity=4,
        expiry_date=None,
        inbound_date=None,
    )
    assert candidate.unreserved_quantity == 6


def test_history_report_is_intact():
    assert HistoryIntegrityReport(uuid4(), 3, ()).is_intact
    assert not HistoryIntegrityReport(uuid4(), 3, (uuid4(),)).is_intact


def test_allocation_strategy_parse():
    assert AllocationStrategy.parse("FIFO") is AllocationStrategy.FIFO
    assert AllocationStrategy.parse(AllocationStrategy.FEFO) is AllocationStrategy.FEFO
    with pytest.raises(ValueError):
        AllocationStrategy.parse("lifo")
