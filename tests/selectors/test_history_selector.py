"""
Tests for history ledger integrity verification.
"""

from uuid import uuid4

import pytest
from sqlalchemy import select, update

from inventory_kernel.exceptions import ChecksumMismatchError, NotFoundError
from inventory_kernel.models.audit import InventoryHistoryLog
from inventory_kernel.selectors.history_selector import HistorySelector


@pytest.fixture
def adjusted_lot(service, actor_id, stock_lot, adjustment_type_id):
    lot = stock_lot(10)
    service.adjust_lots(
        [
            {"lot_id": lot.id, "adjustment_type_id": adjustment_type_id("damaged"), "delta": -2},
            {"lot_id": lot.id, "adjustment_type_id": adjustment_type_id("lost"), "delta": -1},
        ],
        actor_id,
    )
    return lot


def _history_ids(session, lot):
    return session.execute(
        select(InventoryHistoryLog.id)
        .where(InventoryHistoryLog.lot_id == lot.id)
        .order_by(InventoryHistoryLog.previous_quantity.desc())
    ).scalars().all()


def test_untouched_history_is_intact(session, adjusted_lot):
    report = HistorySelector(session).verify(adjusted_lot.inventory_id)
    assert report.rows_checked == 3
    assert report.is_intact
    assert report.inventory_id == adjusted_lot.inventory_id


def test_verify_row(session, adjusted_lot):
    [history_id, *_] = _history_ids(session, adjusted_lot)
    assert HistorySelector(session).verify_row(history_id) is True


def test_tampered_row_detected(session, adjusted_lot, captured_logs):
    ids = _history_ids(session, adjusted_lot)
    tampered = ids[1]
    session.execute(
        update(InventoryHistoryLog)
        .where(InventoryHistoryLog.id == tampered)
        .values(new_quantity=100)
    )
    session.commit()
    session.expire_all()

    selector = HistorySelector(session)
    report = selector.verify(adjusted_lot.inventory_id)
    assert not report.is_intact
    assert report.mismatched_ids == (tampered,)
    assert any(r["message"] == "history_checksum_mismatch" for r in captured_logs())

    with pytest.raises(ChecksumMismatchError) as exc_info:
        selector.verify_row(tampered)
    assert exc_info.value.history_id == str(tampered)


def test_unknown_row(session, engine):
    with pytest.raises(NotFoundError):
        HistorySelector(session).verify_row(uuid4())


def test_unknown_item_has_no_rows(session, engine):
    report = HistorySelector(session).verify(uuid4())
    assert report.rows_checked == 0
    assert report.is_intact
