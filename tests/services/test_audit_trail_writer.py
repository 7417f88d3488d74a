"""
Tests for AuditTrailWriter batching and failure handling.
"""

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from inventory_kernel.exceptions import AuditPersistenceError
from inventory_kernel.models.audit import InventoryActivityLog, InventoryHistoryLog
from inventory_kernel.models.reference import InventoryActionType
from inventory_kernel.services import audit_trail_writer
from inventory_kernel.services.audit_trail_writer import AuditTrailWriter
from inventory_kernel.services.status_resolver import StatusResolver
from inventory_kernel.utils.hashing import compute_history_checksum


@pytest.fixture
def writer(session):
    return AuditTrailWriter(session, StatusResolver(session))


@pytest.fixture
def lot_refs(session, stock_lot):
    lot = stock_lot(5)
    action_type_id = session.execute(
        select(InventoryActionType.id).where(InventoryActionType.name == "manual_adjustment")
    ).scalar_one()
    return {
        "inventory_id": lot.inventory_id,
        "warehouse_id": lot.warehouse_id,
        "lot_id": lot.id,
        "action_type_id": action_type_id,
    }


def _history_kwargs(lot_refs, clock, actor_id, **overrides):
    kwargs = dict(
        lot_refs,
        previous_quantity=5,
        quantity_change=-1,
        new_quantity=4,
        source_type="lot_adjustment",
        actor_id=actor_id,
        timestamp=clock.now(),
    )
    kwargs.update(overrides)
    return kwargs


def test_flush_inserts_queued_rows_once(session, writer, lot_refs, clock, actor_id):
    history_before = session.execute(
        select(func.count()).select_from(InventoryHistoryLog)
    ).scalar_one()
    writer.queue_history(**_history_kwargs(lot_refs, clock, actor_id))
    writer.queue_history(**_history_kwargs(lot_refs, clock, actor_id, comments="again"))
    assert writer.pending_counts["inventory_history"] == 2

    counts = writer.flush()

    assert counts == {
        "warehouse_lot_adjustments": 0,
        "inventory_activity_log": 0,
        "inventory_history": 2,
    }
    assert set(writer.pending_counts.values()) == {0}
    rows = session.execute(
        select(InventoryHistoryLog).where(InventoryHistoryLog.source_type == "lot_adjustment")
    ).scalars().all()
    assert len(rows) == 2
    assert history_before == 1
    assert all(row.checksum == compute_history_checksum(row) for row in rows)
    assert len({row.checksum_salt for row in rows}) == 2


def test_empty_flush(writer):
    assert set(writer.flush().values()) == {0}


def test_failed_insert_raises_audit_persistence_error(session, writer, clock, actor_id):
    writer.queue_activity(
        inventory_id=uuid4(),
        warehouse_id=uuid4(),
        lot_id=uuid4(),
        action_type_id=uuid4(),
        previous_quantity=1,
        quantity_change=1,
        new_quantity=2,
        status_id=None,
        actor_id=actor_id,
        timestamp=clock.now(),
    )

    with pytest.raises(AuditPersistenceError) as exc_info:
        writer.flush()

    assert exc_info.value.table == "inventory_activity_log"
    assert exc_info.value.row_count == 1
    assert writer.pending_counts["inventory_activity_log"] == 1
    session.rollback()
    assert session.execute(select(func.count()).select_from(InventoryActivityLog)).scalar_one() == 0


def test_row_swallowed_by_conflict_fails_flush(
    session, writer, lot_refs, clock, actor_id, monkeypatch
):
    fixed_id = uuid4()
    monkeypatch.setattr(audit_trail_writer, "uuid4", lambda: fixed_id)
    writer.queue_history(**_history_kwargs(lot_refs, clock, actor_id))
    assert writer.flush()["inventory_history"] == 1

    writer.queue_history(**_history_kwargs(lot_refs, clock, actor_id, comments="duplicate id"))
    with pytest.raises(AuditPersistenceError) as exc_info:
        writer.flush()

    assert exc_info.value.table == "inventory_history"
    assert exc_info.value.row_count == 1
    assert writer.pending_counts["inventory_history"] == 1
