"""Unit tests for canonical JSON and history checksums."""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from inventory_kernel.utils.hashing import (
    HISTORY_CHECKSUM_FIELDS,
    canonicalize_json,
    compute_history_checksum,
    hash_payload,
    history_checksum_fields,
)


def _history_row(**overrides):
    row = {
        "id": uuid4(),
        "inventory_id": UUID("11111111-1111-1111-1111-111111111111"),
        "warehouse_id": UUID("22222222-2222-2222-2222-222222222222"),
        "lot_id": UUID("33333333-3333-3333-3333-333333333333"),
        "inventory_action_type_id": UUID("44444444-4444-4444-4444-444444444444"),
        "adjustment_type_id": None,
        "order_id": None,
        "previous_quantity": 10,
        "quantity_change": -4,
        "new_quantity": 6,
        "status_id": UUID("55555555-5555-5555-5555-555555555555"),
        "source_type": "lot_adjustment",
        "comments": "cycle count",
        "recorded_by": UUID("66666666-6666-6666-6666-666666666666"),
        "recorded_at": datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
        "checksum_salt": "abc123",
    }
    row.update(overrides)
    return row


class TestCanonicalJson:
    def test_key_order_does_not_matter(self):
        assert canonicalize_json({"b": 1, "a": 2}) == canonicalize_json({"a": 2, "b": 1})

    def test_compact_separators(self):
        assert canonicalize_json({"a": [1, 2]}) == '{"a":[1,2]}'

    def test_special_types_serialize(self):
        text = canonicalize_json(
            {"d": date(2024, 5, 1), "n": Decimal("1.50"), "u": UUID(int=1)}
        )
        assert "2024-05-01" in text
        assert "00000000-0000-0000-0000-000000000001" in text

    def test_hash_payload_is_sha256_hex(self):
        digest = hash_payload({"a": 1})
        assert len(digest) == 64
        assert digest == hash_payload({"a": 1})


class TestHistoryChecksum:
    def test_deterministic(self):
        row = _history_row()
        assert compute_history_checksum(row) == compute_history_checksum(dict(row))

    def test_only_checksum_fields_are_covered(self):
        fields = history_checksum_fields(_history_row())
        assert tuple(sorted(fields)) == tuple(sorted(HISTORY_CHECKSUM_FIELDS))

    def test_id_and_timestamp_excluded(self):
        a = _history_row()
        b = _history_row(
            id=uuid4(), recorded_at=datetime(2030, 1, 1, tzinfo=timezone.utc)
        )
        assert compute_history_checksum(a) == compute_history_checksum(b)

    def test_quantity_change_detected(self):
        assert compute_history_checksum(_history_row()) != compute_history_checksum(
            _history_row(new_quantity=7)
        )

    def test_salt_distinguishes_identical_rows(self):
        assert compute_history_checksum(_history_row()) != compute_history_checksum(
            _history_row(checksum_salt="other")
        )

    def test_uuid_and_string_forms_agree(self):
        row = _history_row()
        as_strings = {
            k: str(v) if isinstance(v, UUID) else v for k, v in row.items()
        }
        assert compute_history_checksum(row) == compute_history_checksum(as_strings)
