"""
Deterministic hashing utilities.

History checksums are computed over a normalized field map serialized as
canonical JSON (sorted keys, compact separators), so adding, removing or
reordering columns in code never changes the hash of an existing row.
"""

import hashlib
import json
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

# Columns of inventory_history covered by the checksum.  recorded_at is not
# included: checksum_salt is the per-row uniqueness token.
HISTORY_CHECKSUM_FIELDS: tuple[str, ...] = (
    "inventory_id",
    "warehouse_id",
    "lot_id",
    "inventory_action_type_id",
    "adjustment_type_id",
    "order_id",
    "previous_quantity",
    "quantity_change",
    "new_quantity",
    "status_id",
    "source_type",
    "comments",
    "recorded_by",
    "checksum_salt",
)


def _json_serializer(obj: Any) -> Any:
    """
    Custom JSON serializer for types not natively supported.

    Raises:
        TypeError: If object type is not supported.
    """
    if isinstance(obj, Decimal):
        return str(obj.normalize())
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, bytes):
        return obj.hex()

    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonicalize_json(data: dict | list | Any) -> str:
    """
    Convert data to canonical JSON string.

    Keys are sorted, no whitespace, Decimal/datetime/UUID handled consistently.
    """
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        default=_json_serializer,
    )


def hash_payload(payload: dict) -> str:
    """
    Compute SHA-256 hash of a payload.

    Returns:
        Hex-encoded SHA-256 hash (64 characters).
    """
    canonical = canonicalize_json(payload)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _normalize(value: Any) -> Any:
    # Ids come back from the database as UUID; a str id must hash identically.
    if isinstance(value, UUID):
        return str(value)
    return value


def history_checksum_fields(source: Mapping[str, Any] | Any) -> dict[str, Any]:
    """
    Extract the checksummed field map from a row dict or an ORM instance.
    """
    if isinstance(source, Mapping):
        getter = source.get
    else:
        def getter(name: str) -> Any:
            return getattr(source, name, None)
    return {name: _normalize(getter(name)) for name in HISTORY_CHECKSUM_FIELDS}


def compute_history_checksum(source: Mapping[str, Any] | Any) -> str:
    """SHA-256 over the canonical JSON of the history row's checksummed fields."""
    return hash_payload(history_checksum_fields(source))
