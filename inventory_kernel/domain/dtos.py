"""
DTOs -- immutable data structures crossing the service boundary.

Responsibility:
    Input records for the adjustment and insert paths, results returned to
    callers, and reference-data snapshots handed between services.  Raw
    mapping input is normalized through the ``from_mapping`` constructors,
    which raise InvalidRecordError naming the offending batch position.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Services convert ORM rows to these
    DTOs; selectors return them.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from inventory_kernel.exceptions import InvalidItemReferenceError, InvalidRecordError


def _as_uuid(index: int, field: str, value: Any, required: bool = True) -> UUID | None:
    if value is None or value == "":
        if required:
            raise InvalidRecordError(index, field, "is required")
        return None
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise InvalidRecordError(index, field, f"is not a valid id: {value!r}") from None


def _as_int(index: int, field: str, value: Any) -> int:
    if value is None:
        raise InvalidRecordError(index, field, "is required")
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRecordError(index, field, f"must be an integer, got {value!r}")
    return value


def _as_date(index: int, field: str, value: Any) -> date | None:
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise InvalidRecordError(index, field, f"is not an ISO date: {value!r}") from None


def _as_text(index: int, field: str, value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidRecordError(index, field, "must be a string")
    return value


# ---------------------------------------------------------------------------
# Reference data snapshots
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StatusRef:
    id: UUID
    domain: str
    name: str


@dataclass(frozen=True)
class ActionTypeRef:
    id: UUID
    name: str
    category: str


@dataclass(frozen=True)
class AdjustmentTypeRef:
    id: UUID
    name: str
    inventory_action_type_id: UUID
    is_active: bool = True


# ---------------------------------------------------------------------------
# Adjustment path
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AdjustmentRequest:
    """One entry of an adjustment batch."""

    lot_id: UUID
    adjustment_type_id: UUID
    delta: int
    comments: str | None = None
    order_id: UUID | None = None

    @classmethod
    def from_mapping(cls, index: int, data: Mapping[str, Any]) -> AdjustmentRequest:
        """Build from a raw record, validating every field."""
        delta = _as_int(index, "delta", data.get("delta"))
        if delta == 0:
            raise InvalidRecordError(index, "delta", "must be non-zero")
        return cls(
            lot_id=_as_uuid(index, "lot_id", data.get("lot_id")),
            adjustment_type_id=_as_uuid(
                index, "adjustment_type_id", data.get("adjustment_type_id")
            ),
            delta=delta,
            comments=_as_text(index, "comments", data.get("comments")),
            order_id=_as_uuid(index, "order_id", data.get("order_id"), required=False),
        )


@dataclass(frozen=True)
class AdjustedLot:
    """Result of one applied adjustment."""

    lot_id: UUID
    warehouse_id: UUID
    inventory_id: UUID
    previous_quantity: int
    new_quantity: int
    lot_status: str


# ---------------------------------------------------------------------------
# Insert path
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LotInsertRequest:
    """
    One receipt of stock.

    The item is identified by ``inventory_id`` when it already exists, or
    by exactly one of ``product_ref`` / ``identifier`` (get-or-create).
    """

    warehouse_id: UUID
    lot_number: str
    quantity: int
    inventory_id: UUID | None = None
    product_ref: str | None = None
    identifier: str | None = None
    kind: str = "product"
    manufacture_date: date | None = None
    expiry_date: date | None = None
    inbound_date: date | None = None
    fee: Decimal | None = None
    comments: str | None = None

    @property
    def item_key(self) -> tuple[str, str]:
        if self.inventory_id is not None:
            return ("id", str(self.inventory_id))
        if self.product_ref is not None:
            return ("product_ref", self.product_ref)
        return ("identifier", self.identifier or "")

    @classmethod
    def from_mapping(cls, index: int, data: Mapping[str, Any]) -> LotInsertRequest:
        """Build from a raw record, validating every field."""
        quantity = _as_int(index, "quantity", data.get("quantity"))
        if quantity <= 0:
            raise InvalidRecordError(index, "quantity", "must be positive")

        lot_number = _as_text(index, "lot_number", data.get("lot_number"))
        if lot_number is None or not lot_number.strip():
            raise InvalidRecordError(index, "lot_number", "is required")

        inventory_id = _as_uuid(
            index, "inventory_id", data.get("inventory_id"), required=False
        )
        product_ref = _as_text(index, "product_ref", data.get("product_ref")) or None
        identifier = _as_text(index, "identifier", data.get("identifier")) or None
        if inventory_id is None and (product_ref is None) == (identifier is None):
            raise InvalidItemReferenceError(index, product_ref, identifier)

        kind = data.get("kind") or ("product" if product_ref is not None else "other")
        if kind not in ("product", "other"):
            raise InvalidRecordError(index, "kind", f"must be product or other, got {kind!r}")

        fee = data.get("fee")
        if fee is not None:
            try:
                fee = Decimal(str(fee))
            except InvalidOperation:
                raise InvalidRecordError(index, "fee", f"is not a number: {fee!r}") from None
            if fee < 0:
                raise InvalidRecordError(index, "fee", "must be non-negative")

        manufacture_date = _as_date(index, "manufacture_date", data.get("manufacture_date"))
        expiry_date = _as_date(index, "expiry_date", data.get("expiry_date"))
        if manufacture_date and expiry_date and expiry_date < manufacture_date:
            raise InvalidRecordError(index, "expiry_date", "is before manufacture_date")

        return cls(
            warehouse_id=_as_uuid(index, "warehouse_id", data.get("warehouse_id")),
            lot_number=lot_number.strip(),
            quantity=quantity,
            inventory_id=inventory_id,
            product_ref=product_ref,
            identifier=identifier,
            kind=kind,
            manufacture_date=manufacture_date,
            expiry_date=expiry_date,
            inbound_date=_as_date(index, "inbound_date", data.get("inbound_date")),
            fee=fee,
            comments=_as_text(index, "comments", data.get("comments")),
        )


@dataclass(frozen=True)
class InsertedLot:
    """Result of one receipt.  ``created`` is False when stock was added to an existing lot."""

    lot_id: UUID
    warehouse_id: UUID
    inventory_id: UUID
    lot_number: str
    quantity_received: int
    new_quantity: int
    created: bool


# ---------------------------------------------------------------------------
# Cascade / allocation / integrity
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CascadeResult:
    """Outcome of applying one lot delta through all three granularities."""

    previous_quantity: int
    new_quantity: int
    lot_status: StatusRef
    warehouse_status: StatusRef
    item_status: StatusRef


@dataclass(frozen=True)
class LotCandidate:
    """A lot eligible for allocation."""

    lot_id: UUID
    warehouse_id: UUID
    inventory_id: UUID
    lot_number: str
    quantity: int
    reserved_quantity: int
    expiry_date: date | None
    inbound_date: date | None

    @property
    def unreserved_quantity(self) -> int:
        return self.quantity - self.reserved_quantity


@dataclass(frozen=True)
class HistoryIntegrityReport:
    """Result of recomputing every history checksum for one item."""

    inventory_id: UUID
    rows_checked: int
    mismatched_ids: tuple[UUID, ...]

    @property
    def is_intact(self) -> bool:
        return not self.mismatched_ids
