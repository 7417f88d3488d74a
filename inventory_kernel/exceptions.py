"""
Typed Exception Hierarchy for the Inventory Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Stock bookkeeping must fail precisely.  A caller that submitted a batch of
adjustments needs to know WHICH entry failed and WHY, without parsing
message strings:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)
  4. Errors raised while processing a batch carry ``entry_index`` -- the
     zero-based position of the failing record in the caller's batch.

Example:
    try:
        service.adjust_lots(records, actor_id)
    except NegativeStockError as e:
        api_response(code=e.code, entry=e.entry_index, lot=e.lot_id)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    InventoryKernelError (base)
    |
    +-- NotFoundError
    |   +-- LotNotFoundError
    |   +-- WarehouseNotFoundError
    |   +-- WarehouseInventoryNotFoundError
    |   +-- InventoryItemNotFoundError
    |   +-- StatusNotFoundError
    |   +-- AdjustmentTypeNotFoundError
    |   +-- ActionTypeNotFoundError
    |
    +-- ValidationError
    |   +-- InvalidRecordError
    |   +-- BatchSizeExceededError
    |   +-- InvalidItemReferenceError
    |
    +-- InvariantViolationError
    |   +-- NegativeStockError
    |   +-- NegativeAvailableQuantityError
    |   +-- NegativeReservedQuantityError
    |
    +-- InvalidStateTransitionError
    |   +-- TerminalLotStatusError
    |   +-- DepletedLotError
    |
    +-- DatabaseError
    |   +-- LookupUnavailableError
    |   +-- AuditPersistenceError
    |
    +-- AuditError
        +-- ChecksumMismatchError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|---------------------------------------
Not found       | LOT_NOT_FOUND                 | Lot id / key doesn't exist
                | WAREHOUSE_NOT_FOUND           | Warehouse id doesn't exist
                | WAREHOUSE_INVENTORY_NOT_FOUND | No aggregate row for (warehouse, item)
                | INVENTORY_ITEM_NOT_FOUND      | Global item doesn't exist
                | STATUS_NOT_FOUND              | Status name/id absent in its domain
                | ADJUSTMENT_TYPE_NOT_FOUND     | Adjustment type id/name absent
                | ACTION_TYPE_NOT_FOUND         | Inventory action type absent
----------------|-------------------------------|---------------------------------------
Validation      | INVALID_RECORD                | Missing/malformed field in a record
                | BATCH_SIZE_EXCEEDED           | Too many records in one call
                | INVALID_ITEM_REFERENCE        | Not exactly one of product_ref/identifier
----------------|-------------------------------|---------------------------------------
Invariant       | NEGATIVE_STOCK                | Lot quantity would go below zero
                | NEGATIVE_AVAILABLE_QUANTITY   | Warehouse available would go below zero
                | NEGATIVE_RESERVED_QUANTITY    | Reserved quantity would go below zero
----------------|-------------------------------|---------------------------------------
State           | TERMINAL_LOT_STATUS           | Lot is shipped / expired / sold_out
                | DEPLETED_LOT                  | Negative delta on an out_of_stock lot
----------------|-------------------------------|---------------------------------------
Database        | LOOKUP_UNAVAILABLE            | Idempotent read failed after retries
                | AUDIT_PERSISTENCE_FAILED      | Bulk audit insert failed
----------------|-------------------------------|---------------------------------------
Audit           | CHECKSUM_MISMATCH             | Stored history checksum != recomputed

===============================================================================
PROPAGATION
===============================================================================

NotFound, InvariantViolation and InvalidStateTransition abort the whole
adjustment batch: the transaction is rolled back and no partial result is
returned.  DatabaseError on a sub-lookup is only raised after the bounded
retry in ``inventory_kernel.utils.retry`` is exhausted.
"""


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.  ``entry_index`` is populated by batch operations
    with the position of the offending record.
    """

    code: str = "INVENTORY_KERNEL_ERROR"
    entry_index: int | None = None


# Not found


class NotFoundError(InventoryKernelError):
    """Base exception for references that do not resolve."""

    code: str = "NOT_FOUND"


class LotNotFoundError(NotFoundError):
    """Lot with given id or natural key was not found."""

    code: str = "LOT_NOT_FOUND"

    def __init__(self, lot_ref: str):
        self.lot_ref = lot_ref
        super().__init__(f"Lot not found: {lot_ref}")


class WarehouseNotFoundError(NotFoundError):
    """Warehouse with given id was not found."""

    code: str = "WAREHOUSE_NOT_FOUND"

    def __init__(self, warehouse_id: str):
        self.warehouse_id = warehouse_id
        super().__init__(f"Warehouse not found: {warehouse_id}")


class WarehouseInventoryNotFoundError(NotFoundError):
    """No warehouse aggregate exists for the (warehouse, item) pair."""

    code: str = "WAREHOUSE_INVENTORY_NOT_FOUND"

    def __init__(self, warehouse_id: str, inventory_id: str):
        self.warehouse_id = warehouse_id
        self.inventory_id = inventory_id
        super().__init__(
            f"No warehouse inventory for warehouse {warehouse_id}, "
            f"item {inventory_id}"
        )


class InventoryItemNotFoundError(NotFoundError):
    """Global inventory item was not found."""

    code: str = "INVENTORY_ITEM_NOT_FOUND"

    def __init__(self, inventory_ref: str):
        self.inventory_ref = inventory_ref
        super().__init__(f"Inventory item not found: {inventory_ref}")


class StatusNotFoundError(NotFoundError):
    """Status name or id does not exist in the given domain."""

    code: str = "STATUS_NOT_FOUND"

    def __init__(self, domain: str, status_ref: str):
        self.domain = domain
        self.status_ref = status_ref
        super().__init__(f"Status not found in domain {domain}: {status_ref}")


class AdjustmentTypeNotFoundError(NotFoundError):
    """Lot adjustment type id or name does not exist (or is inactive)."""

    code: str = "ADJUSTMENT_TYPE_NOT_FOUND"

    def __init__(self, adjustment_type_ref: str):
        self.adjustment_type_ref = adjustment_type_ref
        super().__init__(f"Adjustment type not found: {adjustment_type_ref}")


class ActionTypeNotFoundError(NotFoundError):
    """Inventory action type does not exist."""

    code: str = "ACTION_TYPE_NOT_FOUND"

    def __init__(self, action_type_ref: str):
        self.action_type_ref = action_type_ref
        super().__init__(f"Inventory action type not found: {action_type_ref}")


# Validation


class ValidationError(InventoryKernelError):
    """Base exception for malformed input batches."""

    code: str = "VALIDATION_ERROR"


class InvalidRecordError(ValidationError):
    """A record in the input batch has a missing or malformed field."""

    code: str = "INVALID_RECORD"

    def __init__(self, index: int, field: str, reason: str):
        self.index = index
        self.field = field
        self.reason = reason
        self.entry_index = index
        super().__init__(f"Invalid record at index {index}: {field} {reason}")


class BatchSizeExceededError(ValidationError):
    """Batch is empty or larger than the configured maximum."""

    code: str = "BATCH_SIZE_EXCEEDED"

    def __init__(self, size: int, max_size: int):
        self.size = size
        self.max_size = max_size
        super().__init__(
            f"Batch of {size} record(s) is outside the allowed range 1..{max_size}"
        )


class InvalidItemReferenceError(ValidationError):
    """Inventory item must be identified by exactly one of product_ref/identifier."""

    code: str = "INVALID_ITEM_REFERENCE"

    def __init__(self, index: int, product_ref: str | None, identifier: str | None):
        self.index = index
        self.product_ref = product_ref
        self.identifier = identifier
        self.entry_index = index
        super().__init__(
            f"Record {index} must set exactly one of product_ref/identifier "
            f"(got product_ref={product_ref!r}, identifier={identifier!r})"
        )


# Invariant violations


class InvariantViolationError(InventoryKernelError):
    """Base exception for mutations that would break a stock invariant."""

    code: str = "INVARIANT_VIOLATION"


class NegativeStockError(InvariantViolationError):
    """Adjustment would produce negative lot quantity."""

    code: str = "NEGATIVE_STOCK"

    def __init__(self, lot_id: str, lot_number: str, quantity: int, delta: int):
        self.lot_id = lot_id
        self.lot_number = lot_number
        self.quantity = quantity
        self.delta = delta
        super().__init__(
            f"Adjustment would produce negative stock for lot {lot_number}: "
            f"{quantity} + ({delta}) < 0"
        )


class NegativeAvailableQuantityError(InvariantViolationError):
    """Adjustment would produce negative warehouse available quantity."""

    code: str = "NEGATIVE_AVAILABLE_QUANTITY"

    def __init__(
        self, warehouse_id: str, inventory_id: str, available: int, delta: int
    ):
        self.warehouse_id = warehouse_id
        self.inventory_id = inventory_id
        self.available = available
        self.delta = delta
        super().__init__(
            f"Adjustment would produce negative available quantity for "
            f"warehouse {warehouse_id}, item {inventory_id}: "
            f"{available} + ({delta}) < 0"
        )


class NegativeReservedQuantityError(InvariantViolationError):
    """Reserved quantity would go below zero."""

    code: str = "NEGATIVE_RESERVED_QUANTITY"

    def __init__(self, entity: str, entity_id: str, reserved: int, delta: int):
        self.entity = entity
        self.entity_id = entity_id
        self.reserved = reserved
        self.delta = delta
        super().__init__(
            f"Reserved quantity for {entity} {entity_id} would go negative: "
            f"{reserved} + ({delta}) < 0"
        )


# State transitions


class InvalidStateTransitionError(InventoryKernelError):
    """Base exception for adjustments not permitted in the lot's status."""

    code: str = "INVALID_STATE_TRANSITION"


class TerminalLotStatusError(InvalidStateTransitionError):
    """Lot is in a terminal status (shipped, expired, sold_out)."""

    code: str = "TERMINAL_LOT_STATUS"

    def __init__(self, lot_id: str, lot_number: str, status: str):
        self.lot_id = lot_id
        self.lot_number = lot_number
        self.status = status
        super().__init__(
            f"Lot {lot_number} is {status}; no further adjustment is permitted"
        )


class DepletedLotError(InvalidStateTransitionError):
    """Negative adjustment attempted on an out_of_stock lot."""

    code: str = "DEPLETED_LOT"

    def __init__(self, lot_id: str, lot_number: str, delta: int):
        self.lot_id = lot_id
        self.lot_number = lot_number
        self.delta = delta
        super().__init__(
            f"Lot {lot_number} is out_of_stock; cannot apply delta {delta}"
        )


# Database


class DatabaseError(InventoryKernelError):
    """Base exception for transport or query failures."""

    code: str = "DATABASE_ERROR"


class LookupUnavailableError(DatabaseError):
    """An idempotent lookup kept failing after all retry attempts."""

    code: str = "LOOKUP_UNAVAILABLE"

    def __init__(self, operation: str, attempts: int):
        self.operation = operation
        self.attempts = attempts
        super().__init__(f"{operation} failed after {attempts} attempt(s)")


class AuditPersistenceError(DatabaseError):
    """Bulk insert of queued audit rows failed."""

    code: str = "AUDIT_PERSISTENCE_FAILED"

    def __init__(self, table: str, row_count: int):
        self.table = table
        self.row_count = row_count
        super().__init__(f"Failed to insert {row_count} row(s) into {table}")


# Audit


class AuditError(InventoryKernelError):
    """Base exception for audit trail integrity errors."""

    code: str = "AUDIT_ERROR"


class ChecksumMismatchError(AuditError):
    """A history row's stored checksum does not match its content."""

    code: str = "CHECKSUM_MISMATCH"

    def __init__(self, history_id: str, expected: str, actual: str):
        self.history_id = history_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Checksum mismatch for history row {history_id}: "
            f"stored {expected}, computed {actual}"
        )
