"""
HistorySelector -- tamper/corruption detection over the history ledger.

Recomputes each stored checksum from the row's own fields and compares it
with the stored value.  Any field mutation after insert shows up as a
mismatch.
"""

from uuid import UUID

from sqlalchemy import select

from inventory_kernel.domain.dtos import HistoryIntegrityReport
from inventory_kernel.exceptions import ChecksumMismatchError, NotFoundError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.audit import InventoryHistoryLog
from inventory_kernel.selectors.base import BaseSelector
from inventory_kernel.utils.hashing import compute_history_checksum

logger = get_logger("selectors.history")


class HistorySelector(BaseSelector[InventoryHistoryLog]):
    """Integrity checks for InventoryHistoryLog rows."""

    def verify_row(self, history_id: UUID) -> bool:
        """
        Raises:
            NotFoundError: No history row with this id.
            ChecksumMismatchError: Stored checksum does not match content.
        """
        row = self.session.get(InventoryHistoryLog, history_id)
        if row is None:
            raise NotFoundError(f"History row not found: {history_id}")
        actual = compute_history_checksum(row)
        if actual != row.checksum:
            raise ChecksumMismatchError(str(history_id), row.checksum, actual)
        return True

    def verify(self, inventory_id: UUID) -> HistoryIntegrityReport:
        """Recompute every checksum recorded for an item."""
        rows = self.session.execute(
            select(InventoryHistoryLog)
            .where(InventoryHistoryLog.inventory_id == inventory_id)
            .order_by(InventoryHistoryLog.recorded_at, InventoryHistoryLog.id)
        ).scalars().all()

        mismatched = tuple(
            row.id for row in rows if compute_history_checksum(row) != row.checksum
        )
        if mismatched:
            logger.error(
                "history_checksum_mismatch",
                extra={
                    "inventory_id": str(inventory_id),
                    "mismatched_ids": [str(m) for m in mismatched],
                },
            )
        return HistoryIntegrityReport(
            inventory_id=inventory_id,
            rows_checked=len(rows),
            mismatched_ids=mismatched,
        )
