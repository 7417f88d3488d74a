"""
Adjustment policy -- which adjustment types reach the adjustment audit table.

Pure functions over type names.  An adjustment whose type is not
audit-worthy still changes quantities and still produces activity and
history rows; it only skips the WarehouseLotAdjustment record.
"""

from collections.abc import Iterable

AUDIT_WORTHY_ADJUSTMENT_TYPES: frozenset[str] = frozenset(
    {
        "damaged",
        "lost",
        "defective",
        "expired",
        "stolen",
        "recalled",
        "adjustment",
        "reclassified",
        "conversion",
    }
)

# Written by the insert path only; never offered to users.
SYSTEM_ADJUSTMENT_TYPES: frozenset[str] = frozenset(
    {"manual_stock_insert", "manual_stock_update"}
)


def is_audit_worthy(
    name: str,
    allow_list: Iterable[str] = AUDIT_WORTHY_ADJUSTMENT_TYPES,
) -> bool:
    """True if adjustments of type ``name`` must be written to the audit table."""
    normalized = name.strip().lower()
    if normalized in SYSTEM_ADJUSTMENT_TYPES:
        return False
    return normalized in frozenset(allow_list)


def is_user_selectable(name: str) -> bool:
    return name.strip().lower() not in SYSTEM_ADJUSTMENT_TYPES
