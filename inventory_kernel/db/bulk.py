"""
Module: inventory_kernel.db.bulk
Responsibility: Multi-row INSERT with conflict handling, one round trip per
    call.  Used by the audit trail writer (append-only tables), the insert
    path (conflict-safe creation of warehouse aggregates and lots) and the
    reference data loader (idempotent seeding).
Architecture position: Kernel > DB.  May import from db/base.py only.

Invariants enforced:
    - One statement per call: rows are sent as a single multi-VALUES INSERT.
    - DO_NOTHING returns only the rows actually inserted; rows that hit the
      conflict target are silently dropped from the result.
    - UPDATE overwrites exactly the listed columns from the incoming row
      (EXCLUDED.*) and returns the resulting row.

Failure modes:
    - ValueError if a conflict strategy is requested without conflict columns,
      or UPDATE without update columns.
    - NotImplementedError for dialects other than PostgreSQL and SQLite.
    - IntegrityError propagates for ConflictStrategy.NONE on duplicates.
"""

from enum import Enum
from typing import Any, Sequence

from sqlalchemy import Table, insert
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session


class ConflictStrategy(str, Enum):
    """What to do when an incoming row collides with the conflict target."""

    NONE = "none"
    DO_NOTHING = "do_nothing"
    UPDATE = "update"


_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def bulk_insert(
    session: Session,
    table: Table,
    rows: Sequence[dict[str, Any]],
    conflict_columns: Sequence[str] = (),
    strategy: ConflictStrategy = ConflictStrategy.NONE,
    update_columns: Sequence[str] = (),
) -> list[dict[str, Any]]:
    """
    Insert ``rows`` into ``table`` and return the inserted rows as mappings.

    Args:
        session: Session whose transaction the statement joins.
        table: Target table (``Model.__table__``).
        rows: Row dicts; every dict must carry the same keys.
        conflict_columns: Columns of the unique constraint used as the
            conflict target.
        strategy: NONE, DO_NOTHING or UPDATE.
        update_columns: Columns overwritten on conflict (UPDATE only).

    Returns:
        List of row mappings (column name -> value) for rows written.
    """
    if not rows:
        return []

    if strategy is not ConflictStrategy.NONE and not conflict_columns:
        raise ValueError(f"{strategy.value} requires conflict_columns")
    if strategy is ConflictStrategy.UPDATE and not update_columns:
        raise ValueError("update strategy requires update_columns")

    if strategy is ConflictStrategy.NONE:
        stmt = insert(table).values(list(rows))
    else:
        dialect = session.get_bind().dialect.name
        dialect_insert = _DIALECT_INSERTS.get(dialect)
        if dialect_insert is None:
            raise NotImplementedError(f"bulk upsert not supported on {dialect}")
        stmt = dialect_insert(table).values(list(rows))
        if strategy is ConflictStrategy.DO_NOTHING:
            stmt = stmt.on_conflict_do_nothing(index_elements=list(conflict_columns))
        else:
            stmt = stmt.on_conflict_do_update(
                index_elements=list(conflict_columns),
                set_={col: stmt.excluded[col] for col in update_columns},
            )

    result = session.execute(stmt.returning(*table.c))
    return [dict(row) for row in result.mappings().all()]
