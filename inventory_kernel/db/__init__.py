"""Database layer - engine, base classes, bulk insert."""

from inventory_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from inventory_kernel.db.bulk import ConflictStrategy, bulk_insert
from inventory_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    session_scope,
)

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "bulk_insert",
    "ConflictStrategy",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
]
