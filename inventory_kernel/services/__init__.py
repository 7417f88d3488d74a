"""Kernel services: stores, stock cascade, adjustment engine, insert path, audit writer."""

from inventory_kernel.services.adjustment_engine import (
    AdjustmentEngineOptions,
    LotAdjustmentEngine,
)
from inventory_kernel.services.adjustment_type_catalog import AdjustmentTypeCatalog
from inventory_kernel.services.audit_trail_writer import AuditTrailWriter
from inventory_kernel.services.inventory_item_store import InventoryItemStore
from inventory_kernel.services.lot_insert_service import LotInsertOptions, LotInsertService
from inventory_kernel.services.lot_inventory_service import LotInventoryService
from inventory_kernel.services.lot_store import LotStore
from inventory_kernel.services.reference_data_loader import (
    ActionTypeSeed,
    AdjustmentTypeSeed,
    ReferenceDataLoader,
)
from inventory_kernel.services.status_resolver import StatusResolver
from inventory_kernel.services.stock_cascade import StockCascade
from inventory_kernel.services.warehouse_inventory_store import WarehouseInventoryStore

__all__ = [
    "AdjustmentEngineOptions",
    "LotAdjustmentEngine",
    "AdjustmentTypeCatalog",
    "AuditTrailWriter",
    "InventoryItemStore",
    "LotInsertOptions",
    "LotInsertService",
    "LotInventoryService",
    "LotStore",
    "ActionTypeSeed",
    "AdjustmentTypeSeed",
    "ReferenceDataLoader",
    "StatusResolver",
    "StockCascade",
    "WarehouseInventoryStore",
]
