"""Domain models for the inventory kernel."""

from inventory_kernel.models.audit import (
    InventoryActivityLog,
    InventoryHistoryLog,
    WarehouseLotAdjustment,
)
from inventory_kernel.models.inventory_item import InventoryItem, InventoryKind
from inventory_kernel.models.reference import InventoryActionType, LotAdjustmentType
from inventory_kernel.models.status import (
    LIFECYCLE_STATUS_DOMAIN,
    STOCK_STATUS_DOMAIN,
    Status,
)
from inventory_kernel.models.warehouse import Warehouse
from inventory_kernel.models.warehouse_inventory import (
    WarehouseInventory,
    WarehouseInventoryLot,
)

__all__ = [
    "Status",
    "STOCK_STATUS_DOMAIN",
    "LIFECYCLE_STATUS_DOMAIN",
    "Warehouse",
    "InventoryItem",
    "InventoryKind",
    "WarehouseInventory",
    "WarehouseInventoryLot",
    "InventoryActionType",
    "LotAdjustmentType",
    "WarehouseLotAdjustment",
    "InventoryActivityLog",
    "InventoryHistoryLog",
]
