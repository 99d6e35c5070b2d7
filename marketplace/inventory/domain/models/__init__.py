from .inventory import InventoryAdjustment, InventoryLevel, InventoryLocation


__all__ = [
    "InventoryLocation",
    "InventoryLevel",
    "InventoryAdjustment",
]
