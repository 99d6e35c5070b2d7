from .inventory_service import (
    DIRECTION_FULFILL,
    DIRECTION_RELEASE,
    DIRECTION_RESERVE,
    DIRECTIONS,
    InventoryService,
    StockLine,
    StockRequest,
)

__all__ = [
    "DIRECTIONS",
    "DIRECTION_FULFILL",
    "DIRECTION_RELEASE",
    "DIRECTION_RESERVE",
    "InventoryService",
    "StockLine",
    "StockRequest",
]
