from marketplace.catalog.domain.models import InventoryItem, Listing, ListingVariant, Store
from marketplace.fulfillment.domain.models import Fulfillment
from marketplace.inventory.domain.models import InventoryAdjustment, InventoryLevel, InventoryLocation
from marketplace.ordering.domain.models import Customer, Order, OrderEvent, OrderItem


__all__ = [
    "Store",
    "Listing",
    "ListingVariant",
    "InventoryItem",
    "InventoryLocation",
    "InventoryLevel",
    "InventoryAdjustment",
    "Customer",
    "Order",
    "OrderItem",
    "OrderEvent",
    "Fulfillment",
]
