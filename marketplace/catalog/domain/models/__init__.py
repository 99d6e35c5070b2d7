from .catalog import InventoryItem, Listing, ListingVariant, Store


__all__ = [
    "Store",
    "Listing",
    "ListingVariant",
    "InventoryItem",
]
