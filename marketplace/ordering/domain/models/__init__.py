from .order import Customer, Order, OrderEvent, OrderItem


__all__ = [
    "Customer",
    "Order",
    "OrderItem",
    "OrderEvent",
]
