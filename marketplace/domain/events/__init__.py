from .order_events import DomainEvent, OrderCanceledEvent, OrderFulfilledEvent, OrderPaidEvent, OrderPlacedEvent


__all__ = [
    "DomainEvent",
    "OrderCanceledEvent",
    "OrderFulfilledEvent",
    "OrderPaidEvent",
    "OrderPlacedEvent",
]
