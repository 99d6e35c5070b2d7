from .order_service import LIFECYCLE_TRANSITIONS, PAYMENT_TRANSITIONS, OrderService

__all__ = ["LIFECYCLE_TRANSITIONS", "PAYMENT_TRANSITIONS", "OrderService"]
