from .balance_service import SellerBalanceService
from .payment_event_service import PaymentEventService, allocate_by_store
from .payout_service import PayoutService


__all__ = [
    "PaymentEventService",
    "PayoutService",
    "SellerBalanceService",
    "allocate_by_store",
]
