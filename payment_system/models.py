from .domain.models.order_payment import OrderPayment
from .domain.models.payout import SellerPayout
from .domain.models.seller_balance import SellerBalance, SellerBalanceTransaction, SellerPayoutSettings


__all__ = [
    "OrderPayment",
    "SellerBalance",
    "SellerBalanceTransaction",
    "SellerPayout",
    "SellerPayoutSettings",
]
