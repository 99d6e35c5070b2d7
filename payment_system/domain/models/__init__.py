from .order_payment import OrderPayment
from .payout import SellerPayout
from .seller_balance import SellerBalance, SellerBalanceTransaction, SellerPayoutSettings


__all__ = [
    "OrderPayment",
    "SellerBalance",
    "SellerBalanceTransaction",
    "SellerPayout",
    "SellerPayoutSettings",
]
