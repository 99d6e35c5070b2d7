from django.urls import path

from .api.views import admin_views, balance_views, event_views, payout_views


app_name = "payment_system"

urlpatterns = [
    # Seller balance
    path("balance/", balance_views.seller_balance, name="seller_balance"),
    path("balance/transactions/", balance_views.balance_transactions, name="balance_transactions"),
    # Payouts
    path("payouts/", payout_views.payouts, name="payouts"),
    path("payouts/<uuid:payout_id>/cancel/", payout_views.cancel_payout, name="cancel_payout"),
    # Admin endpoints
    path("admin/payouts/<uuid:payout_id>/complete/", admin_views.complete_payout, name="admin_complete_payout"),
    path("admin/payouts/<uuid:payout_id>/fail/", admin_views.fail_payout, name="admin_fail_payout"),
    path("admin/adjustments/", admin_views.create_adjustment, name="admin_create_adjustment"),
    path("admin/balances/<uuid:store_id>/reconcile/", admin_views.reconcile_balance, name="admin_reconcile_balance"),
    # Payment processor callbacks
    path("events/payment-succeeded/", event_views.payment_succeeded, name="payment_succeeded"),
    path("events/payment-refunded/", event_views.payment_refunded, name="payment_refunded"),
]
