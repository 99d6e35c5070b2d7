from django.contrib import admin

from .models import OrderPayment, SellerBalance, SellerBalanceTransaction, SellerPayout, SellerPayoutSettings


@admin.register(SellerBalance)
class SellerBalanceAdmin(admin.ModelAdmin):
    """Snapshot only; corrections are posted as ledger adjustments."""

    list_display = ('store', 'available_balance', 'pending_balance', 'currency', 'last_payout_at', 'updated_at')
    search_fields = ('store__name',)
    readonly_fields = (
        'store', 'available_balance', 'pending_balance', 'currency',
        'last_payout_at', 'last_payout_amount', 'created_at', 'updated_at',
    )

    def has_add_permission(self, request):
        return False


@admin.register(SellerBalanceTransaction)
class SellerBalanceTransactionAdmin(admin.ModelAdmin):
    list_display = ('store', 'type', 'amount', 'currency', 'status', 'balance_after', 'available_at', 'created_at')
    list_filter = ('type', 'status', 'currency', 'created_at')
    search_fields = ('store__name', 'reference_id', 'description')
    date_hierarchy = 'created_at'

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(SellerPayout)
class SellerPayoutAdmin(admin.ModelAdmin):
    list_display = ('store', 'amount_formatted', 'status', 'transfer_reference', 'requested_at', 'completed_at')
    list_filter = ('status', 'currency', 'requested_at')
    search_fields = ('store__name', 'transfer_reference')
    readonly_fields = (
        'id', 'store', 'amount', 'currency', 'status', 'requested_by', 'transfer_reference',
        'failure_reason', 'requested_at', 'processed_at', 'completed_at', 'updated_at',
    )

    @admin.display(description='Amount')
    def amount_formatted(self, obj):
        return obj.amount_formatted


@admin.register(SellerPayoutSettings)
class SellerPayoutSettingsAdmin(admin.ModelAdmin):
    list_display = ('store', 'hold_period_days', 'minimum_amount', 'updated_at')
    search_fields = ('store__name',)


@admin.register(OrderPayment)
class OrderPaymentAdmin(admin.ModelAdmin):
    list_display = ('reference', 'order_id', 'kind', 'amount', 'platform_fee', 'currency', 'created_at')
    list_filter = ('kind', 'currency')
    search_fields = ('reference',)

    def has_change_permission(self, request, obj=None):
        return False
