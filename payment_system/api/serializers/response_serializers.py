from rest_framework import serializers


class ErrorResponseSerializer(serializers.Serializer):
    error = serializers.CharField(help_text="Machine-readable error code")
    detail = serializers.CharField(help_text="Human-readable message")
    details = serializers.DictField(required=False)


# ==============================================================================
# Seller balance
# ==============================================================================


class SellerBalanceResponseSerializer(serializers.Serializer):
    store_id = serializers.CharField()
    currency = serializers.CharField()
    available_balance = serializers.CharField()
    pending_balance = serializers.CharField()
    total_balance = serializers.CharField()
    hold_period_days = serializers.IntegerField()
    minimum_payout_amount = serializers.CharField()
    next_release_at = serializers.CharField(allow_null=True)
    last_payout_at = serializers.CharField(allow_null=True)
    last_payout_amount = serializers.CharField(allow_null=True)


class BalanceTransactionSerializer(serializers.Serializer):
    id = serializers.CharField()
    type = serializers.CharField()
    amount = serializers.CharField()
    signed_amount = serializers.CharField()
    currency = serializers.CharField()
    status = serializers.CharField()
    balance_before = serializers.CharField()
    balance_after = serializers.CharField()
    available_at = serializers.CharField(allow_null=True)
    released_at = serializers.CharField(allow_null=True)
    order_id = serializers.CharField(allow_null=True)
    payout_id = serializers.CharField(allow_null=True)
    reference_type = serializers.CharField()
    reference_id = serializers.CharField()
    description = serializers.CharField()
    created_at = serializers.CharField()


class BalanceTransactionListResponseSerializer(serializers.Serializer):
    count = serializers.IntegerField()
    limit = serializers.IntegerField()
    offset = serializers.IntegerField()
    results = BalanceTransactionSerializer(many=True)


class ReconciliationResponseSerializer(serializers.Serializer):
    store_id = serializers.CharField()
    currency = serializers.CharField()
    snapshot = serializers.DictField(child=serializers.CharField())
    ledger = serializers.DictField(child=serializers.CharField())
    drift = serializers.DictField(child=serializers.CharField())
    balanced = serializers.BooleanField()


# ==============================================================================
# Payouts
# ==============================================================================


class PayoutSerializer(serializers.Serializer):
    id = serializers.CharField()
    store_id = serializers.CharField()
    amount = serializers.CharField()
    currency = serializers.CharField()
    status = serializers.CharField()
    transfer_reference = serializers.CharField()
    failure_reason = serializers.CharField()
    requested_at = serializers.CharField(allow_null=True)
    processed_at = serializers.CharField(allow_null=True)
    completed_at = serializers.CharField(allow_null=True)


class PayoutListResponseSerializer(serializers.Serializer):
    count = serializers.IntegerField()
    limit = serializers.IntegerField()
    offset = serializers.IntegerField()
    results = PayoutSerializer(many=True)


# ==============================================================================
# Payment events
# ==============================================================================


class PaymentEventResponseSerializer(serializers.Serializer):
    payment_id = serializers.CharField()
    order_id = serializers.CharField()
    kind = serializers.CharField()
    reference = serializers.CharField()
    amount = serializers.CharField()
    currency = serializers.CharField()
    allocations = serializers.DictField(child=serializers.CharField(), help_text="store_id -> share")
    duplicate = serializers.BooleanField(help_text="True when the reference was already processed")
