from rest_framework import serializers

from payment_system.domain.models.payout import SellerPayout


class PayoutRequestSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, help_text="Amount to withdraw")
    store_id = serializers.UUIDField(required=False, help_text="Store to pay out (admins only)")


class PayoutCompleteRequestSerializer(serializers.Serializer):
    transfer_reference = serializers.CharField(max_length=255, help_text="Bank or processor transfer ID")


class PayoutFailRequestSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class AdjustmentRequestSerializer(serializers.Serializer):
    store_id = serializers.UUIDField()
    amount = serializers.DecimalField(
        max_digits=14, decimal_places=2, help_text="Positive credits the seller, negative debits"
    )
    description = serializers.CharField(max_length=500)
    currency = serializers.CharField(max_length=3, min_length=3, required=False)


class PaymentSucceededRequestSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    amount_paid = serializers.DecimalField(max_digits=14, decimal_places=2)
    reference = serializers.CharField(max_length=255, help_text="Processor payment ID; replays are ignored")
    platform_fee = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, default="0.00")
    processing_fee = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, default="0.00")
    currency = serializers.CharField(max_length=3, min_length=3, required=False)


class RefundRequestSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    reference = serializers.CharField(max_length=255, help_text="Processor refund ID; replays are ignored")
    currency = serializers.CharField(max_length=3, min_length=3, required=False)


class PayoutListQuerySerializer(serializers.Serializer):
    store_id = serializers.UUIDField(required=False)
    status = serializers.ChoiceField(choices=SellerPayout.PAYOUT_STATUS_CHOICES, required=False)
    limit = serializers.IntegerField(min_value=1, max_value=200, required=False, default=50)
    offset = serializers.IntegerField(min_value=0, required=False, default=0)


class TransactionListQuerySerializer(serializers.Serializer):
    store_id = serializers.UUIDField(required=False)
    type = serializers.CharField(required=False)
    limit = serializers.IntegerField(min_value=1, max_value=200, required=False, default=50)
    offset = serializers.IntegerField(min_value=0, required=False, default=0)
