import uuid
from decimal import Decimal

from django.db import models


class OrderPayment(models.Model):
    """
    A payment (or refund) event received from the external payment source.

    ``reference`` is the processor's identifier and makes event handling idempotent.
    """

    KIND_PAYMENT = "payment"
    KIND_REFUND = "refund"

    KIND_CHOICES = [
        (KIND_PAYMENT, "Payment"),
        (KIND_REFUND, "Refund"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    # kept with its order_id after the order is deleted
    order = models.ForeignKey(
        "marketplace.Order", on_delete=models.DO_NOTHING, db_constraint=False, related_name="payments"
    )
    kind = models.CharField(max_length=10, choices=KIND_CHOICES, default=KIND_PAYMENT)
    reference = models.CharField(max_length=255, unique=True)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    platform_fee = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3)
    # {store_id: amount} share of this payment or refund per vendor
    allocations = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "payment_order_payments"
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.kind} {self.amount} {self.currency} for order {self.order_id}"
