import uuid
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.validators import MinValueValidator
from django.db import models


User = get_user_model()


class SellerBalance(models.Model):
    """
    Cached balance snapshot for one store.

    Always reconstructible from SellerBalanceTransaction rows; maintained incrementally
    by SellerBalanceService.record under a row lock.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    store = models.OneToOneField("marketplace.Store", on_delete=models.CASCADE, related_name="seller_balance")
    available_balance = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    pending_balance = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3)

    last_payout_at = models.DateTimeField(null=True, blank=True)
    last_payout_amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "payment_seller_balances"

    @property
    def total_balance(self):
        return self.available_balance + self.pending_balance

    def __str__(self):
        return f"Balance {self.store_id}: {self.available_balance} available, {self.pending_balance} pending"


class SellerBalanceTransaction(models.Model):
    """
    Immutable ledger row.

    ``amount`` is positive for every type except ``adjustment``, whose sign is the
    direction of the correction. The only permitted change after insert is the hold
    release of an ``order_payment`` credit (status pending -> available, released_at).
    """

    TYPE_ORDER_PAYMENT = "order_payment"
    TYPE_PLATFORM_FEE = "platform_fee"
    TYPE_STRIPE_FEE = "stripe_fee"
    TYPE_SHIPPING_LABEL = "shipping_label"
    TYPE_REFUND = "refund"
    TYPE_DISPUTE = "dispute"
    TYPE_PAYOUT = "payout"
    TYPE_ADJUSTMENT = "adjustment"

    TYPE_CHOICES = [
        (TYPE_ORDER_PAYMENT, "Order Payment"),
        (TYPE_PLATFORM_FEE, "Platform Fee"),
        (TYPE_STRIPE_FEE, "Payment Processing Fee"),
        (TYPE_SHIPPING_LABEL, "Shipping Label"),
        (TYPE_REFUND, "Refund"),
        (TYPE_DISPUTE, "Dispute"),
        (TYPE_PAYOUT, "Payout"),
        (TYPE_ADJUSTMENT, "Adjustment"),
    ]

    CREDIT_TYPES = frozenset({TYPE_ORDER_PAYMENT})
    DEBIT_TYPES = frozenset(
        {TYPE_PLATFORM_FEE, TYPE_STRIPE_FEE, TYPE_SHIPPING_LABEL, TYPE_REFUND, TYPE_DISPUTE, TYPE_PAYOUT}
    )

    STATUS_PENDING = "pending"
    STATUS_AVAILABLE = "available"
    STATUS_PAID = "paid"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_AVAILABLE, "Available"),
        (STATUS_PAID, "Paid"),
    ]

    MUTABLE_FIELDS = ("status", "released_at")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    store = models.ForeignKey("marketplace.Store", on_delete=models.PROTECT, related_name="balance_transactions")
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    currency = models.CharField(max_length=3)

    balance_before = models.DecimalField(max_digits=14, decimal_places=2)
    balance_after = models.DecimalField(max_digits=14, decimal_places=2)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES)
    available_at = models.DateTimeField(null=True, blank=True)
    released_at = models.DateTimeField(null=True, blank=True)

    # References. Deleting an order leaves its ledger rows untouched, order_id included.
    order = models.ForeignKey(
        "marketplace.Order",
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        null=True,
        blank=True,
        related_name="balance_transactions",
    )
    payout = models.ForeignKey(
        "payment_system.SellerPayout",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="balance_transactions",
    )
    reference_type = models.CharField(max_length=50, blank=True)
    reference_id = models.CharField(max_length=255, blank=True)

    description = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "payment_seller_balance_transactions"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["store", "-created_at"], name="pay_balance_tx_store_idx"),
            models.Index(fields=["status", "available_at"], name="pay_balance_tx_release_idx"),
            models.Index(fields=["reference_type", "reference_id"], name="pay_balance_tx_reference_idx"),
        ]

    @property
    def signed_amount(self) -> Decimal:
        if self.type == self.TYPE_ADJUSTMENT:
            return self.amount
        if self.type in self.CREDIT_TYPES:
            return self.amount
        return -self.amount

    @property
    def bucket(self) -> str:
        """Which snapshot column this row counts toward: 'pending' or 'available'."""
        return "pending" if self.status == self.STATUS_PENDING else "available"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            original = type(self).objects.filter(pk=self.pk).values().first()
            if original is not None:
                changed = [
                    field.attname
                    for field in self._meta.concrete_fields
                    if field.attname not in self.MUTABLE_FIELDS and original[field.attname] != getattr(self, field.attname)
                ]
                if changed:
                    raise ValueError(f"Ledger transactions are immutable (attempted change: {', '.join(changed)})")
                if original["status"] != self.status and not (
                    original["status"] == self.STATUS_PENDING and self.status == self.STATUS_AVAILABLE
                ):
                    raise ValueError(f"Invalid ledger status change {original['status']} -> {self.status}")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Ledger transactions cannot be deleted")

    def __str__(self):
        return f"{self.type} {self.signed_amount} {self.currency} ({self.status})"


class SellerPayoutSettings(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    store = models.OneToOneField("marketplace.Store", on_delete=models.CASCADE, related_name="payout_settings")
    hold_period_days = models.PositiveIntegerField(
        null=True, blank=True, help_text="Days an order payment stays pending. Empty uses the platform default."
    )
    minimum_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Minimum payout amount. Empty uses the platform default.",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "payment_seller_payout_settings"

    def __str__(self):
        return f"Payout settings for {self.store_id}"
