import uuid
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.validators import MinValueValidator
from django.db import models


User = get_user_model()


class SellerPayout(models.Model):
    """
    A seller's request to withdraw available balance.

    The ledger is only touched when the payout completes (one ``payout`` debit row);
    failed or canceled payouts leave the balance unchanged.
    """

    STATUS_PENDING = "pending"
    STATUS_PROCESSING = "processing"
    STATUS_COMPLETED = "completed"
    STATUS_FAILED = "failed"
    STATUS_CANCELED = "canceled"

    PAYOUT_STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_PROCESSING, "Processing"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_FAILED, "Failed"),
        (STATUS_CANCELED, "Canceled"),
    ]

    OPEN_STATUSES = (STATUS_PENDING, STATUS_PROCESSING)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    store = models.ForeignKey("marketplace.Store", on_delete=models.PROTECT, related_name="payouts")
    amount = models.DecimalField(max_digits=14, decimal_places=2, validators=[MinValueValidator(Decimal("0.01"))])
    currency = models.CharField(max_length=3)
    status = models.CharField(max_length=20, choices=PAYOUT_STATUS_CHOICES, default=STATUS_PENDING)

    requested_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="requested_payouts"
    )
    transfer_reference = models.CharField(max_length=255, blank=True, help_text="Bank or processor transfer ID")
    failure_reason = models.TextField(blank=True)

    requested_at = models.DateTimeField(auto_now_add=True)
    processed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "payment_seller_payouts"
        ordering = ["-requested_at"]
        indexes = [
            models.Index(fields=["store", "-requested_at"], name="pay_payout_store_idx"),
            models.Index(fields=["status", "-requested_at"], name="pay_payout_status_idx"),
        ]

    @property
    def amount_formatted(self):
        return f"{self.amount:.2f} {self.currency}"

    @property
    def is_open(self):
        return self.status in self.OPEN_STATUSES

    def __str__(self):
        return f"Payout {self.amount_formatted} ({self.status}) for {self.store_id}"
