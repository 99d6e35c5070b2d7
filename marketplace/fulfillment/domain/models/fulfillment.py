import uuid
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db import models

from marketplace.catalog.domain.models.catalog import Store
from marketplace.ordering.domain.models.order import Order

User = get_user_model()


class Fulfillment(models.Model):
    """
    One vendor's shipment (or pending shipment) for an order.

    An order gets one unfulfilled placeholder per vendor when it is created; further
    partial shipments add rows. ``Order.fulfillment_status`` is derived from these rows.
    """

    STATUS_UNFULFILLED = "unfulfilled"
    STATUS_PARTIAL = "partial"
    STATUS_FULFILLED = "fulfilled"
    STATUS_CANCELED = "canceled"

    STATUS_CHOICES = [
        (STATUS_UNFULFILLED, "Unfulfilled"),
        (STATUS_PARTIAL, "Partially Fulfilled"),
        (STATUS_FULFILLED, "Fulfilled"),
        (STATUS_CANCELED, "Canceled"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="fulfillments")
    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name="fulfillments")

    vendor_fulfillment_status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_UNFULFILLED)

    # Tracking Information
    tracking_number = models.CharField(max_length=100, blank=True)
    carrier = models.CharField(max_length=100, blank=True)
    carrier_code = models.CharField(max_length=50, blank=True)
    tracking_url = models.URLField(max_length=500, blank=True)

    # Label purchase
    shipping_label_url = models.URLField(max_length=500, blank=True)
    shipping_label_cost = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    shipment_id = models.CharField(max_length=100, blank=True)

    # {order_item_id: quantity} shipped in this fulfillment
    line_items = models.JSONField(default=dict, blank=True)

    fulfilled_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="fulfillments_created"
    )
    fulfilled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "marketplace_fulfillments"
        ordering = ["created_at"]
        indexes = [models.Index(fields=["order", "store"], name="mkt_fulfil_order_store_idx")]
        app_label = "marketplace"

    def __str__(self):
        return f"Fulfillment {self.vendor_fulfillment_status} for {self.store_id} in order #{self.order.order_number}"
