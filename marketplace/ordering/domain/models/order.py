import uuid
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.validators import MinValueValidator
from django.db import models

from marketplace.catalog.domain.models.catalog import Listing, ListingVariant, Store

User = get_user_model()


class Customer(models.Model):
    """
    A buyer identity. Customers created by a vendor for third-party orders are scoped to
    that vendor's store; a customer linked to a user account has no store scope.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="customer_profiles")
    store = models.ForeignKey(Store, on_delete=models.CASCADE, null=True, blank=True, related_name="customers")
    email = models.EmailField()
    first_name = models.CharField(max_length=100, blank=True)
    last_name = models.CharField(max_length=100, blank=True)
    phone = models.CharField(max_length=50, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "marketplace_customers"
        ordering = ["created_at"]
        indexes = [models.Index(fields=["email", "store"], name="mkt_customer_email_store_idx")]
        app_label = "marketplace"

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self):
        return self.email


class Order(models.Model):
    STATUS_DRAFT = "draft"
    STATUS_OPEN = "open"
    STATUS_COMPLETED = "completed"
    STATUS_CANCELED = "canceled"
    STATUS_ARCHIVED = "archived"

    STATUS_CHOICES = [
        (STATUS_OPEN, "Open"),
        (STATUS_DRAFT, "Draft"),
        (STATUS_ARCHIVED, "Archived"),
        (STATUS_CANCELED, "Canceled"),
        (STATUS_COMPLETED, "Completed"),
    ]

    PAYMENT_PENDING = "pending"
    PAYMENT_PAID = "paid"
    PAYMENT_PARTIALLY_REFUNDED = "partially_refunded"
    PAYMENT_REFUNDED = "refunded"
    PAYMENT_FAILED = "failed"
    PAYMENT_VOID = "void"

    PAYMENT_STATUS_CHOICES = [
        (PAYMENT_PENDING, "Pending"),
        (PAYMENT_PAID, "Paid"),
        (PAYMENT_PARTIALLY_REFUNDED, "Partially Refunded"),
        (PAYMENT_REFUNDED, "Refunded"),
        (PAYMENT_FAILED, "Failed"),
        (PAYMENT_VOID, "Void"),
    ]

    FULFILLMENT_UNFULFILLED = "unfulfilled"
    FULFILLMENT_PARTIAL = "partial"
    FULFILLMENT_FULFILLED = "fulfilled"
    FULFILLMENT_CANCELED = "canceled"

    FULFILLMENT_STATUS_CHOICES = [
        (FULFILLMENT_UNFULFILLED, "Unfulfilled"),
        (FULFILLMENT_PARTIAL, "Partially Fulfilled"),
        (FULFILLMENT_FULFILLED, "Fulfilled"),
        (FULFILLMENT_CANCELED, "Canceled"),
    ]

    WORKFLOW_NORMAL = "normal"
    WORKFLOW_IN_PROGRESS = "in_progress"
    WORKFLOW_ON_HOLD = "on_hold"

    WORKFLOW_STATUS_CHOICES = [
        (WORKFLOW_NORMAL, "Normal"),
        (WORKFLOW_IN_PROGRESS, "In Progress"),
        (WORKFLOW_ON_HOLD, "On Hold"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.PositiveIntegerField(unique=True)

    # Nominal vendor; ownership checks go through items -> listing -> store
    store = models.ForeignKey(Store, on_delete=models.SET_NULL, null=True, blank=True, related_name="orders")
    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name="orders")
    created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="created_orders"
    )

    # Contact snapshot
    email = models.EmailField()
    phone = models.CharField(max_length=50, blank=True)
    customer_name = models.CharField(max_length=200, blank=True)
    shipping_address = models.JSONField(default=dict, blank=True)
    billing_address = models.JSONField(default=dict, blank=True)

    # Money, all in one currency
    currency = models.CharField(max_length=3)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    shipping_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    # Status axes
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_OPEN)
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default=PAYMENT_PENDING)
    fulfillment_status = models.CharField(
        max_length=20, choices=FULFILLMENT_STATUS_CHOICES, default=FULFILLMENT_UNFULFILLED
    )
    workflow_status = models.CharField(max_length=20, choices=WORKFLOW_STATUS_CHOICES, default=WORKFLOW_NORMAL)
    hold_reason = models.TextField(blank=True)

    # True while item quantities are reserved against inventory
    inventory_reserved = models.BooleanField(default=False)
    tracking_token = models.CharField(max_length=32, unique=True, null=True, blank=True)

    notes = models.TextField(blank=True)
    tags = models.JSONField(default=list, blank=True)

    # Timestamps
    placed_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    fulfilled_at = models.DateTimeField(null=True, blank=True)
    canceled_at = models.DateTimeField(null=True, blank=True)
    archived_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "marketplace_orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "-created_at"], name="mkt_order_status_created_idx"),
            models.Index(fields=["payment_status"], name="mkt_order_payment_status_idx"),
            models.Index(fields=["fulfillment_status"], name="mkt_order_fulfill_status_idx"),
            models.Index(fields=["email"], name="mkt_order_email_idx"),
        ]
        app_label = "marketplace"

    def __str__(self):
        return f"Order #{self.order_number}"


class OrderItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    listing = models.ForeignKey(Listing, on_delete=models.PROTECT, related_name="order_items")
    variant = models.ForeignKey(ListingVariant, on_delete=models.PROTECT, related_name="order_items")

    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    total_price = models.DecimalField(max_digits=12, decimal_places=2)
    fulfilled_quantity = models.PositiveIntegerField(default=0)
    # Location the reservation was taken from; release and fulfill go back to it
    inventory_location = models.ForeignKey(
        "marketplace.InventoryLocation", on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )

    # Snapshot at time of purchase
    title = models.CharField(max_length=200)
    variant_title = models.CharField(max_length=200, blank=True)
    sku = models.CharField(max_length=100, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "marketplace_order_items"
        ordering = ["created_at"]
        app_label = "marketplace"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(fulfilled_quantity__lte=models.F("quantity")),
                name="order_item_fulfilled_not_above_quantity",
            ),
        ]

    @property
    def store_id(self):
        return self.listing.store_id

    @property
    def remaining_quantity(self):
        return self.quantity - self.fulfilled_quantity

    @property
    def is_fulfilled(self):
        return self.fulfilled_quantity >= self.quantity

    def __str__(self):
        return f"{self.quantity}x {self.title} in order #{self.order.order_number}"


class OrderEvent(models.Model):
    """Timeline entry for an order. Append-only."""

    VISIBILITY_INTERNAL = "internal"
    VISIBILITY_CUSTOMER = "customer"

    VISIBILITY_CHOICES = [
        (VISIBILITY_INTERNAL, "Internal"),
        (VISIBILITY_CUSTOMER, "Customer"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="events")
    type = models.CharField(max_length=50)
    visibility = models.CharField(max_length=20, choices=VISIBILITY_CHOICES, default=VISIBILITY_INTERNAL)
    message = models.TextField()
    metadata = models.JSONField(default=dict, blank=True)
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "marketplace_order_events"
        ordering = ["-created_at"]
        indexes = [models.Index(fields=["order", "-created_at"], name="mkt_orderevent_order_idx")]
        app_label = "marketplace"

    def __str__(self):
        return f"{self.type}: {self.message[:50]}"
