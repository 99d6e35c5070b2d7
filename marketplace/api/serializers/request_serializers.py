"""
Request Serializers for the Marketplace API

Shape checks only; business rules (stock, ownership, state machines) live in the
services and come back as ServiceResult errors.
"""

from rest_framework import serializers

from marketplace.inventory.domain.services.inventory_service import DIRECTIONS
from marketplace.ordering.domain.models.order import Order

# ===== Orders =====


class OrderItemInputSerializer(serializers.Serializer):
    variant_id = serializers.UUIDField(help_text="Listing variant to order")
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, required=False, help_text="Price override (vendors and admins only)"
    )


class CustomerInputSerializer(serializers.Serializer):
    first_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    last_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=50, required=False, allow_blank=True)


class CreateOrderRequestSerializer(serializers.Serializer):
    items = OrderItemInputSerializer(many=True, allow_empty=False)
    email = serializers.EmailField(required=False, help_text="Customer email (defaults to the caller's)")
    customer = CustomerInputSerializer(required=False)
    phone = serializers.CharField(max_length=50, required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=[Order.STATUS_OPEN, Order.STATUS_DRAFT], required=False)
    payment_status = serializers.ChoiceField(choices=[Order.PAYMENT_PENDING, Order.PAYMENT_PAID], required=False)
    currency = serializers.CharField(max_length=3, min_length=3, required=False)
    discount_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    shipping_cost = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    tax_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    store_id = serializers.UUIDField(required=False, help_text="Nominal store (admins only)")
    shipping_address = serializers.DictField(required=False)
    billing_address = serializers.DictField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    tags = serializers.ListField(child=serializers.CharField(max_length=50), required=False)


class UpdateOrderStatusRequestSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES)
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class CancelOrderRequestSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class UpdatePaymentStatusRequestSerializer(serializers.Serializer):
    payment_status = serializers.ChoiceField(choices=Order.PAYMENT_STATUS_CHOICES)
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class UpdateWorkflowStatusRequestSerializer(serializers.Serializer):
    workflow_status = serializers.ChoiceField(choices=Order.WORKFLOW_STATUS_CHOICES)
    hold_reason = serializers.CharField(required=False, allow_blank=True, default="")


class BulkOrderIdsRequestSerializer(serializers.Serializer):
    order_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False, max_length=100)


# ===== Fulfillment =====


class FulfillItemInputSerializer(serializers.Serializer):
    order_item_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class FulfillItemsRequestSerializer(serializers.Serializer):
    items = FulfillItemInputSerializer(many=True, allow_empty=False)
    carrier = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    tracking_number = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    tracking_url = serializers.URLField(max_length=500, required=False, allow_blank=True, default="")
    store_id = serializers.UUIDField(required=False, help_text="Vendor to ship for (admins only)")


class MarkShippedRequestSerializer(serializers.Serializer):
    carrier = serializers.CharField(max_length=100)
    tracking_number = serializers.CharField(max_length=100)
    tracking_url = serializers.URLField(max_length=500, required=False, allow_blank=True, default="")
    store_id = serializers.UUIDField(required=False)


class ParcelSerializer(serializers.Serializer):
    length = serializers.DecimalField(max_digits=8, decimal_places=2, help_text="Inches")
    width = serializers.DecimalField(max_digits=8, decimal_places=2, help_text="Inches")
    height = serializers.DecimalField(max_digits=8, decimal_places=2, help_text="Inches")
    weight = serializers.DecimalField(max_digits=8, decimal_places=2, help_text="Ounces")


class ShippingRatesRequestSerializer(serializers.Serializer):
    parcel = ParcelSerializer()
    from_address = serializers.DictField(required=False, help_text="Defaults to the vendor's default location")
    store_id = serializers.UUIDField(required=False)


class PurchaseLabelRequestSerializer(serializers.Serializer):
    shipment_id = serializers.CharField(max_length=100)
    rate_id = serializers.CharField(max_length=100)
    store_id = serializers.UUIDField(required=False)


class FulfillmentStatusRequestSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[Order.FULFILLMENT_FULFILLED, Order.FULFILLMENT_CANCELED])
    reason = serializers.CharField(required=False, allow_blank=True, default="")


# ===== Inventory =====


class InventoryAdjustRequestSerializer(serializers.Serializer):
    inventory_item_id = serializers.UUIDField()
    location_id = serializers.UUIDField()
    direction = serializers.ChoiceField(choices=DIRECTIONS)
    quantity = serializers.IntegerField(min_value=1)
    reason = serializers.CharField(max_length=100)
    reference_type = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    reference_id = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")


class RestockRequestSerializer(serializers.Serializer):
    inventory_item_id = serializers.UUIDField()
    location_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    reason = serializers.CharField(max_length=100, required=False, default="restock")


class SetAvailableRequestSerializer(serializers.Serializer):
    available = serializers.IntegerField(min_value=0)
    reason = serializers.CharField(max_length=100, required=False, default="manual")


class UpdateIncomingRequestSerializer(serializers.Serializer):
    incoming = serializers.IntegerField(min_value=0)


class CreateLocationRequestSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    address = serializers.DictField(required=False)
    phone = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    store_id = serializers.UUIDField(required=False)


class StockCheckLineSerializer(serializers.Serializer):
    variant_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class StockCheckRequestSerializer(serializers.Serializer):
    items = StockCheckLineSerializer(many=True, allow_empty=False)
