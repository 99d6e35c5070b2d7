from rest_framework import serializers

from marketplace.fulfillment.domain.models.fulfillment import Fulfillment
from marketplace.ordering.domain.models.order import Customer, Order, OrderEvent, OrderItem


class CustomerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Customer
        fields = ["id", "email", "first_name", "last_name", "phone"]
        read_only_fields = fields


class OrderItemSerializer(serializers.ModelSerializer):
    store_id = serializers.UUIDField(source="listing.store_id", read_only=True)
    remaining_quantity = serializers.IntegerField(read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "listing",
            "variant",
            "store_id",
            "title",
            "variant_title",
            "sku",
            "quantity",
            "fulfilled_quantity",
            "remaining_quantity",
            "unit_price",
            "total_price",
            "inventory_location",
        ]
        read_only_fields = fields


class FulfillmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Fulfillment
        fields = [
            "id",
            "store",
            "vendor_fulfillment_status",
            "tracking_number",
            "carrier",
            "carrier_code",
            "tracking_url",
            "shipping_label_url",
            "shipping_label_cost",
            "line_items",
            "fulfilled_at",
            "created_at",
        ]
        read_only_fields = fields


class OrderEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderEvent
        fields = ["id", "type", "visibility", "message", "metadata", "created_by", "created_at"]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    customer = CustomerSerializer(read_only=True)
    items = OrderItemSerializer(many=True, read_only=True)
    fulfillments = FulfillmentSerializer(many=True, read_only=True)
    events = OrderEventSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "store",
            "customer",
            "email",
            "phone",
            "customer_name",
            "shipping_address",
            "billing_address",
            "currency",
            "subtotal",
            "discount_amount",
            "shipping_cost",
            "tax_amount",
            "total_amount",
            "status",
            "payment_status",
            "fulfillment_status",
            "workflow_status",
            "hold_reason",
            "inventory_reserved",
            "tracking_token",
            "notes",
            "tags",
            "placed_at",
            "paid_at",
            "fulfilled_at",
            "canceled_at",
            "archived_at",
            "created_at",
            "updated_at",
            "items",
            "fulfillments",
            "events",
        ]
        read_only_fields = fields
