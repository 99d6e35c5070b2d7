"""
Response Serializers for Marketplace API Documentation

These serializers define the structure of API responses for OpenAPI schema generation.
They are NOT used for data validation, only for documentation in Swagger/ReDoc.
"""

from rest_framework import serializers

# ===== Common Response Serializers =====


class ErrorResponseSerializer(serializers.Serializer):
    """Standard error response"""

    error = serializers.CharField(help_text="Error code identifier")
    detail = serializers.CharField(help_text="Human-readable error message")
    details = serializers.DictField(
        help_text="Structured payload, e.g. per-item stock shortfalls or retryable flag", required=False
    )


# ===== Order Response Serializers =====


class OrderSummarySerializer(serializers.Serializer):
    id = serializers.UUIDField()
    order_number = serializers.IntegerField()
    email = serializers.EmailField()
    customer_name = serializers.CharField()
    currency = serializers.CharField()
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    status = serializers.CharField()
    payment_status = serializers.CharField()
    fulfillment_status = serializers.CharField()
    workflow_status = serializers.CharField()
    created_at = serializers.DateTimeField()


class OrderListResponseSerializer(serializers.Serializer):
    """Paginated order list response"""

    count = serializers.IntegerField(help_text="Total number of orders")
    page = serializers.IntegerField(help_text="Current page number")
    page_size = serializers.IntegerField(help_text="Items per page")
    results = OrderSummarySerializer(many=True)


class BulkFailureSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    error = serializers.CharField()
    message = serializers.CharField()


class BulkUpdateResponseSerializer(serializers.Serializer):
    updated = serializers.ListField(child=serializers.UUIDField())
    failed = BulkFailureSerializer(many=True)


class BulkDeleteResponseSerializer(serializers.Serializer):
    deleted = serializers.ListField(child=serializers.UUIDField())
    failed = BulkFailureSerializer(many=True)


class VariantSearchResultSerializer(serializers.Serializer):
    variant_id = serializers.UUIDField()
    listing_id = serializers.UUIDField()
    store_id = serializers.UUIDField()
    store_name = serializers.CharField()
    title = serializers.CharField()
    sku = serializers.CharField()
    price = serializers.DecimalField(max_digits=10, decimal_places=2)
    available = serializers.IntegerField(help_text="Available units across all locations")


class VariantSearchResponseSerializer(serializers.Serializer):
    count = serializers.IntegerField()
    page = serializers.IntegerField()
    page_size = serializers.IntegerField()
    results = VariantSearchResultSerializer(many=True)


# ===== Fulfillment Response Serializers =====


class ShippingRateSerializer(serializers.Serializer):
    rate_id = serializers.CharField()
    shipment_id = serializers.CharField()
    carrier = serializers.CharField()
    service = serializers.CharField()
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    currency = serializers.CharField()
    delivery_days = serializers.IntegerField(allow_null=True)


class PublicShipmentSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    carrier = serializers.CharField()
    carrier_code = serializers.CharField()
    tracking_number = serializers.CharField(allow_null=True)
    tracking_url = serializers.CharField(allow_null=True)
    status = serializers.CharField()
    fulfilled_at = serializers.DateTimeField(allow_null=True)


class PublicTrackingResponseSerializer(serializers.Serializer):
    order_number = serializers.IntegerField()
    customer_name = serializers.CharField(help_text="Customer first name only")
    status = serializers.CharField()
    fulfillment_status = serializers.CharField()
    shipments = PublicShipmentSerializer(many=True)


class FulfillmentStatusResponseSerializer(serializers.Serializer):
    fulfillment_status = serializers.CharField()


# ===== Inventory Response Serializers =====


class InventoryLevelResponseSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    inventory_item_id = serializers.UUIDField()
    location_id = serializers.UUIDField()
    available = serializers.IntegerField()
    committed = serializers.IntegerField()
    on_hand = serializers.IntegerField()
    incoming = serializers.IntegerField()
    shipped = serializers.IntegerField()
    damaged = serializers.IntegerField()
    returned = serializers.IntegerField()
    updated_at = serializers.DateTimeField(allow_null=True)
    sku = serializers.CharField(required=False)
    title = serializers.CharField(required=False)
    location_name = serializers.CharField(required=False)


class AdjustmentSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    change = serializers.IntegerField(help_text="Signed change to available (fulfill logs the committed decrement)")
    event_type = serializers.CharField()
    reason = serializers.CharField()
    reference_type = serializers.CharField()
    reference_id = serializers.CharField()
    created_by = serializers.IntegerField(allow_null=True)
    created_at = serializers.DateTimeField()


class AdjustmentHistoryResponseSerializer(serializers.Serializer):
    count = serializers.IntegerField()
    page = serializers.IntegerField()
    page_size = serializers.IntegerField()
    results = AdjustmentSerializer(many=True)


class StockCheckLineResponseSerializer(serializers.Serializer):
    inventory_item_id = serializers.UUIDField()
    location_id = serializers.UUIDField()
    variant_id = serializers.UUIDField()
    title = serializers.CharField()
    requested = serializers.IntegerField()
    available = serializers.IntegerField()


class StockCheckResponseSerializer(serializers.Serializer):
    items = StockCheckLineResponseSerializer(many=True)
    shortfalls = StockCheckLineResponseSerializer(many=True)
    available = serializers.BooleanField(help_text="True when every line can be reserved")


class InventoryLocationResponseSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    store_id = serializers.UUIDField()
    name = serializers.CharField()
    address = serializers.DictField()
    phone = serializers.CharField()
    is_active = serializers.BooleanField()
