from prometheus_client import Counter, Histogram


# Order Metrics
orders_placed_total = Counter("marketplace_orders_placed_total", "Total orders placed", ["status"])
order_value = Histogram(
    "marketplace_order_value",
    "Order value distribution",
    buckets=[10, 50, 100, 200, 500, 1000, 2000, 5000, float("inf")],
)
order_status_transitions_total = Counter(
    "marketplace_order_status_transitions_total", "Order lifecycle transitions", ["from_status", "to_status"]
)
orders_deleted_total = Counter("marketplace_orders_deleted_total", "Orders deleted", ["actor_role"])

# Stock Metrics
stock_reservation_failures = Counter("marketplace_stock_reservation_failure", "Stock reservation failures", ["reason"])
inventory_adjustments_total = Counter(
    "marketplace_inventory_adjustments_total", "Inventory adjustments written", ["event_type"]
)

# Fulfillment Metrics
fulfillments_total = Counter("marketplace_fulfillments_total", "Vendor fulfillments recorded", ["method", "status"])
fulfillment_blocked_total = Counter(
    "marketplace_fulfillment_blocked_total", "Fulfillment attempts rejected by gating", ["reason"]
)
shipping_provider_errors_total = Counter(
    "marketplace_shipping_provider_errors_total", "Shipping provider failures", ["operation", "retryable"]
)
tracking_notifications_total = Counter(
    "marketplace_tracking_notifications_total", "Tracking notification dispatches", ["status"]
)

# Performance Metrics
order_creation_duration = Histogram("marketplace_order_creation_seconds", "Order creation time")
