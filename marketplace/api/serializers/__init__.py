# Marketplace API Serializers

from .request_serializers import (
    BulkOrderIdsRequestSerializer,
    CancelOrderRequestSerializer,
    CreateLocationRequestSerializer,
    CreateOrderRequestSerializer,
    FulfillItemsRequestSerializer,
    FulfillmentStatusRequestSerializer,
    InventoryAdjustRequestSerializer,
    MarkShippedRequestSerializer,
    PurchaseLabelRequestSerializer,
    RestockRequestSerializer,
    SetAvailableRequestSerializer,
    ShippingRatesRequestSerializer,
    StockCheckRequestSerializer,
    UpdateIncomingRequestSerializer,
    UpdateOrderStatusRequestSerializer,
    UpdatePaymentStatusRequestSerializer,
    UpdateWorkflowStatusRequestSerializer,
)

# Import response serializers for API documentation
from .response_serializers import (
    AdjustmentHistoryResponseSerializer,
    BulkDeleteResponseSerializer,
    BulkUpdateResponseSerializer,
    ErrorResponseSerializer,
    FulfillmentStatusResponseSerializer,
    InventoryLevelResponseSerializer,
    InventoryLocationResponseSerializer,
    OrderListResponseSerializer,
    PublicTrackingResponseSerializer,
    ShippingRateSerializer,
    StockCheckResponseSerializer,
    VariantSearchResponseSerializer,
)


__all__ = [
    # Request serializers
    "BulkOrderIdsRequestSerializer",
    "CancelOrderRequestSerializer",
    "CreateLocationRequestSerializer",
    "CreateOrderRequestSerializer",
    "FulfillItemsRequestSerializer",
    "FulfillmentStatusRequestSerializer",
    "InventoryAdjustRequestSerializer",
    "MarkShippedRequestSerializer",
    "PurchaseLabelRequestSerializer",
    "RestockRequestSerializer",
    "SetAvailableRequestSerializer",
    "ShippingRatesRequestSerializer",
    "StockCheckRequestSerializer",
    "UpdateIncomingRequestSerializer",
    "UpdateOrderStatusRequestSerializer",
    "UpdatePaymentStatusRequestSerializer",
    "UpdateWorkflowStatusRequestSerializer",
    # Response serializers for documentation
    "AdjustmentHistoryResponseSerializer",
    "BulkDeleteResponseSerializer",
    "BulkUpdateResponseSerializer",
    "ErrorResponseSerializer",
    "FulfillmentStatusResponseSerializer",
    "InventoryLevelResponseSerializer",
    "InventoryLocationResponseSerializer",
    "OrderListResponseSerializer",
    "PublicTrackingResponseSerializer",
    "ShippingRateSerializer",
    "StockCheckResponseSerializer",
    "VariantSearchResponseSerializer",
]
