from .order_serializers import FulfillmentSerializer, OrderEventSerializer, OrderItemSerializer, OrderSerializer


__all__ = ["FulfillmentSerializer", "OrderEventSerializer", "OrderItemSerializer", "OrderSerializer"]
