from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.api.errors import error_response, validation_error_response
from marketplace.api.serializers import (
    ErrorResponseSerializer,
    FulfillItemsRequestSerializer,
    FulfillmentStatusRequestSerializer,
    FulfillmentStatusResponseSerializer,
    MarkShippedRequestSerializer,
    PublicTrackingResponseSerializer,
    PurchaseLabelRequestSerializer,
    ShippingRateSerializer,
    ShippingRatesRequestSerializer,
)
from marketplace.fulfillment.domain.services.fulfillment_service import FulfillmentService
from marketplace.ordering.api.serializers import FulfillmentSerializer, OrderSerializer
from utils.rbac import resolve_actor


FULFILLMENT_ERRORS = {
    400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid quantities or tracking"),
    403: OpenApiResponse(response=ErrorResponseSerializer, description="Caller has no items on this order"),
    404: OpenApiResponse(response=ErrorResponseSerializer, description="Order or order item not found"),
    409: OpenApiResponse(
        response=ErrorResponseSerializer,
        description="Payment required, order on hold, order closed or already fulfilled",
    ),
}

SHIPPING_ERRORS = {
    502: OpenApiResponse(response=ErrorResponseSerializer, description="Route unsupported: use manual tracking"),
    503: OpenApiResponse(response=ErrorResponseSerializer, description="Shipping provider unavailable: retry"),
}


class FulfillmentViewSet(viewsets.ViewSet):
    """
    Vendor shipments for one order (``/orders/<order_id>/fulfillment/...``).
    """

    permission_classes = [IsAuthenticated]

    def get_service(self) -> FulfillmentService:
        return container.fulfillment_service()

    @staticmethod
    def _store_id(data):
        return str(data["store_id"]) if data.get("store_id") else None

    def _fulfillment_response(self, result):
        if not result.ok:
            return error_response(result)
        return Response(FulfillmentSerializer(result.value).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="fulfillment_fulfill_items",
        summary="Ship specific order items",
        description="""
        **What it receives:**
        - `items`: [{order_item_id, quantity}] for the caller's own items
        - Optional carrier, tracking number and tracking URL

        **What it returns:**
        - The vendor fulfillment record. All quantities are validated before anything
          is written; exceeding the remaining quantity fails without changes.
        """,
        request=FulfillItemsRequestSerializer,
        responses={201: OpenApiResponse(response=FulfillmentSerializer, description="Items shipped"), **FULFILLMENT_ERRORS},
        tags=["Marketplace - Fulfillment"],
    )
    @action(detail=True, methods=["post"], url_path="items")
    def fulfill_items(self, request, pk=None):
        serializer = FulfillItemsRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        data = serializer.validated_data
        result = self.get_service().fulfill_items(
            pk,
            resolve_actor(request.user),
            [{"order_item_id": str(i["order_item_id"]), "quantity": i["quantity"]} for i in data["items"]],
            carrier=data["carrier"],
            tracking_number=data["tracking_number"],
            tracking_link=data["tracking_url"],
            store_id=self._store_id(data),
        )
        return self._fulfillment_response(result)

    @extend_schema(
        operation_id="fulfillment_mark_shipped",
        summary="Mark the vendor's portion shipped with manual tracking",
        request=MarkShippedRequestSerializer,
        responses={201: OpenApiResponse(response=FulfillmentSerializer, description="Shipped"), **FULFILLMENT_ERRORS},
        tags=["Marketplace - Fulfillment"],
    )
    @action(detail=True, methods=["post"], url_path="mark-shipped")
    def mark_shipped(self, request, pk=None):
        serializer = MarkShippedRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        data = serializer.validated_data
        result = self.get_service().mark_shipped_manually(
            pk,
            resolve_actor(request.user),
            data["carrier"],
            data["tracking_number"],
            tracking_link=data["tracking_url"],
            store_id=self._store_id(data),
        )
        return self._fulfillment_response(result)

    @extend_schema(
        operation_id="fulfillment_shipping_rates",
        summary="Quote shipping label rates",
        request=ShippingRatesRequestSerializer,
        responses={
            200: OpenApiResponse(response=ShippingRateSerializer(many=True), description="Available rates"),
            **FULFILLMENT_ERRORS,
            **SHIPPING_ERRORS,
        },
        tags=["Marketplace - Fulfillment"],
    )
    @action(detail=True, methods=["post"], url_path="rates")
    def shipping_rates(self, request, pk=None):
        serializer = ShippingRatesRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        data = serializer.validated_data
        result = self.get_service().get_shipping_rates(
            pk,
            resolve_actor(request.user),
            dict(data["parcel"]),
            from_address=data.get("from_address"),
            store_id=self._store_id(data),
        )
        if not result.ok:
            return error_response(result)
        return Response(result.value, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="fulfillment_purchase_label",
        summary="Buy a shipping label and ship the vendor's portion",
        description="""
        The label cost is debited from the vendor's seller balance in the same
        transaction that records the shipment.
        """,
        request=PurchaseLabelRequestSerializer,
        responses={
            201: OpenApiResponse(response=FulfillmentSerializer, description="Label bought and shipment recorded"),
            **FULFILLMENT_ERRORS,
            **SHIPPING_ERRORS,
        },
        tags=["Marketplace - Fulfillment"],
    )
    @action(detail=True, methods=["post"], url_path="label")
    def purchase_label(self, request, pk=None):
        serializer = PurchaseLabelRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        data = serializer.validated_data
        result = self.get_service().purchase_shipping_label(
            pk, resolve_actor(request.user), data["shipment_id"], data["rate_id"], store_id=self._store_id(data)
        )
        return self._fulfillment_response(result)

    @extend_schema(
        operation_id="fulfillment_update_status",
        summary="Set order fulfillment to fulfilled or canceled",
        request=FulfillmentStatusRequestSerializer,
        responses={200: OpenApiResponse(response=OrderSerializer, description="Order updated"), **FULFILLMENT_ERRORS},
        tags=["Marketplace - Fulfillment"],
    )
    @action(detail=True, methods=["post"], url_path="status")
    def update_status(self, request, pk=None):
        serializer = FulfillmentStatusRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        actor = resolve_actor(request.user)
        data = serializer.validated_data
        result = self.get_service().update_fulfillment_status(pk, data["status"], actor, data["reason"])
        if not result.ok:
            return error_response(result)
        order = container.order_service().get_order(pk, actor)
        if not order.ok:
            return error_response(order)
        return Response(OrderSerializer(order.value).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="fulfillment_recompute",
        summary="Recompute the derived order fulfillment status (admin)",
        request=None,
        responses={
            200: OpenApiResponse(response=FulfillmentStatusResponseSerializer, description="Current status"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Admin access required"),
        },
        tags=["Marketplace - Fulfillment"],
    )
    @action(detail=True, methods=["post"])
    def recompute(self, request, pk=None):
        actor = resolve_actor(request.user)
        if not actor.is_admin:
            return Response(
                {"error": "permission_denied", "detail": "Admin access required"}, status=status.HTTP_403_FORBIDDEN
            )
        result = self.get_service().recompute_fulfillment_status(pk)
        if not result.ok:
            return error_response(result)
        return Response({"fulfillment_status": result.value}, status=status.HTTP_200_OK)


@extend_schema(
    operation_id="public_tracking",
    summary="Public order tracking",
    description="""
    **What it receives:**
    - `token` (URL): 32-character tracking token sent in the shipping email

    **What it returns:**
    - Order number, customer first name, statuses and shipped parcels. No authentication.
    """,
    responses={
        200: OpenApiResponse(response=PublicTrackingResponseSerializer, description="Tracking info"),
        404: OpenApiResponse(response=ErrorResponseSerializer, description="Unknown token"),
    },
    tags=["Marketplace - Tracking"],
)
@api_view(["GET"])
@permission_classes([AllowAny])
def public_tracking(request, token):
    result = container.fulfillment_service().get_public_tracking_info(token)
    if not result.ok:
        return error_response(result)
    return Response(result.value, status=status.HTTP_200_OK)
