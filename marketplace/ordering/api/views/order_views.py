from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.api.errors import error_response, validation_error_response
from marketplace.api.serializers import (
    BulkDeleteResponseSerializer,
    BulkOrderIdsRequestSerializer,
    BulkUpdateResponseSerializer,
    CancelOrderRequestSerializer,
    CreateOrderRequestSerializer,
    ErrorResponseSerializer,
    OrderListResponseSerializer,
    UpdateOrderStatusRequestSerializer,
    UpdatePaymentStatusRequestSerializer,
    UpdateWorkflowStatusRequestSerializer,
    VariantSearchResponseSerializer,
)
from marketplace.ordering.api.serializers import OrderSerializer
from marketplace.ordering.domain.services.order_service import OrderService
from marketplace.services.base import service_err
from utils.rbac import resolve_actor


ORDER_ERRORS = {
    400: OpenApiResponse(response=ErrorResponseSerializer, description="Validation error"),
    403: OpenApiResponse(response=ErrorResponseSerializer, description="Not allowed to manage this order"),
    404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
    409: OpenApiResponse(response=ErrorResponseSerializer, description="Transition not allowed from current state"),
}


class OrderViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]

    def get_service(self) -> OrderService:
        return container.order_service()

    def _order_response(self, result, success_status=status.HTTP_200_OK):
        if not result.ok:
            return error_response(result)
        order = self.get_service().get_order(result.value.pk, resolve_actor(self.request.user))
        if not order.ok:
            return error_response(order)
        return Response(OrderSerializer(order.value).data, status=success_status)

    @extend_schema(
        operation_id="orders_list",
        summary="List orders",
        description="""
        **What it receives:**
        - Authentication token
        - Optional filters: search (order number, customer email or name), status,
          payment_status, fulfillment_status, workflow_status
        - Sorting (sort) and pagination (page, page_size)

        **What it returns:**
        - Admins see every order, vendors see orders containing their items,
          customers see their own orders
        """,
        parameters=[
            OpenApiParameter(name="search", type=str, description="Order number, email or customer name"),
            OpenApiParameter(name="status", type=str, description="Filter by lifecycle status"),
            OpenApiParameter(name="payment_status", type=str, description="Filter by payment status"),
            OpenApiParameter(name="fulfillment_status", type=str, description="Filter by fulfillment status"),
            OpenApiParameter(name="workflow_status", type=str, description="Filter by workflow status"),
            OpenApiParameter(name="sort", type=str, description="created_at, order_number or total_amount (prefix - for desc)"),
            OpenApiParameter(name="page", type=int, description="Page number (default: 1)"),
            OpenApiParameter(name="page_size", type=int, description="Items per page"),
        ],
        responses={
            200: OpenApiResponse(response=OrderListResponseSerializer, description="Orders retrieved successfully"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid filter or sort"),
        },
        tags=["Marketplace - Orders"],
    )
    def list(self, request):
        filters = {
            key: request.query_params.get(key)
            for key in (
                "search",
                "status",
                "payment_status",
                "fulfillment_status",
                "workflow_status",
                "sort",
                "page",
                "page_size",
            )
            if request.query_params.get(key)
        }
        for key in ("page", "page_size"):
            if key in filters and not filters[key].isdigit():
                return validation_error_response({key: ["Must be a positive integer"]})

        result = self.get_service().list_orders(resolve_actor(request.user), filters)
        if not result.ok:
            return error_response(result)
        return Response(result.value, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="orders_retrieve",
        summary="Get order details",
        description="""
        **What it receives:**
        - `order_id` (UUID in URL)
        - Authentication token (admin, vendor owning at least one item, or the customer)

        **What it returns:**
        - Order with items, vendor fulfillments and timeline events
        """,
        responses={
            200: OpenApiResponse(response=OrderSerializer, description="Order retrieved successfully"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Not order owner"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
        },
        tags=["Marketplace - Orders"],
    )
    def retrieve(self, request, pk=None):
        result = self.get_service().get_order(pk, resolve_actor(request.user))
        if not result.ok:
            return error_response(result)
        return Response(OrderSerializer(result.value).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="orders_create",
        summary="Create order",
        description="""
        **What it receives:**
        - `items`: [{variant_id, quantity, unit_price?}]
        - Customer contact (`email`, `customer`), addresses, money fields
        - `status`: open (default, reserves stock) or draft (no reservation)

        **What it returns:**
        - Created order. Stock shortfalls fail with 409 `insufficient_stock` and
          `details.items` listing available/requested per item; nothing is written.
        """,
        request=CreateOrderRequestSerializer,
        responses={
            201: OpenApiResponse(response=OrderSerializer, description="Order created successfully"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Validation error"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Listing not sold by caller"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Variant not found"),
            409: OpenApiResponse(response=ErrorResponseSerializer, description="Insufficient stock"),
        },
        tags=["Marketplace - Orders"],
    )
    def create(self, request):
        serializer = CreateOrderRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        result = self.get_service().create_order(resolve_actor(request.user), serializer.validated_data)
        return self._order_response(result, success_status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="orders_update_status",
        summary="Change order lifecycle status",
        request=UpdateOrderStatusRequestSerializer,
        responses={200: OpenApiResponse(response=OrderSerializer, description="Status updated"), **ORDER_ERRORS},
        tags=["Marketplace - Orders"],
    )
    @action(detail=True, methods=["post"], url_path="status")
    def update_status(self, request, pk=None):
        serializer = UpdateOrderStatusRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        data = serializer.validated_data
        result = self.get_service().update_status(pk, data["status"], resolve_actor(request.user), data["reason"])
        return self._order_response(result)

    @extend_schema(
        operation_id="orders_cancel",
        summary="Cancel order",
        description="""
        Cancels an unfulfilled or partially fulfilled order: remaining reserved stock is
        released and every unfinished vendor fulfillment is canceled.
        """,
        request=CancelOrderRequestSerializer,
        responses={200: OpenApiResponse(response=OrderSerializer, description="Order canceled"), **ORDER_ERRORS},
        tags=["Marketplace - Orders"],
    )
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        serializer = CancelOrderRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        result = self.get_service().cancel_order(pk, resolve_actor(request.user), serializer.validated_data["reason"])
        return self._order_response(result)

    @extend_schema(
        operation_id="orders_payment_status",
        summary="Change payment status",
        request=UpdatePaymentStatusRequestSerializer,
        responses={200: OpenApiResponse(response=OrderSerializer, description="Payment status updated"), **ORDER_ERRORS},
        tags=["Marketplace - Orders"],
    )
    @action(detail=True, methods=["post"], url_path="payment-status")
    def payment_status(self, request, pk=None):
        serializer = UpdatePaymentStatusRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        data = serializer.validated_data
        result = self.get_service().update_payment_status(
            pk, data["payment_status"], resolve_actor(request.user), data["reason"]
        )
        return self._order_response(result)

    @extend_schema(
        operation_id="orders_workflow_status",
        summary="Change workflow status (on hold / in progress)",
        request=UpdateWorkflowStatusRequestSerializer,
        responses={200: OpenApiResponse(response=OrderSerializer, description="Workflow updated"), **ORDER_ERRORS},
        tags=["Marketplace - Orders"],
    )
    @action(detail=True, methods=["post"], url_path="workflow")
    def workflow(self, request, pk=None):
        serializer = UpdateWorkflowStatusRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        data = serializer.validated_data
        result = self.get_service().update_workflow_status(
            pk, data["workflow_status"], resolve_actor(request.user), data["hold_reason"]
        )
        return self._order_response(result)

    @extend_schema(
        operation_id="orders_archive",
        summary="Archive orders in bulk",
        request=BulkOrderIdsRequestSerializer,
        responses={200: OpenApiResponse(response=BulkUpdateResponseSerializer, description="Per-order outcome")},
        tags=["Marketplace - Orders"],
    )
    @action(detail=False, methods=["post"])
    def archive(self, request):
        serializer = BulkOrderIdsRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        result = self.get_service().archive_orders(serializer.validated_data["order_ids"], resolve_actor(request.user))
        if not result.ok:
            return error_response(result)
        return Response(result.value, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="orders_unarchive",
        summary="Unarchive orders in bulk",
        request=BulkOrderIdsRequestSerializer,
        responses={200: OpenApiResponse(response=BulkUpdateResponseSerializer, description="Per-order outcome")},
        tags=["Marketplace - Orders"],
    )
    @action(detail=False, methods=["post"])
    def unarchive(self, request):
        serializer = BulkOrderIdsRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        result = self.get_service().unarchive_orders(
            serializer.validated_data["order_ids"], resolve_actor(request.user)
        )
        if not result.ok:
            return error_response(result)
        return Response(result.value, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="orders_bulk_delete",
        summary="Delete orders in bulk",
        description="""
        Vendors may only delete orders whose every item belongs to their store.
        Reserved stock is released before the order is removed.
        """,
        request=BulkOrderIdsRequestSerializer,
        responses={200: OpenApiResponse(response=BulkDeleteResponseSerializer, description="Per-order outcome")},
        tags=["Marketplace - Orders"],
    )
    @action(detail=False, methods=["post"], url_path="bulk-delete")
    def bulk_delete(self, request):
        serializer = BulkOrderIdsRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        result = self.get_service().delete_orders(serializer.validated_data["order_ids"], resolve_actor(request.user))
        if not result.ok:
            return error_response(result)
        return Response(result.value, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="orders_delete",
        summary="Delete order",
        responses={
            204: OpenApiResponse(description="Order deleted"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Order has other vendors' items"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
        },
        tags=["Marketplace - Orders"],
    )
    def destroy(self, request, pk=None):
        result = self.get_service().delete_orders([pk], resolve_actor(request.user))
        if not result.ok:
            return error_response(result)
        if result.value["failed"]:
            failure = result.value["failed"][0]
            return error_response(service_err(failure["error"], failure["message"]))
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="orders_search_variants",
        summary="Search variants to add to an order",
        parameters=[
            OpenApiParameter(name="q", type=str, description="Listing title, variant title, SKU or id"),
            OpenApiParameter(name="page", type=int, description="Page number (default: 1)"),
            OpenApiParameter(name="page_size", type=int, description="Items per page"),
        ],
        responses={
            200: OpenApiResponse(response=VariantSearchResponseSerializer, description="Matching variants with stock"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Vendor not found"),
        },
        tags=["Marketplace - Orders"],
    )
    @action(detail=False, methods=["get"], url_path="variant-search")
    def variant_search(self, request):
        page = request.query_params.get("page", "1")
        page_size = request.query_params.get("page_size")
        if not page.isdigit() or (page_size is not None and not page_size.isdigit()):
            return validation_error_response({"page": ["Must be a positive integer"]})

        result = self.get_service().search_variants_for_order(
            resolve_actor(request.user),
            request.query_params.get("q", ""),
            int(page),
            int(page_size) if page_size else None,
        )
        if not result.ok:
            return error_response(result)
        return Response(result.value, status=status.HTTP_200_OK)
