from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.api.errors import error_response, validation_error_response
from marketplace.api.serializers import (
    AdjustmentHistoryResponseSerializer,
    CreateLocationRequestSerializer,
    ErrorResponseSerializer,
    InventoryAdjustRequestSerializer,
    InventoryLevelResponseSerializer,
    InventoryLocationResponseSerializer,
    RestockRequestSerializer,
    SetAvailableRequestSerializer,
    StockCheckRequestSerializer,
    StockCheckResponseSerializer,
    UpdateIncomingRequestSerializer,
)
from marketplace.catalog.domain.models.catalog import ListingVariant
from marketplace.inventory.domain.services.inventory_service import InventoryService, StockRequest
from utils.rbac import resolve_actor


INVENTORY_ERRORS = {
    400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid quantity"),
    403: OpenApiResponse(response=ErrorResponseSerializer, description="Not your store's inventory"),
    404: OpenApiResponse(response=ErrorResponseSerializer, description="Item, location or level not found"),
    409: OpenApiResponse(response=ErrorResponseSerializer, description="Insufficient stock"),
}


class InventoryViewSet(viewsets.ViewSet):
    """
    Stock levels per (item, location). ``pk`` is an InventoryLevel id for the
    detail routes.
    """

    permission_classes = [IsAuthenticated]

    def get_service(self) -> InventoryService:
        return container.inventory_service()

    def _level_response(self, result):
        if not result.ok:
            return error_response(result)
        return Response(result.value, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="inventory_list",
        summary="List stock levels",
        parameters=[OpenApiParameter(name="store_id", type=str, description="Store filter (admins only)")],
        responses={
            200: OpenApiResponse(response=InventoryLevelResponseSerializer(many=True), description="Stock levels"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Vendor not found"),
        },
        tags=["Marketplace - Inventory"],
    )
    def list(self, request):
        result = self.get_service().list_levels(resolve_actor(request.user), request.query_params.get("store_id"))
        return self._level_response(result)

    @extend_schema(
        operation_id="inventory_adjust",
        summary="Reserve, release or fulfill stock",
        description="""
        - reserve: available -= q, committed += q (fails when available < q)
        - release: committed -= q, available += q
        - fulfill: committed -= q, on_hand -= q (available untouched)
        """,
        request=InventoryAdjustRequestSerializer,
        responses={200: OpenApiResponse(response=InventoryLevelResponseSerializer, description="Updated level"), **INVENTORY_ERRORS},
        tags=["Marketplace - Inventory"],
    )
    @action(detail=False, methods=["post"])
    def adjust(self, request):
        serializer = InventoryAdjustRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        data = serializer.validated_data
        result = self.get_service().adjust(
            data["inventory_item_id"],
            data["location_id"],
            data["direction"],
            data["quantity"],
            data["reason"],
            resolve_actor(request.user),
            reference_type=data["reference_type"],
            reference_id=data["reference_id"],
        )
        return self._level_response(result)

    @extend_schema(
        operation_id="inventory_restock",
        summary="Receive stock",
        request=RestockRequestSerializer,
        responses={200: OpenApiResponse(response=InventoryLevelResponseSerializer, description="Updated level"), **INVENTORY_ERRORS},
        tags=["Marketplace - Inventory"],
    )
    @action(detail=False, methods=["post"])
    def restock(self, request):
        serializer = RestockRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        data = serializer.validated_data
        result = self.get_service().restock(
            data["inventory_item_id"], data["location_id"], data["quantity"], resolve_actor(request.user), data["reason"]
        )
        return self._level_response(result)

    @extend_schema(
        operation_id="inventory_set_available",
        summary="Set the available quantity",
        request=SetAvailableRequestSerializer,
        responses={200: OpenApiResponse(response=InventoryLevelResponseSerializer, description="Updated level"), **INVENTORY_ERRORS},
        tags=["Marketplace - Inventory"],
    )
    @action(detail=True, methods=["post"], url_path="available")
    def set_available(self, request, pk=None):
        serializer = SetAvailableRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        data = serializer.validated_data
        result = self.get_service().set_available(pk, data["available"], resolve_actor(request.user), data["reason"])
        return self._level_response(result)

    @extend_schema(
        operation_id="inventory_update_incoming",
        summary="Set the incoming quantity",
        request=UpdateIncomingRequestSerializer,
        responses={200: OpenApiResponse(response=InventoryLevelResponseSerializer, description="Updated level"), **INVENTORY_ERRORS},
        tags=["Marketplace - Inventory"],
    )
    @action(detail=True, methods=["post"], url_path="incoming")
    def update_incoming(self, request, pk=None):
        serializer = UpdateIncomingRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        result = self.get_service().update_incoming(
            pk, serializer.validated_data["incoming"], resolve_actor(request.user)
        )
        return self._level_response(result)

    @extend_schema(
        operation_id="inventory_history",
        summary="Adjustment history for one item at one location",
        parameters=[
            OpenApiParameter(name="inventory_item_id", type=str, required=True),
            OpenApiParameter(name="location_id", type=str, required=True),
            OpenApiParameter(name="page", type=int, description="Page number (default: 1)"),
            OpenApiParameter(name="page_size", type=int, description="Items per page (default: 20)"),
        ],
        responses={200: OpenApiResponse(response=AdjustmentHistoryResponseSerializer, description="Newest first"), **INVENTORY_ERRORS},
        tags=["Marketplace - Inventory"],
    )
    @action(detail=False, methods=["get"])
    def history(self, request):
        params = request.query_params
        missing = [key for key in ("inventory_item_id", "location_id") if not params.get(key)]
        if missing:
            return validation_error_response({key: ["This field is required."] for key in missing})
        page, page_size = params.get("page", "1"), params.get("page_size", "20")
        if not page.isdigit() or not page_size.isdigit():
            return validation_error_response({"page": ["Must be a positive integer"]})

        result = self.get_service().get_adjustment_history(
            params["inventory_item_id"], params["location_id"], resolve_actor(request.user), int(page), int(page_size)
        )
        return self._level_response(result)

    @extend_schema(
        operation_id="inventory_check",
        summary="Pre-flight stock availability check",
        request=StockCheckRequestSerializer,
        responses={200: OpenApiResponse(response=StockCheckResponseSerializer, description="Per-line availability")},
        tags=["Marketplace - Inventory"],
    )
    @action(detail=False, methods=["post"])
    def check(self, request):
        serializer = StockCheckRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        lines = serializer.validated_data["items"]
        stores = dict(
            ListingVariant.objects.filter(pk__in=[line["variant_id"] for line in lines]).values_list(
                "pk", "listing__store_id"
            )
        )
        requests = [
            StockRequest(variant_id=str(line["variant_id"]), store_id=str(stores[line["variant_id"]]), quantity=line["quantity"])
            for line in lines
            if line["variant_id"] in stores
        ]
        return self._level_response(self.get_service().check_stock_availability(requests))

    @extend_schema(
        operation_id="inventory_create_location",
        summary="Create an inventory location",
        request=CreateLocationRequestSerializer,
        responses={
            201: OpenApiResponse(response=InventoryLocationResponseSerializer, description="Location created"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Validation error"),
            403: OpenApiResponse(response=ErrorResponseSerializer, description="Vendor not found"),
        },
        tags=["Marketplace - Inventory"],
    )
    @action(detail=False, methods=["post"])
    def locations(self, request):
        serializer = CreateLocationRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        data = serializer.validated_data
        result = self.get_service().create_location(
            resolve_actor(request.user),
            data["name"],
            address=data.get("address"),
            phone=data["phone"],
            store_id=str(data["store_id"]) if data.get("store_id") else None,
        )
        if not result.ok:
            return error_response(result)
        location = result.value
        return Response(
            {
                "id": str(location.pk),
                "store_id": str(location.store_id),
                "name": location.name,
                "address": location.address,
                "phone": location.phone,
                "is_active": location.is_active,
            },
            status=status.HTTP_201_CREATED,
        )
