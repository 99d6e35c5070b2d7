"""
Seller balance views.

Vendors see their own store; admins pass ``store_id``.
"""

import logging

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, OpenApiTypes, extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.api.errors import error_response, validation_error_response
from payment_system.api.serializers.request_serializers import TransactionListQuerySerializer
from payment_system.api.serializers.response_serializers import (
    BalanceTransactionListResponseSerializer,
    ErrorResponseSerializer,
    SellerBalanceResponseSerializer,
)
from utils.rbac import resolve_actor


logger = logging.getLogger(__name__)


STORE_PARAMETER = OpenApiParameter(
    name="store_id",
    type=OpenApiTypes.UUID,
    location=OpenApiParameter.QUERY,
    description="Store to inspect (admins only; vendors always see their own)",
)


@extend_schema(
    operation_id="balance_get",
    summary="Get Seller Balance",
    description="""
    **What it returns:**
    - `available_balance`: withdrawable now
    - `pending_balance`: order credits still inside the hold period
    - `next_release_at`: when the oldest pending credit matures
    - Hold period, payout minimum and the last payout
    """,
    parameters=[STORE_PARAMETER],
    responses={
        200: OpenApiResponse(response=SellerBalanceResponseSerializer, description="Balance retrieved"),
        403: OpenApiResponse(response=ErrorResponseSerializer, description="Not a vendor or not your store"),
    },
    tags=["Seller Balance"],
)
@api_view(["GET"])
@permission_classes([IsAuthenticated])
def seller_balance(request):
    result = container.balance_service().get_balance(resolve_actor(request.user), request.query_params.get("store_id"))
    if not result.ok:
        return error_response(result)
    return Response(result.value, status=status.HTTP_200_OK)


@extend_schema(
    operation_id="balance_transactions",
    summary="List Seller Ledger Entries",
    description="Ledger entries for the store, newest first.",
    parameters=[
        STORE_PARAMETER,
        OpenApiParameter(name="type", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY),
        OpenApiParameter(name="limit", type=OpenApiTypes.INT, location=OpenApiParameter.QUERY),
        OpenApiParameter(name="offset", type=OpenApiTypes.INT, location=OpenApiParameter.QUERY),
    ],
    responses={
        200: OpenApiResponse(response=BalanceTransactionListResponseSerializer, description="Ledger page"),
        403: OpenApiResponse(response=ErrorResponseSerializer, description="Not a vendor or not your store"),
    },
    tags=["Seller Balance"],
)
@api_view(["GET"])
@permission_classes([IsAuthenticated])
def balance_transactions(request):
    query = TransactionListQuerySerializer(data=request.query_params)
    if not query.is_valid():
        return validation_error_response(query.errors)

    params = query.validated_data
    result = container.balance_service().list_transactions(
        resolve_actor(request.user),
        store_id=params.get("store_id"),
        limit=params["limit"],
        offset=params["offset"],
        entry_type=params.get("type"),
    )
    if not result.ok:
        return error_response(result)
    return Response(result.value, status=status.HTTP_200_OK)
