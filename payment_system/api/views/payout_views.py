"""
Seller payout views.

A vendor requests a payout of its available balance; the money leaves the ledger
only when an admin completes it (see admin_views).
"""

import logging

from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, OpenApiTypes, extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.api.errors import error_response, validation_error_response
from payment_system.api.serializers.request_serializers import PayoutListQuerySerializer, PayoutRequestSerializer
from payment_system.api.serializers.response_serializers import (
    ErrorResponseSerializer,
    PayoutListResponseSerializer,
    PayoutSerializer,
)
from payment_system.domain.services.payout_service import PayoutService
from utils.rbac import resolve_actor


logger = logging.getLogger(__name__)


@extend_schema(
    methods=["GET"],
    operation_id="payout_list",
    summary="List Payouts",
    description="Vendors see their own store's payouts; admins see all unless `store_id` is given.",
    parameters=[
        OpenApiParameter(name="store_id", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY),
        OpenApiParameter(name="status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY),
        OpenApiParameter(name="limit", type=OpenApiTypes.INT, location=OpenApiParameter.QUERY),
        OpenApiParameter(name="offset", type=OpenApiTypes.INT, location=OpenApiParameter.QUERY),
    ],
    responses={
        200: OpenApiResponse(response=PayoutListResponseSerializer, description="Payouts"),
        403: OpenApiResponse(response=ErrorResponseSerializer, description="Not a vendor"),
    },
    tags=["Payouts"],
)
@extend_schema(
    methods=["POST"],
    operation_id="payout_request",
    summary="Request a Payout",
    description="""
    **Rules:**
    - Amount must be positive and no more than the available balance
    - Amount must be at least the store's minimum payout
    - Only one open payout per store, and one completed payout per day
    """,
    request=PayoutRequestSerializer,
    responses={
        201: OpenApiResponse(response=PayoutSerializer, description="Payout requested"),
        400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid amount or below minimum"),
        409: OpenApiResponse(
            response=ErrorResponseSerializer, description="Insufficient funds, payout pending or daily limit reached"
        ),
    },
    tags=["Payouts"],
)
@api_view(["GET", "POST"])
@permission_classes([IsAuthenticated])
def payouts(request):
    actor = resolve_actor(request.user)
    service = container.payout_service()

    if request.method == "GET":
        query = PayoutListQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return validation_error_response(query.errors)
        params = query.validated_data
        result = service.list_payouts(
            actor,
            store_id=params.get("store_id"),
            status=params.get("status"),
            limit=params["limit"],
            offset=params["offset"],
        )
        if not result.ok:
            return error_response(result)
        return Response(result.value, status=status.HTTP_200_OK)

    serializer = PayoutRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    data = serializer.validated_data
    store_id = str(data["store_id"]) if data.get("store_id") else None
    result = service.request_payout(actor, data["amount"], store_id=store_id)
    if not result.ok:
        logger.info(f"Payout request rejected for user {actor.user_id}: {result.error}")
        return error_response(result)
    return Response(PayoutService.payout_to_dict(result.value), status=status.HTTP_201_CREATED)


@extend_schema(
    operation_id="payout_cancel",
    summary="Cancel a Pending Payout",
    request=None,
    responses={
        200: OpenApiResponse(response=PayoutSerializer, description="Payout canceled"),
        403: OpenApiResponse(response=ErrorResponseSerializer, description="Not your store's payout"),
        404: OpenApiResponse(response=ErrorResponseSerializer, description="Payout not found"),
        409: OpenApiResponse(response=ErrorResponseSerializer, description="Payout is no longer pending"),
    },
    tags=["Payouts"],
)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
def cancel_payout(request, payout_id):
    result = container.payout_service().cancel_payout(payout_id, resolve_actor(request.user))
    if not result.ok:
        return error_response(result)
    return Response(PayoutService.payout_to_dict(result.value), status=status.HTTP_200_OK)
