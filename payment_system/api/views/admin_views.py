"""
Admin-only views for payouts and the seller ledger.

Security: the admin role is resolved from the database on every request; the
services re-check it.
"""

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.api.errors import error_response, validation_error_response
from payment_system.api.serializers.request_serializers import (
    AdjustmentRequestSerializer,
    PayoutCompleteRequestSerializer,
    PayoutFailRequestSerializer,
)
from payment_system.api.serializers.response_serializers import (
    BalanceTransactionSerializer,
    ErrorResponseSerializer,
    PayoutSerializer,
    ReconciliationResponseSerializer,
)
from payment_system.domain.services.balance_service import SellerBalanceService
from payment_system.domain.services.payout_service import PayoutService
from utils.rbac import resolve_actor


logger = logging.getLogger(__name__)

ADMIN_ONLY = OpenApiResponse(response=ErrorResponseSerializer, description="Admin access required")


def _forbidden():
    return Response({"error": "permission_denied", "detail": "Admin access required"}, status=status.HTTP_403_FORBIDDEN)


@extend_schema(
    operation_id="admin_payout_complete",
    summary="Admin: Complete Payout",
    description="Posts the `payout` debit on the seller ledger and closes the request.",
    request=PayoutCompleteRequestSerializer,
    responses={
        200: OpenApiResponse(response=PayoutSerializer, description="Payout completed"),
        403: ADMIN_ONLY,
        404: OpenApiResponse(response=ErrorResponseSerializer, description="Payout not found"),
        409: OpenApiResponse(response=ErrorResponseSerializer, description="Payout closed or funds no longer available"),
    },
    tags=["Admin - Payouts"],
)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
def complete_payout(request, payout_id):
    serializer = PayoutCompleteRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    actor = resolve_actor(request.user)
    result = container.payout_service().complete_payout(
        payout_id, serializer.validated_data["transfer_reference"], actor
    )
    if not result.ok:
        return error_response(result)
    logger.info(f"Admin {actor.user_id} completed payout {payout_id}")
    return Response(PayoutService.payout_to_dict(result.value), status=status.HTTP_200_OK)


@extend_schema(
    operation_id="admin_payout_fail",
    summary="Admin: Fail Payout",
    request=PayoutFailRequestSerializer,
    responses={
        200: OpenApiResponse(response=PayoutSerializer, description="Payout marked failed"),
        403: ADMIN_ONLY,
        404: OpenApiResponse(response=ErrorResponseSerializer, description="Payout not found"),
        409: OpenApiResponse(response=ErrorResponseSerializer, description="Payout already closed"),
    },
    tags=["Admin - Payouts"],
)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
def fail_payout(request, payout_id):
    serializer = PayoutFailRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    result = container.payout_service().fail_payout(
        payout_id, serializer.validated_data["reason"], resolve_actor(request.user)
    )
    if not result.ok:
        return error_response(result)
    return Response(PayoutService.payout_to_dict(result.value), status=status.HTTP_200_OK)


@extend_schema(
    operation_id="admin_balance_adjustment",
    summary="Admin: Post a Balance Adjustment",
    description="Signed correction to the seller's available balance. A description is required.",
    request=AdjustmentRequestSerializer,
    responses={
        201: OpenApiResponse(response=BalanceTransactionSerializer, description="Adjustment posted"),
        400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid amount"),
        403: ADMIN_ONLY,
        404: OpenApiResponse(response=ErrorResponseSerializer, description="Store not found"),
    },
    tags=["Admin - Seller Balance"],
)
@api_view(["POST"])
@permission_classes([IsAuthenticated])
def create_adjustment(request):
    serializer = AdjustmentRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    data = serializer.validated_data
    result = container.balance_service().create_adjustment(
        resolve_actor(request.user),
        str(data["store_id"]),
        data["amount"],
        data["description"],
        currency=data.get("currency"),
    )
    if not result.ok:
        return error_response(result)
    return Response(SellerBalanceService.transaction_to_dict(result.value), status=status.HTTP_201_CREATED)


@extend_schema(
    operation_id="admin_balance_reconcile",
    summary="Admin: Reconcile Seller Balance",
    description="Compares the cached balance with the sum of ledger entries.",
    request=None,
    responses={200: OpenApiResponse(response=ReconciliationResponseSerializer, description="Report"), 403: ADMIN_ONLY},
    tags=["Admin - Seller Balance"],
)
@api_view(["GET"])
@permission_classes([IsAuthenticated])
def reconcile_balance(request, store_id):
    if not resolve_actor(request.user).is_admin:
        return _forbidden()
    result = container.balance_service().reconcile(store_id)
    if not result.ok:
        return error_response(result)
    return Response(result.value, status=status.HTTP_200_OK)
