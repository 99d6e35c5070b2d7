"""
Payment processor callbacks.

The webhook relay verifies processor signatures and forwards normalized events
here. Both endpoints are idempotent on ``reference``.
"""

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.api.errors import error_response, validation_error_response
from payment_system.api.permissions import IsStaffOrPaymentSource
from payment_system.api.serializers.request_serializers import (
    PaymentSucceededRequestSerializer,
    RefundRequestSerializer,
)
from payment_system.api.serializers.response_serializers import ErrorResponseSerializer, PaymentEventResponseSerializer


logger = logging.getLogger(__name__)


def _event_response(result):
    if not result.ok:
        return error_response(result)
    code = status.HTTP_200_OK if result.value["duplicate"] else status.HTTP_201_CREATED
    return Response(result.value, status=code)


@extend_schema(
    operation_id="payment_event_succeeded",
    summary="Payment Succeeded",
    description="""
    Marks the order paid and credits each vendor its share of `amount_paid`
    (held for the store's hold period), minus its share of the fees.
    A replayed `reference` returns the original payment with `duplicate: true`.
    """,
    request=PaymentSucceededRequestSerializer,
    responses={
        201: OpenApiResponse(response=PaymentEventResponseSerializer, description="Payment applied"),
        200: OpenApiResponse(response=PaymentEventResponseSerializer, description="Replay ignored"),
        404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
        409: OpenApiResponse(response=ErrorResponseSerializer, description="Payment state or currency conflict"),
    },
    tags=["Payment Events"],
)
@api_view(["POST"])
@permission_classes([IsStaffOrPaymentSource])
def payment_succeeded(request):
    serializer = PaymentSucceededRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    data = serializer.validated_data
    logger.info(f"Payment event {data['reference']} for order {data['order_id']}")
    result = container.payment_event_service().handle_payment_succeeded(
        str(data["order_id"]),
        data["amount_paid"],
        data["reference"],
        platform_fee=data["platform_fee"],
        processing_fee=data["processing_fee"],
        currency=data.get("currency"),
    )
    return _event_response(result)


@extend_schema(
    operation_id="payment_event_refunded",
    summary="Payment Refunded",
    description="Refunds part or all of the paid amount and debits each vendor its share.",
    request=RefundRequestSerializer,
    responses={
        201: OpenApiResponse(response=PaymentEventResponseSerializer, description="Refund applied"),
        200: OpenApiResponse(response=PaymentEventResponseSerializer, description="Replay ignored"),
        400: OpenApiResponse(response=ErrorResponseSerializer, description="Refund exceeds the refundable amount"),
        404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
    },
    tags=["Payment Events"],
)
@api_view(["POST"])
@permission_classes([IsStaffOrPaymentSource])
def payment_refunded(request):
    serializer = RefundRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return validation_error_response(serializer.errors)

    data = serializer.validated_data
    result = container.payment_event_service().handle_refund(
        str(data["order_id"]), data["amount"], data["reference"], currency=data.get("currency")
    )
    return _event_response(result)
