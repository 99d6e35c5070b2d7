"""
Error code -> HTTP status mapping shared by the marketplace and payment views.
"""

from rest_framework import status
from rest_framework.response import Response

from marketplace.services.base import ErrorCodes, ServiceResult


ERROR_STATUS = {
    # 400 - malformed input
    ErrorCodes.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCodes.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorCodes.INVALID_QUANTITY: status.HTTP_400_BAD_REQUEST,
    ErrorCodes.INVALID_TRACKING: status.HTTP_400_BAD_REQUEST,
    ErrorCodes.INVALID_AMOUNT: status.HTTP_400_BAD_REQUEST,
    ErrorCodes.PAYOUT_BELOW_MINIMUM: status.HTTP_400_BAD_REQUEST,
    # 403 - ownership / role
    ErrorCodes.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorCodes.NOT_ORDER_OWNER: status.HTTP_403_FORBIDDEN,
    ErrorCodes.ORDER_CANNOT_DELETE: status.HTTP_403_FORBIDDEN,
    # 404
    "not_found": status.HTTP_404_NOT_FOUND,
    ErrorCodes.ORDER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCodes.LISTING_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCodes.VARIANT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCodes.STORE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCodes.INVENTORY_ITEM_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCodes.NO_INVENTORY_LOCATION: status.HTTP_404_NOT_FOUND,
    ErrorCodes.FULFILLMENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCodes.PAYOUT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    # 409 - state / invariant conflicts
    ErrorCodes.INSUFFICIENT_STOCK: status.HTTP_409_CONFLICT,
    ErrorCodes.INVALID_ORDER_STATE: status.HTTP_409_CONFLICT,
    ErrorCodes.INVALID_PAYMENT_STATE: status.HTTP_409_CONFLICT,
    ErrorCodes.ORDER_NUMBER_TAKEN: status.HTTP_409_CONFLICT,
    ErrorCodes.PAYMENT_REQUIRED: status.HTTP_409_CONFLICT,
    ErrorCodes.ORDER_ON_HOLD: status.HTTP_409_CONFLICT,
    ErrorCodes.ALREADY_FULFILLED: status.HTTP_409_CONFLICT,
    ErrorCodes.CURRENCY_MISMATCH: status.HTTP_409_CONFLICT,
    ErrorCodes.INSUFFICIENT_FUNDS: status.HTTP_409_CONFLICT,
    ErrorCodes.PAYOUT_ALREADY_PENDING: status.HTTP_409_CONFLICT,
    ErrorCodes.PAYOUT_LIMIT_REACHED: status.HTTP_409_CONFLICT,
    ErrorCodes.INVALID_PAYOUT_STATE: status.HTTP_409_CONFLICT,
    ErrorCodes.LEDGER_IMMUTABLE: status.HTTP_409_CONFLICT,
    # upstream
    ErrorCodes.SHIPPING_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCodes.SHIPPING_UNSUPPORTED: status.HTTP_502_BAD_GATEWAY,
}


def status_for(error_code: str) -> int:
    return ERROR_STATUS.get(error_code, status.HTTP_500_INTERNAL_SERVER_ERROR)


def error_response(result: ServiceResult) -> Response:
    body = {"error": result.error, "detail": result.error_detail}
    if result.details:
        body["details"] = result.details
    return Response(body, status=status_for(result.error))


def validation_error_response(errors) -> Response:
    """Serializer errors in the same envelope as service errors."""
    return Response(
        {"error": ErrorCodes.VALIDATION_ERROR, "detail": "Invalid request", "details": errors},
        status=status.HTTP_400_BAD_REQUEST,
    )
