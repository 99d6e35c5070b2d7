"""
Marketplace Service Layer

Shared service-layer types. The services themselves live next to their domain
models and import these:

- marketplace.inventory.domain.services.InventoryService: Stock levels, reservations and manual adjustments
- marketplace.ordering.domain.services.OrderService: Order lifecycle, payment/workflow transitions, archive and delete
- marketplace.fulfillment.domain.services.FulfillmentService: Vendor shipments, label purchase and public tracking

Usage:
    from marketplace.services import ErrorCodes, service_ok, service_err

    result = container.order_service().create_order(actor, data)

    if result.ok:
        order = result.value
    elif result.error == ErrorCodes.INSUFFICIENT_STOCK:
        shortfalls = result.details["items"]
"""

from .base import BaseService, ErrorCodes, ServiceResult, service_err, service_ok
from .exceptions import Conflict, InsufficientStock, NotFound, PermissionDenied, ServiceError, UpstreamError, ValidationError

__all__ = [
    # Base classes
    "BaseService",
    "ServiceResult",
    # Helper functions
    "service_ok",
    "service_err",
    # Error codes and exceptions
    "ErrorCodes",
    "ServiceError",
    "ValidationError",
    "PermissionDenied",
    "NotFound",
    "Conflict",
    "InsufficientStock",
    "UpstreamError",
]
