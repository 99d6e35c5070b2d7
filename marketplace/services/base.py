"""
Base classes and utilities for the service layer.

This module provides the ServiceResult pattern (inspired by Rust's Result type)
and BaseService class for all marketplace and payment services.
"""

import logging
import time
from dataclasses import dataclass
from functools import wraps
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    A result type that encapsulates success or failure from service operations.

    Attributes:
        ok: True if operation succeeded, False otherwise
        value: The success value (present if ok=True)
        error: Error code (present if ok=False)
        error_detail: Human-readable error message (present if ok=False)
        details: Structured error payload, e.g. per-item stock shortfalls

    Examples:
        >>> result = order_service.create_order(actor, data)
        >>> if not result.ok and result.error == ErrorCodes.INSUFFICIENT_STOCK:
        ...     for line in result.details["items"]:
        ...         print(line["available"], line["requested"])
    """

    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_detail: Optional[str] = None
    details: Optional[dict] = None


def service_ok(value: T = None) -> ServiceResult[T]:
    """
    Create a successful ServiceResult.

    Example:
        >>> return service_ok(order)
    """
    return ServiceResult(ok=True, value=value)


def service_err(error: str, error_detail: str = "", details: Optional[dict] = None) -> ServiceResult:
    """
    Create a failed ServiceResult.

    Args:
        error: Error code (e.g., "order_not_found", "insufficient_stock")
        error_detail: Human-readable error message
        details: Optional structured payload for the caller

    Example:
        >>> return service_err("order_not_found", f"Order {id} does not exist")
    """
    return ServiceResult(ok=False, error=error, error_detail=error_detail or error, details=details)


class BaseService:
    """
    Base class for all services providing common functionality.

    Provides:
    - Logging with class name
    - Performance timing decorator
    - Conversion of domain exceptions into ServiceResult

    Usage:
        class InventoryService(BaseService):
            @BaseService.log_performance
            def restock(self, ...):
                self.logger.info(f"Restocking {item_id}")
    """

    def __init__(self):
        """Initialize base service with logger."""
        self.logger = logging.getLogger(self.__class__.__module__ + "." + self.__class__.__name__)

    @staticmethod
    def log_performance(func: Callable) -> Callable:
        """
        Decorator to log performance of service methods.

        Logs execution time and any errors that occur.
        """

        @wraps(func)
        def wrapper(self, *args, **kwargs):
            start_time = time.time()
            method_name = f"{self.__class__.__name__}.{func.__name__}"

            try:
                self.logger.debug(f"{method_name} started")
                result = func(self, *args, **kwargs)
                elapsed_time = (time.time() - start_time) * 1000  # Convert to ms

                if isinstance(result, ServiceResult):
                    if result.ok:
                        self.logger.info(f"{method_name} completed successfully in {elapsed_time:.2f}ms")
                    else:
                        self.logger.warning(
                            f"{method_name} failed with error '{result.error}' in {elapsed_time:.2f}ms"
                        )
                else:
                    self.logger.info(f"{method_name} completed in {elapsed_time:.2f}ms")

                return result

            except Exception as e:
                elapsed_time = (time.time() - start_time) * 1000
                self.logger.error(
                    f"{method_name} raised exception after {elapsed_time:.2f}ms: {str(e)}",
                    exc_info=True,
                )
                raise

        return wrapper

    def run(self, operation: str, func: Callable[[], T]) -> ServiceResult[T]:
        """
        Execute ``func`` and convert domain failures into a ServiceResult.

        ``func`` is expected to open its own ``transaction.atomic()`` block so a raised
        ServiceError rolls every write back before the error result is returned.
        """
        from .exceptions import ServiceError

        try:
            return service_ok(func())
        except ServiceError as e:
            return service_err(e.code, e.message, e.details)
        except Exception as e:
            self.logger.error(f"Unexpected error in {operation}: {str(e)}", exc_info=True)
            return service_err(ErrorCodes.INTERNAL_ERROR, str(e))


class ErrorCodes:
    """Standard error codes used across marketplace and payment services."""

    # Catalog / access
    LISTING_NOT_FOUND = "listing_not_found"
    VARIANT_NOT_FOUND = "variant_not_found"
    STORE_NOT_FOUND = "store_not_found"
    PERMISSION_DENIED = "permission_denied"
    NOT_ORDER_OWNER = "not_order_owner"

    # Order errors
    ORDER_NOT_FOUND = "order_not_found"
    INVALID_ORDER_STATE = "invalid_order_state"
    INVALID_PAYMENT_STATE = "invalid_payment_state"
    ORDER_CANNOT_DELETE = "order_cannot_delete"
    ORDER_NUMBER_TAKEN = "order_number_taken"

    # Inventory errors
    INSUFFICIENT_STOCK = "insufficient_stock"
    INVALID_QUANTITY = "invalid_quantity"
    NO_INVENTORY_LOCATION = "no_inventory_location"
    INVENTORY_ITEM_NOT_FOUND = "inventory_item_not_found"

    # Fulfillment errors
    PAYMENT_REQUIRED = "payment_required"
    ORDER_ON_HOLD = "order_on_hold"
    ALREADY_FULFILLED = "already_fulfilled"
    FULFILLMENT_NOT_FOUND = "fulfillment_not_found"
    INVALID_TRACKING = "invalid_tracking"
    SHIPPING_UNAVAILABLE = "shipping_unavailable"
    SHIPPING_UNSUPPORTED = "shipping_unsupported"

    # Balance / payout errors
    CURRENCY_MISMATCH = "currency_mismatch"
    INVALID_AMOUNT = "invalid_amount"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    PAYOUT_BELOW_MINIMUM = "payout_below_minimum"
    PAYOUT_ALREADY_PENDING = "payout_already_pending"
    PAYOUT_LIMIT_REACHED = "payout_limit_reached"
    PAYOUT_NOT_FOUND = "payout_not_found"
    INVALID_PAYOUT_STATE = "invalid_payout_state"
    LEDGER_IMMUTABLE = "ledger_immutable"

    # Validation errors
    VALIDATION_ERROR = "validation_error"
    INVALID_INPUT = "invalid_input"

    # Internal errors
    INTERNAL_ERROR = "internal_error"
    DATABASE_ERROR = "database_error"
