"""
Domain exceptions raised inside transactional service code.

Raising one of these inside ``transaction.atomic()`` rolls back every write made so
far; ``BaseService.run`` converts it into a failed ServiceResult at the service boundary.
"""

from typing import Optional

from .base import ErrorCodes


class ServiceError(Exception):
    code = ErrorCodes.INTERNAL_ERROR

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details


class ValidationError(ServiceError):
    code = ErrorCodes.VALIDATION_ERROR


class PermissionDenied(ServiceError):
    code = ErrorCodes.PERMISSION_DENIED


class NotFound(ServiceError):
    code = "not_found"


class Conflict(ServiceError):
    code = ErrorCodes.INVALID_ORDER_STATE


class InsufficientStock(Conflict):
    code = ErrorCodes.INSUFFICIENT_STOCK


class UpstreamError(ServiceError):
    """External collaborator failure; ``retryable`` tells the caller whether to retry or fall back."""

    code = ErrorCodes.SHIPPING_UNAVAILABLE

    def __init__(self, message: str, code: Optional[str] = None, retryable: bool = False, details=None):
        super().__init__(message, code=code, details={**(details or {}), "retryable": retryable})
        self.retryable = retryable
