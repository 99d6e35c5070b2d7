"""
Transaction Utilities for Golden Market Backend
===============================================

Helpers for running critical write paths (order creation, ledger hold release)
inside database transactions with retry on deadlock/serialization failures.

Usage Examples:
    # Retry only (the function opens its own transaction)
    @retry_on_deadlock(max_retries=3)
    def release_one(...):
        with transaction.atomic():
            ...

    # Side effects that must only happen once the data is committed
    run_on_commit(lambda: send_tracking_notification_task.delay(order_id), "tracking email")
"""

import logging
import time
from functools import wraps

from django.db import OperationalError, transaction

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATEs: 40P01 deadlock_detected, 40001 serialization_failure.
# MySQL: 1213 deadlock, 1205 lock wait timeout. SQLite: "database is locked".
RETRYABLE_MARKERS = ("40P01", "40001", "deadlock", "could not serialize", "1213", "1205", "database is locked")


class TransactionError(Exception):
    """Custom exception for transaction-related errors"""

    pass


class DeadlockError(TransactionError):
    """Exception raised when a deadlock persists after all retries"""

    pass


def is_retryable_error(error: Exception) -> bool:
    code = getattr(getattr(error, "__cause__", None), "pgcode", None)
    if code in ("40P01", "40001"):
        return True
    message = str(error).lower()
    return any(marker.lower() in message for marker in RETRYABLE_MARKERS)


def retry_on_deadlock(max_retries=3, delay=0.1, backoff=2.0):
    """
    Decorator to retry operations on deadlock with exponential backoff.

    Only effective around the outermost transaction: a retry inside an already
    broken outer transaction cannot succeed, so nested calls are not retried.
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            current_delay = delay

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except OperationalError as e:
                    if not is_retryable_error(e):
                        raise
                    if transaction.get_connection().in_atomic_block or attempt >= max_retries:
                        raise DeadlockError(f"Deadlock detected: {e}") from e
                    logger.warning(
                        f"Deadlock detected in {func.__name__}, retrying in {current_delay}s "
                        f"(attempt {attempt + 1}/{max_retries})"
                    )
                    time.sleep(current_delay)
                    current_delay *= backoff

        return wrapper

    return decorator


def run_on_commit(callback, description="callback"):
    """
    Schedule a callback after the current transaction commits.

    Errors raised by the callback are logged and never propagate to the caller.
    """

    def safe_callback():
        try:
            callback()
        except Exception as e:
            logger.error(f"On-commit {description} failed: {e}", exc_info=True)

    transaction.on_commit(safe_callback)
