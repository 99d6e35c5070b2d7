"""
Master fulfillment status.

``Order.fulfillment_status`` is a cached projection of the vendor fulfillment rows.
``recompute_fulfillment_status`` is the only code path that writes it.
"""

import logging
from typing import Iterable

from django.utils import timezone

from marketplace.fulfillment.domain.models.fulfillment import Fulfillment
from marketplace.ordering.domain.models.order import Order

logger = logging.getLogger(__name__)


def derive_fulfillment_status(vendor_statuses: Iterable[str]) -> str:
    """
    Order-level status from the vendor statuses.

    Example:
        >>> derive_fulfillment_status(["fulfilled", "partial"])
        'partial'
    """
    statuses = list(vendor_statuses)
    if not statuses:
        return Order.FULFILLMENT_UNFULFILLED
    if any(status == Fulfillment.STATUS_CANCELED for status in statuses):
        return Order.FULFILLMENT_CANCELED
    if all(status == Fulfillment.STATUS_FULFILLED for status in statuses):
        return Order.FULFILLMENT_FULFILLED
    if any(status in (Fulfillment.STATUS_FULFILLED, Fulfillment.STATUS_PARTIAL) for status in statuses):
        return Order.FULFILLMENT_PARTIAL
    return Order.FULFILLMENT_UNFULFILLED


def recompute_fulfillment_status(order: Order) -> str:
    """Re-derive and persist ``order.fulfillment_status``. Call after every change to the order's fulfillments."""
    statuses = Fulfillment.objects.filter(order_id=order.pk).values_list("vendor_fulfillment_status", flat=True)
    status = derive_fulfillment_status(statuses)
    if status != order.fulfillment_status:
        logger.info(f"Order {order.pk} fulfillment status {order.fulfillment_status} -> {status}")
        Order.objects.filter(pk=order.pk).update(fulfillment_status=status, updated_at=timezone.now())
        order.fulfillment_status = status
    return status
