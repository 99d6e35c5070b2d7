"""
Marketplace Celery Tasks

Customer notifications sent after an order transaction commits. A failure here
never affects the order: email errors are retried with backoff, then logged
and counted.
"""

import logging

from celery import shared_task
from django.conf import settings

from infrastructure.email import EmailException, EmailMessage
from marketplace.infra.observability.metrics import tracking_notifications_total

logger = logging.getLogger(__name__)


def build_tracking_email(order, fulfillment) -> EmailMessage:
    tracking_page = f"{settings.FRONTEND_URL.rstrip('/')}/track/{order.tracking_token}"
    greeting = order.customer.first_name if order.customer_id and order.customer.first_name else "there"
    lines = [
        f"Hi {greeting},",
        "",
        f"Good news: your order #{order.order_number} is on its way.",
    ]
    if fulfillment.tracking_number:
        lines.append(f"Carrier: {fulfillment.carrier or 'n/a'}  Tracking number: {fulfillment.tracking_number}")
    lines += ["", f"Follow your shipments here: {tracking_page}", "", "Thank you for shopping with us."]

    reply_to = [fulfillment.store.email] if fulfillment.store.email else []
    return EmailMessage(
        subject=f"Your order #{order.order_number} has shipped",
        body="\n".join(lines),
        to=[order.email],
        reply_to=reply_to,
        headers={"X-Template": "tracking_notification"},
    )


@shared_task(bind=True, max_retries=3, queue="marketplace_tasks")
def send_tracking_notification_task(self, order_id, fulfillment_id):
    """
    Email the customer their public tracking link after the first shipment.

    Args:
        order_id (str): Order UUID
        fulfillment_id (str): The fulfillment that triggered the notification

    Returns:
        dict: {"status": "sent" | "skipped" | "failed", ...}
    """
    from infrastructure.container import container
    from marketplace.models import Fulfillment, Order

    try:
        order = Order.objects.select_related("customer").filter(pk=order_id).first()
        fulfillment = Fulfillment.objects.select_related("store").filter(pk=fulfillment_id).first()
        if order is None or fulfillment is None:
            logger.warning(f"Tracking notification skipped: order {order_id} or fulfillment {fulfillment_id} missing")
            tracking_notifications_total.labels(status="skipped").inc()
            return {"status": "skipped", "order_id": order_id}

        if not order.email or not order.tracking_token:
            logger.info(f"Tracking notification skipped for order {order_id}: no email or token")
            tracking_notifications_total.labels(status="skipped").inc()
            return {"status": "skipped", "order_id": order_id}

        container.email().send(build_tracking_email(order, fulfillment))
        tracking_notifications_total.labels(status="sent").inc()
        logger.info(f"Tracking notification sent for order #{order.order_number} to {order.email}")
        return {"status": "sent", "order_id": order_id}

    except EmailException as e:
        logger.warning(f"Tracking notification email failed for order {order_id} (attempt {self.request.retries + 1}): {e}")
        try:
            raise self.retry(countdown=60 * (2**self.request.retries))
        except self.MaxRetriesExceededError:
            tracking_notifications_total.labels(status="failed").inc()
            logger.error(f"Giving up on tracking notification for order {order_id}: {e}")
            return {"status": "failed", "order_id": order_id, "error": str(e)}
    except Exception as e:
        tracking_notifications_total.labels(status="failed").inc()
        logger.error(f"Unexpected error sending tracking notification for order {order_id}: {e}", exc_info=True)
        return {"status": "failed", "order_id": order_id, "error": str(e)}
