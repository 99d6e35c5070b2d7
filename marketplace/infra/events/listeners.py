import logging

from infrastructure.events import get_event_bus
from marketplace.ordering.domain.models.order import Order
from utils.rbac import SYSTEM_ACTOR


logger = logging.getLogger(__name__)


def handle_payment_failed(event_data):
    """
    Handle payment.failed event from the payment source.
    Moves a pending order to payment status ``failed``; the reservation stays until
    the order is canceled.
    """
    from infrastructure.container import container

    try:
        payload = event_data.get("payload", {})
        order_id = payload.get("order_id")
        reason = payload.get("reason", "Payment failed")

        logger.info(f"[Marketplace Listener] Payment failed for order {order_id}")

        result = container.order_service().update_payment_status(order_id, Order.PAYMENT_FAILED, SYSTEM_ACTOR, reason)
        if not result.ok:
            logger.error(f"Failed to record payment failure for order {order_id}: {result.error_detail}")

    except Exception as e:
        logger.error(f"Error handling payment.failed event: {e}", exc_info=True)


def register_marketplace_listeners():
    event_bus = get_event_bus()
    event_bus.subscribe("payment.failed", handle_payment_failed)
    logger.info("Marketplace event listeners registered")
