import logging
from decimal import Decimal

from infrastructure.events import get_event_bus
from utils.logging_utils import sanitize_payload


logger = logging.getLogger(__name__)


def handle_payment_succeeded(event_data):
    """
    Handle payment.succeeded event.
    Payload: {order_id, amount_paid, platform_fee?, processing_fee?, currency?, reference}
    """
    from infrastructure.container import container

    try:
        payload = event_data.get("payload", {})
        order_id = payload.get("order_id")

        logger.info(
            f"[Payment Listener] Payment succeeded for order {order_id} "
            f"{sanitize_payload(payload, ('reference', 'customer_email'))}"
        )

        result = container.payment_event_service().handle_payment_succeeded(
            order_id,
            Decimal(str(payload.get("amount_paid", "0"))),
            payload.get("reference", ""),
            platform_fee=Decimal(str(payload.get("platform_fee", "0"))),
            processing_fee=Decimal(str(payload.get("processing_fee", "0"))),
            currency=payload.get("currency"),
        )
        if not result.ok:
            logger.error(f"Failed to apply payment for order {order_id}: {result.error_detail}")

    except Exception as e:
        logger.error(f"Error handling payment.succeeded event: {e}", exc_info=True)


def handle_payment_refunded(event_data):
    """Handle payment.refunded event. Payload: {order_id, amount, reference, currency?}"""
    from infrastructure.container import container

    try:
        payload = event_data.get("payload", {})
        order_id = payload.get("order_id")

        logger.info(f"[Payment Listener] Refund for order {order_id}")

        result = container.payment_event_service().handle_refund(
            order_id,
            Decimal(str(payload.get("amount", "0"))),
            payload.get("reference", ""),
            currency=payload.get("currency"),
        )
        if not result.ok:
            logger.error(f"Failed to apply refund for order {order_id}: {result.error_detail}")

    except Exception as e:
        logger.error(f"Error handling payment.refunded event: {e}", exc_info=True)


def handle_order_canceled(event_data):
    """
    Handle order.canceled event.
    A paid order needs a refund from the payment source; the ledger is debited
    when that refund event arrives.
    """
    payload = event_data.get("payload", {})
    if payload.get("payment_status") == "paid":
        logger.warning(f"[Payment Listener] Paid order {payload.get('order_id')} canceled; awaiting refund event")


def register_payment_listeners():
    event_bus = get_event_bus()
    event_bus.subscribe("payment.succeeded", handle_payment_succeeded)
    event_bus.subscribe("payment.refunded", handle_payment_refunded)
    event_bus.subscribe("order.canceled", handle_order_canceled)
    logger.info("Payment event listeners registered")
