from unittest.mock import MagicMock, patch

from django.test import TestCase

from infrastructure.events import InMemoryEventBus
from marketplace.infra.events.listeners import handle_payment_failed, register_marketplace_listeners
from marketplace.models import Order
from marketplace.tests.factories import OrderFactory


class MarketplaceListenerTests(TestCase):
    def test_only_payment_failures_are_subscribed(self):
        bus = InMemoryEventBus()

        with patch("marketplace.infra.events.listeners.get_event_bus", return_value=bus):
            register_marketplace_listeners()

        self.assertEqual(bus.handlers_for("payment.failed"), [handle_payment_failed])
        self.assertEqual(bus.handlers_for("order.placed"), [])
        self.assertEqual(bus.handlers_for("order.fulfilled"), [])

    def test_payment_failed_marks_order(self):
        order = OrderFactory()

        handle_payment_failed({"payload": {"order_id": str(order.pk), "reason": "card declined"}})

        order.refresh_from_db()
        self.assertEqual(order.payment_status, Order.PAYMENT_FAILED)

    @patch("infrastructure.container.container.order_service")
    def test_rejected_failure_is_logged(self, order_service):
        order_service.return_value.update_payment_status.return_value = MagicMock(ok=False, error_detail="not found")

        with self.assertLogs("marketplace.infra.events.listeners", level="ERROR"):
            handle_payment_failed({"payload": {"order_id": "missing"}})
