"""
Service Container Tests
=======================
"""

from django.test import SimpleTestCase

from infrastructure.container import ServiceContainer, container, get_email, get_shipping
from infrastructure.email import MockEmailService
from infrastructure.shipping import MockShippingProvider


class ServiceContainerTest(SimpleTestCase):
    def setUp(self):
        container.configure_for_testing()

    def tearDown(self):
        container.reset()

    def test_singleton(self):
        self.assertIs(ServiceContainer(), container)

    def test_configure_for_testing_uses_mocks(self):
        self.assertIsInstance(get_email(), MockEmailService)
        self.assertIsInstance(get_shipping(), MockShippingProvider)

    def test_services_are_cached(self):
        self.assertIs(container.order_service(), container.order_service())
        self.assertIs(container.balance_service(), container.balance_service())

    def test_services_share_dependencies(self):
        fulfillment = container.fulfillment_service()

        self.assertIs(fulfillment.order_service, container.order_service())
        self.assertIs(fulfillment.inventory_service, container.inventory_service())
        self.assertIs(fulfillment.shipping_provider, container.shipping())
        self.assertIs(container.payout_service().balance_service, container.balance_service())
        self.assertIs(container.payment_event_service().order_service, container.order_service())

    def test_reset_drops_cached_instances(self):
        before = container.order_service()

        container.reset()

        self.assertIsNot(container.order_service(), before)

    def test_explicit_backend_replaces_cached_service(self):
        cached = container.email()

        replacement = container.email("mock")

        self.assertIsNot(replacement, cached)
        self.assertIs(container.email(), replacement)
