from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from infrastructure.container import container
from marketplace.models import Order
from marketplace.tests.factories import AdminFactory, InventoryLocationFactory, StoreFactory, UserFactory, stocked_variant
from utils.rbac import resolve_actor

ORDERS_URL = "/api/marketplace/orders/"
FULFILLMENT_URL = "/api/marketplace/fulfillment/"
INVENTORY_URL = "/api/marketplace/inventory/"
SHIPPING_ADDRESS = {"name": "Ana Silva", "street1": "Rua Augusta 10", "city": "Lisboa", "zip": "1100-053", "country": "PT"}


class MarketplaceAPITestBase(TestCase):
    def setUp(self):
        container.configure_for_testing()
        self.client = APIClient()
        self.vendor = UserFactory()
        self.store = StoreFactory(owner=self.vendor)
        self.location = InventoryLocationFactory(store=self.store)
        self.variant = stocked_variant(self.store, available=5, location=self.location)
        self.buyer = UserFactory()
        self.admin = AdminFactory()

    def tearDown(self):
        container.reset()

    def as_user(self, user):
        self.client.force_authenticate(user=user)
        return self.client

    def create_order(self, quantity=2, paid=False):
        response = self.as_user(self.buyer).post(
            ORDERS_URL,
            {"items": [{"variant_id": str(self.variant.pk), "quantity": quantity}], "shipping_address": SHIPPING_ADDRESS},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        order_id = response.data["id"]
        if paid:
            result = container.order_service().update_payment_status(order_id, Order.PAYMENT_PAID, resolve_actor(self.admin))
            self.assertTrue(result.ok, result.error_detail)
        return order_id


