from django.contrib.auth.models import AnonymousUser
from django.test import SimpleTestCase, TestCase

from marketplace.services.exceptions import PermissionDenied
from marketplace.tests.factories import AdminFactory, StoreFactory, UserFactory
from utils.logging_utils import mask_value, sanitize_payload
from utils.rbac import SYSTEM_ACTOR, Actor, resolve_actor


class ActorTest(SimpleTestCase):
    def test_roles(self):
        self.assertEqual(Actor(user_id=1, email="a@example.com").role, "customer")
        self.assertEqual(Actor(user_id=1, email="a@example.com", store_id="s1").role, "vendor")
        self.assertEqual(SYSTEM_ACTOR.role, "admin")

    def test_store_access(self):
        vendor = Actor(user_id=1, email="a@example.com", store_id="s1")

        self.assertTrue(vendor.can_access_store("s1"))
        self.assertFalse(vendor.can_access_store("s2"))
        self.assertTrue(SYSTEM_ACTOR.can_access_store("s2"))

    def test_requirements(self):
        customer = Actor(user_id=1, email="a@example.com")

        with self.assertRaises(PermissionDenied):
            customer.require_vendor_or_admin()
        with self.assertRaises(PermissionDenied):
            Actor(user_id=1, email="a@example.com", store_id="s1").require_admin()
        SYSTEM_ACTOR.require_admin()


class ResolveActorTest(TestCase):
    def test_vendor_gets_active_store(self):
        store = StoreFactory()

        actor = resolve_actor(store.owner)

        self.assertEqual(actor.store_id, str(store.pk))
        self.assertEqual(actor.role, "vendor")

    def test_inactive_store_is_ignored(self):
        store = StoreFactory(is_active=False)

        self.assertIsNone(resolve_actor(store.owner).store_id)

    def test_admin_and_customer(self):
        self.assertTrue(resolve_actor(AdminFactory()).is_admin)
        customer = resolve_actor(UserFactory(email=" buyer@example.com "))
        self.assertEqual(customer.email, "buyer@example.com")
        self.assertEqual(customer.role, "customer")

    def test_anonymous(self):
        actor = resolve_actor(AnonymousUser())

        self.assertIsNone(actor.user_id)
        self.assertFalse(actor.is_admin)


class LoggingUtilsTest(SimpleTestCase):
    def test_mask_value(self):
        self.assertEqual(mask_value("buyer@example.com"), "bu***@example.com")
        self.assertEqual(mask_value("@example.com"), "***@example.com")
        self.assertEqual(mask_value("9400111899223197428490"), "9400...8490")
        self.assertEqual(mask_value("short"), "***")
        self.assertEqual(mask_value(42), 42)

    def test_sanitize_payload(self):
        payload = {"order_id": 7, "email": "buyer@example.com", "card": "4242424242424242"}

        self.assertEqual(sanitize_payload(payload, ["order_id", "email", "missing"]), {"order_id": 7, "email": "bu***@example.com"})
