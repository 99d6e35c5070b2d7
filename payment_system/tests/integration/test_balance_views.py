from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from infrastructure.container import container
from marketplace.tests.factories import (
    AdminFactory,
    ListingFactory,
    ListingVariantFactory,
    OrderFactory,
    OrderItemFactory,
    StoreFactory,
    UserFactory,
)
from payment_system.models import SellerBalanceTransaction, SellerPayout
from utils.rbac import resolve_actor

BASE_URL = "/api/payments/"


class PaymentAPITestBase(TestCase):
    def setUp(self):
        container.reset()
        self.client = APIClient()
        self.vendor = UserFactory()
        self.store = StoreFactory(owner=self.vendor)
        self.admin = AdminFactory()

    def tearDown(self):
        container.reset()

    def fund(self, amount="100.00"):
        balances = container.balance_service()
        balances.record_entry(str(self.store.pk), SellerBalanceTransaction.TYPE_ORDER_PAYMENT, amount, "EUR")
        balances.release_matured_funds(now=timezone.now() + timedelta(days=30))


class BalanceAPITest(PaymentAPITestBase):
    def test_requires_authentication(self):
        response = self.client.get(f"{BASE_URL}balance/")

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_vendor_balance_and_transactions(self):
        self.fund("45.00")
        self.client.force_authenticate(user=self.vendor)

        balance = self.client.get(f"{BASE_URL}balance/")
        transactions = self.client.get(f"{BASE_URL}balance/transactions/", {"type": "order_payment", "limit": 10})

        self.assertEqual(balance.status_code, status.HTTP_200_OK)
        self.assertEqual(balance.data["available_balance"], "45.00")
        self.assertEqual(transactions.data["count"], 1)
        self.assertEqual(transactions.data["limit"], 10)
        self.assertEqual(transactions.data["results"][0]["status"], "available")

    def test_customer_has_no_balance(self):
        self.client.force_authenticate(user=UserFactory())

        response = self.client.get(f"{BASE_URL}balance/")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["error"], "permission_denied")

    def test_bad_paging_is_400(self):
        self.client.force_authenticate(user=self.vendor)

        response = self.client.get(f"{BASE_URL}balance/transactions/", {"limit": 0})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class PayoutAPITest(PaymentAPITestBase):
    def test_request_list_and_cancel(self):
        self.fund()
        self.client.force_authenticate(user=self.vendor)

        created = self.client.post(f"{BASE_URL}payouts/", {"amount": "50.00"}, format="json")
        listed = self.client.get(f"{BASE_URL}payouts/")
        canceled = self.client.post(f"{BASE_URL}payouts/{created.data['id']}/cancel/")

        self.assertEqual(created.status_code, status.HTTP_201_CREATED, created.data)
        self.assertEqual(created.data["status"], "pending")
        self.assertEqual(listed.data["count"], 1)
        self.assertEqual(canceled.data["status"], "canceled")

    def test_rejections_map_to_status_codes(self):
        self.fund("30.00")
        self.client.force_authenticate(user=self.vendor)

        below_minimum = self.client.post(f"{BASE_URL}payouts/", {"amount": "10.00"}, format="json")
        too_much = self.client.post(f"{BASE_URL}payouts/", {"amount": "31.00"}, format="json")
        self.client.post(f"{BASE_URL}payouts/", {"amount": "25.00"}, format="json")
        second = self.client.post(f"{BASE_URL}payouts/", {"amount": "25.00"}, format="json")
        missing = self.client.post(f"{BASE_URL}payouts/", {}, format="json")

        self.assertEqual(below_minimum.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(below_minimum.data["error"], "payout_below_minimum")
        self.assertEqual(too_much.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(second.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(second.data["error"], "payout_already_pending")
        self.assertEqual(missing.status_code, status.HTTP_400_BAD_REQUEST)


class AdminPayoutAPITest(PaymentAPITestBase):
    def setUp(self):
        super().setUp()
        self.fund()
        self.payout = container.payout_service().request_payout(resolve_actor(self.vendor), "60.00").value

    def test_complete_payout(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.post(
            f"{BASE_URL}admin/payouts/{self.payout.pk}/complete/", {"transfer_reference": "TRF-9"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], "completed")
        self.assertEqual(SellerPayout.objects.get(pk=self.payout.pk).transfer_reference, "TRF-9")

    def test_vendor_cannot_complete(self):
        self.client.force_authenticate(user=self.vendor)

        response = self.client.post(
            f"{BASE_URL}admin/payouts/{self.payout.pk}/complete/", {"transfer_reference": "TRF-9"}, format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_fail_payout(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.post(f"{BASE_URL}admin/payouts/{self.payout.pk}/fail/", {"reason": "IBAN closed"}, format="json")

        self.assertEqual(response.data["status"], "failed")
        self.assertEqual(response.data["failure_reason"], "IBAN closed")

    def test_adjustment_and_reconcile(self):
        self.client.force_authenticate(user=self.admin)

        adjustment = self.client.post(
            f"{BASE_URL}admin/adjustments/",
            {"store_id": str(self.store.pk), "amount": "-12.50", "description": "Chargeback fee"},
            format="json",
        )
        report = self.client.get(f"{BASE_URL}admin/balances/{self.store.pk}/reconcile/")

        self.assertEqual(adjustment.status_code, status.HTTP_201_CREATED, adjustment.data)
        self.assertEqual(adjustment.data["signed_amount"], "-12.50")
        self.assertEqual(adjustment.data["balance_after"], "87.50")
        self.assertTrue(report.data["balanced"])

    def test_reconcile_is_admin_only(self):
        self.client.force_authenticate(user=self.vendor)

        response = self.client.get(f"{BASE_URL}admin/balances/{self.store.pk}/reconcile/")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class PaymentEventAPITest(PaymentAPITestBase):
    def setUp(self):
        super().setUp()
        self.order = OrderFactory()
        variant = ListingVariantFactory(listing=ListingFactory(store=self.store), price=Decimal("25.00"))
        OrderItemFactory(order=self.order, variant=variant)

    def post_event(self, name, payload, **extra):
        return self.client.post(f"{BASE_URL}events/{name}/", payload, format="json", **extra)

    def test_payment_source_address_is_allowed(self):
        payload = {"order_id": str(self.order.pk), "amount_paid": "25.00", "reference": "pi_1"}

        first = self.post_event("payment-succeeded", payload, REMOTE_ADDR="127.0.0.1")
        replay = self.post_event("payment-succeeded", payload, REMOTE_ADDR="127.0.0.1")

        self.assertEqual(first.status_code, status.HTTP_201_CREATED, first.data)
        self.assertFalse(first.data["duplicate"])
        self.assertEqual(replay.status_code, status.HTTP_200_OK)
        self.assertTrue(replay.data["duplicate"])

    def test_unknown_callers_are_rejected(self):
        payload = {"order_id": str(self.order.pk), "amount_paid": "25.00", "reference": "pi_1"}

        response = self.post_event("payment-succeeded", payload, REMOTE_ADDR="203.0.113.9")

        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    def test_staff_can_post_refunds(self):
        self.client.force_authenticate(user=self.admin)
        self.post_event(
            "payment-succeeded", {"order_id": str(self.order.pk), "amount_paid": "25.00", "reference": "pi_1"}
        )

        refund = self.post_event("payment-refunded", {"order_id": str(self.order.pk), "amount": "5.00", "reference": "re_1"})
        too_much = self.post_event(
            "payment-refunded", {"order_id": str(self.order.pk), "amount": "50.00", "reference": "re_2"}
        )

        self.assertEqual(refund.status_code, status.HTTP_201_CREATED, refund.data)
        self.assertEqual(refund.data["kind"], "refund")
        self.assertEqual(too_much.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(too_much.data["error"], "invalid_amount")
