from decimal import Decimal
from unittest import mock

from django.test import TestCase

from infrastructure.container import container
from marketplace.services.base import service_err
from marketplace.tests.factories import StoreFactory
from payment_system.Tasks.balance_tasks import reconcile_seller_balances_task, release_matured_balances_task
from payment_system.domain.models.seller_balance import SellerBalanceTransaction
from payment_system.models import SellerBalance


class BalanceTaskTest(TestCase):
    def setUp(self):
        container.reset()
        self.store = StoreFactory()
        self.entry = container.balance_service().record_entry(
            str(self.store.pk), SellerBalanceTransaction.TYPE_ORDER_PAYMENT, "40.00", "EUR"
        )

    def tearDown(self):
        container.reset()

    def test_release_task_reports_nothing_due(self):
        result = release_matured_balances_task.apply().get()

        self.assertEqual(result, {"success": True, "released": 0, "amount": "0.00", "stores": []})

    def test_release_task_moves_matured_credits(self):
        SellerBalanceTransaction.objects.filter(pk=self.entry.pk).update(available_at=self.entry.created_at)

        result = release_matured_balances_task.apply().get()

        self.assertEqual(result["released"], 1)
        self.assertEqual(SellerBalance.objects.get(store=self.store).available_balance, Decimal("40.00"))

    def test_release_task_gives_up_after_retries(self):
        failure = service_err("database_error", "database unavailable")
        with mock.patch.object(container.balance_service(), "release_matured_funds", return_value=failure):
            result = release_matured_balances_task.apply(retries=3).get()

        self.assertEqual(result, {"success": False, "error": "database unavailable"})

    def test_reconcile_task_reports_drift(self):
        clean_store = StoreFactory()
        container.balance_service().record_entry(
            str(clean_store.pk), SellerBalanceTransaction.TYPE_PLATFORM_FEE, "1.00", "EUR"
        )
        SellerBalance.objects.filter(store=self.store).update(pending_balance=Decimal("0.00"))

        result = reconcile_seller_balances_task.apply().get()

        self.assertEqual(result["checked"], 2)
        self.assertEqual(result["drifted"], [{"store_id": str(self.store.pk), "drift": {"available": "0.00", "pending": "-40.00"}}])

    def test_reconcile_task_subset(self):
        result = reconcile_seller_balances_task.apply(args=([str(self.store.pk)],)).get()

        self.assertEqual(result, {"checked": 1, "drifted": []})
