from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from marketplace.services.base import ErrorCodes
from marketplace.tests.factories import AdminFactory, SellerPayoutSettingsFactory, StoreFactory, UserFactory
from payment_system.domain.services import SellerBalanceService
from payment_system.models import SellerBalance, SellerBalanceTransaction
from utils.rbac import resolve_actor


class BalanceServiceTestBase(TestCase):
    def setUp(self):
        self.service = SellerBalanceService()
        self.vendor = UserFactory()
        self.store = StoreFactory(owner=self.vendor)
        self.vendor_actor = resolve_actor(self.vendor)
        self.admin_actor = resolve_actor(AdminFactory())

    def record(self, entry_type, amount, currency="EUR"):
        return self.service.record(str(self.store.pk), entry_type, amount, currency)

    def balance(self):
        return SellerBalance.objects.get(store=self.store)


class RecordEntryTest(BalanceServiceTestBase):
    def test_order_payment_is_held_pending(self):
        before = timezone.now()

        result = self.record(SellerBalanceTransaction.TYPE_ORDER_PAYMENT, "100.00")

        self.assertTrue(result.ok, result.error_detail)
        entry = result.value
        self.assertEqual(entry.status, SellerBalanceTransaction.STATUS_PENDING)
        self.assertGreaterEqual(entry.available_at, before + timedelta(days=7))
        self.assertEqual(self.balance().pending_balance, Decimal("100.00"))
        self.assertEqual(self.balance().available_balance, Decimal("0.00"))

    def test_store_hold_period_overrides_default(self):
        SellerPayoutSettingsFactory(store=self.store, hold_period_days=2)

        entry = self.record(SellerBalanceTransaction.TYPE_ORDER_PAYMENT, "10.00").value

        self.assertLess(entry.available_at, timezone.now() + timedelta(days=3))

    def test_debits_reduce_available_and_may_go_negative(self):
        result = self.record(SellerBalanceTransaction.TYPE_SHIPPING_LABEL, "8.50")

        self.assertTrue(result.ok)
        self.assertEqual(result.value.balance_before, Decimal("0.00"))
        self.assertEqual(result.value.balance_after, Decimal("-8.50"))
        self.assertEqual(self.balance().available_balance, Decimal("-8.50"))

    def test_amount_rules(self):
        self.assertEqual(self.record(SellerBalanceTransaction.TYPE_REFUND, "0").error, ErrorCodes.INVALID_AMOUNT)
        self.assertEqual(self.record(SellerBalanceTransaction.TYPE_REFUND, "-5").error, ErrorCodes.INVALID_AMOUNT)
        self.assertEqual(self.record(SellerBalanceTransaction.TYPE_REFUND, "abc").error, ErrorCodes.INVALID_AMOUNT)
        self.assertEqual(self.record("bonus", "5").error, ErrorCodes.VALIDATION_ERROR)
        self.assertFalse(SellerBalanceTransaction.objects.exists())

    def test_currency_is_fixed_by_first_entry(self):
        self.record(SellerBalanceTransaction.TYPE_ORDER_PAYMENT, "10.00", currency="eur")

        result = self.record(SellerBalanceTransaction.TYPE_PLATFORM_FEE, "1.00", currency="USD")

        self.assertEqual(result.error, ErrorCodes.CURRENCY_MISMATCH)
        self.assertEqual(self.balance().currency, "EUR")

    def test_unknown_store(self):
        result = self.service.record(
            "00000000-0000-0000-0000-000000000000", SellerBalanceTransaction.TYPE_REFUND, "1.00", "EUR"
        )

        self.assertEqual(result.error, ErrorCodes.STORE_NOT_FOUND)


class LedgerImmutabilityTest(BalanceServiceTestBase):
    def test_rows_cannot_be_edited_or_deleted(self):
        entry = self.record(SellerBalanceTransaction.TYPE_ORDER_PAYMENT, "10.00").value
        entry.refresh_from_db()

        entry.amount = Decimal("99.00")
        with self.assertRaises(ValueError):
            entry.save()

        entry.refresh_from_db()
        with self.assertRaises(ValueError):
            entry.delete()

    def test_only_pending_to_available_is_allowed(self):
        entry = self.record(SellerBalanceTransaction.TYPE_PLATFORM_FEE, "1.00").value
        entry.refresh_from_db()

        entry.status = SellerBalanceTransaction.STATUS_PENDING
        with self.assertRaises(ValueError):
            entry.save()


class AdjustmentTest(BalanceServiceTestBase):
    def test_signed_adjustment(self):
        self.record(SellerBalanceTransaction.TYPE_ORDER_PAYMENT, "10.00")

        result = self.service.create_adjustment(self.admin_actor, str(self.store.pk), Decimal("-3.00"), "Goodwill reversal")

        self.assertTrue(result.ok, result.error_detail)
        self.assertEqual(result.value.signed_amount, Decimal("-3.00"))
        self.assertEqual(result.value.status, SellerBalanceTransaction.STATUS_AVAILABLE)
        self.assertEqual(self.balance().available_balance, Decimal("-3.00"))

    def test_requires_admin_and_description(self):
        denied = self.service.create_adjustment(self.vendor_actor, str(self.store.pk), "5.00", "mine")
        blank = self.service.create_adjustment(self.admin_actor, str(self.store.pk), "5.00", "  ")

        self.assertEqual(denied.error, ErrorCodes.PERMISSION_DENIED)
        self.assertEqual(blank.error, ErrorCodes.VALIDATION_ERROR)


class ReleaseAndReconcileTest(BalanceServiceTestBase):
    def test_matured_credits_move_to_available(self):
        self.record(SellerBalanceTransaction.TYPE_ORDER_PAYMENT, "40.00")
        self.record(SellerBalanceTransaction.TYPE_PLATFORM_FEE, "4.00")

        early = self.service.release_matured_funds()
        later = self.service.release_matured_funds(now=timezone.now() + timedelta(days=8))

        self.assertEqual(early.value["released"], 0)
        self.assertEqual(later.value, {"released": 1, "amount": "40.00", "stores": [str(self.store.pk)]})
        balance = self.balance()
        self.assertEqual(balance.pending_balance, Decimal("0.00"))
        self.assertEqual(balance.available_balance, Decimal("36.00"))
        entry = SellerBalanceTransaction.objects.get(type=SellerBalanceTransaction.TYPE_ORDER_PAYMENT)
        self.assertIsNotNone(entry.released_at)

    def test_release_is_idempotent(self):
        self.record(SellerBalanceTransaction.TYPE_ORDER_PAYMENT, "40.00")
        cutoff = timezone.now() + timedelta(days=8)

        self.service.release_matured_funds(now=cutoff)
        again = self.service.release_matured_funds(now=cutoff)

        self.assertEqual(again.value["released"], 0)
        self.assertEqual(self.balance().available_balance, Decimal("40.00"))

    def test_reconcile_balanced_and_drifted(self):
        self.record(SellerBalanceTransaction.TYPE_ORDER_PAYMENT, "40.00")
        self.record(SellerBalanceTransaction.TYPE_SHIPPING_LABEL, "8.50")

        balanced = self.service.reconcile(str(self.store.pk)).value
        SellerBalance.objects.filter(store=self.store).update(available_balance=Decimal("100.00"))
        drifted = self.service.reconcile(str(self.store.pk)).value

        self.assertTrue(balanced["balanced"])
        self.assertEqual(balanced["ledger"], {"available": "-8.50", "pending": "40.00"})
        self.assertFalse(drifted["balanced"])
        self.assertEqual(drifted["drift"]["available"], "108.50")


class BalanceReadTest(BalanceServiceTestBase):
    def test_vendor_reads_own_balance(self):
        self.record(SellerBalanceTransaction.TYPE_ORDER_PAYMENT, "25.00")

        result = self.service.get_balance(self.vendor_actor)

        self.assertTrue(result.ok)
        self.assertEqual(result.value["pending_balance"], "25.00")
        self.assertEqual(result.value["total_balance"], "25.00")
        self.assertEqual(result.value["hold_period_days"], 7)
        self.assertEqual(result.value["minimum_payout_amount"], "20.00")
        self.assertIsNotNone(result.value["next_release_at"])

    def test_balance_before_any_entry(self):
        result = self.service.get_balance(self.vendor_actor)

        self.assertEqual(result.value["available_balance"], "0.00")
        self.assertEqual(result.value["currency"], "EUR")

    def test_access_rules(self):
        other_store = StoreFactory()

        customer = self.service.get_balance(resolve_actor(UserFactory()))
        foreign = self.service.get_balance(self.vendor_actor, str(other_store.pk))
        admin_without_store = self.service.get_balance(self.admin_actor)
        admin = self.service.get_balance(self.admin_actor, str(other_store.pk))

        self.assertEqual(customer.error, ErrorCodes.PERMISSION_DENIED)
        self.assertEqual(foreign.error, ErrorCodes.PERMISSION_DENIED)
        self.assertEqual(admin_without_store.error, ErrorCodes.VALIDATION_ERROR)
        self.assertTrue(admin.ok)

    def test_list_transactions_filters_by_type(self):
        self.record(SellerBalanceTransaction.TYPE_ORDER_PAYMENT, "25.00")
        self.record(SellerBalanceTransaction.TYPE_PLATFORM_FEE, "2.50")

        everything = self.service.list_transactions(self.vendor_actor).value
        fees = self.service.list_transactions(self.vendor_actor, entry_type="platform_fee").value

        self.assertEqual(everything["count"], 2)
        self.assertEqual(fees["count"], 1)
        self.assertEqual(fees["results"][0]["signed_amount"], "-2.50")
