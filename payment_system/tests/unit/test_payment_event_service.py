from decimal import Decimal

from django.test import TestCase

from infrastructure.container import container
from infrastructure.events import get_event_bus
from marketplace.models import Order
from marketplace.ordering.domain.services.order_service import OrderService
from marketplace.services.base import ErrorCodes
from marketplace.tests.factories import (
    ListingFactory,
    ListingVariantFactory,
    OrderFactory,
    OrderItemFactory,
    StoreFactory,
    UserFactory,
    level_for,
    stocked_variant,
)
from payment_system.domain.services import PaymentEventService
from payment_system.domain.services.payment_event_service import allocate_by_store
from payment_system.models import OrderPayment, SellerBalance, SellerBalanceTransaction
from utils.rbac import SYSTEM_ACTOR, resolve_actor


def item_for(order, store, unit_price, quantity=1):
    variant = ListingVariantFactory(listing=ListingFactory(store=store), price=unit_price)
    return OrderItemFactory(order=order, variant=variant, quantity=quantity)


class PaymentEventTestBase(TestCase):
    def setUp(self):
        get_event_bus().clear()
        self.service = PaymentEventService()
        self.store = StoreFactory()
        self.order = OrderFactory(total_amount=Decimal("30.00"))
        item_for(self.order, self.store, Decimal("15.00"), quantity=2)

    def balance(self, store=None):
        return SellerBalance.objects.get(store=store or self.store)


class AllocationTest(PaymentEventTestBase):
    def test_single_store_takes_everything(self):
        self.assertEqual(dict(allocate_by_store(self.order, Decimal("30.00"))), {str(self.store.pk): Decimal("30.00")})

    def test_shares_follow_item_subtotals_and_add_up(self):
        other = StoreFactory()
        order = OrderFactory()
        item_for(order, self.store, Decimal("10.00"))
        item_for(order, other, Decimal("20.00"))

        allocations = allocate_by_store(order, Decimal("10.00"))

        self.assertEqual(allocations[str(self.store.pk)], Decimal("3.33"))
        self.assertEqual(allocations[str(other.pk)], Decimal("6.67"))
        self.assertEqual(sum(allocations.values()), Decimal("10.00"))

    def test_order_without_items(self):
        result = self.service.handle_payment_succeeded(OrderFactory().pk, "10.00", "pi_empty")

        self.assertEqual(result.error, ErrorCodes.INVALID_INPUT)


class PaymentSucceededTest(PaymentEventTestBase):
    def test_marks_paid_and_credits_vendor(self):
        with self.captureOnCommitCallbacks(execute=True):
            result = self.service.handle_payment_succeeded(
                self.order.pk, "30.00", "pi_123", platform_fee="3.00", processing_fee="1.00"
            )

        self.assertTrue(result.ok, result.error_detail)
        self.assertFalse(result.value["duplicate"])
        self.assertEqual(result.value["allocations"], {str(self.store.pk): "30.00"})
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_PAID)
        self.assertIsNotNone(self.order.paid_at)

        balance = self.balance()
        self.assertEqual(balance.pending_balance, Decimal("30.00"))
        self.assertEqual(balance.available_balance, Decimal("-4.00"))
        self.assertEqual(
            set(SellerBalanceTransaction.objects.values_list("type", flat=True)),
            {"order_payment", "platform_fee", "stripe_fee"},
        )
        self.assertEqual(get_event_bus().events_of_type("order.paid")[0]["payload"]["amount_paid"], "30.00")

    def test_replay_is_ignored(self):
        self.service.handle_payment_succeeded(self.order.pk, "30.00", "pi_123")

        replay = self.service.handle_payment_succeeded(self.order.pk, "30.00", "pi_123")

        self.assertTrue(replay.ok)
        self.assertTrue(replay.value["duplicate"])
        self.assertEqual(OrderPayment.objects.count(), 1)
        self.assertEqual(SellerBalanceTransaction.objects.count(), 1)

    def test_second_payment_for_paid_order_conflicts(self):
        self.service.handle_payment_succeeded(self.order.pk, "30.00", "pi_123")

        result = self.service.handle_payment_succeeded(self.order.pk, "30.00", "pi_456")

        self.assertEqual(result.error, ErrorCodes.INVALID_PAYMENT_STATE)
        self.assertEqual(OrderPayment.objects.count(), 1)

    def test_deleting_order_keeps_ledger_rows(self):
        self.service.handle_payment_succeeded(self.order.pk, "30.00", "pi_123", platform_fee="3.00")
        ledger = list(SellerBalanceTransaction.objects.order_by("type").values_list("pk", "order_id", "amount", "balance_after"))

        result = self.service.order_service.delete_orders([self.order.pk], SYSTEM_ACTOR)

        self.assertEqual(result.value["deleted"], [str(self.order.pk)])
        self.assertFalse(Order.objects.filter(pk=self.order.pk).exists())
        self.assertEqual(
            list(SellerBalanceTransaction.objects.order_by("type").values_list("pk", "order_id", "amount", "balance_after")),
            ledger,
        )
        self.assertEqual(ledger[0][1], self.order.pk)
        self.assertEqual(OrderPayment.objects.get(reference="pi_123").order_id, self.order.pk)

    def test_rejected_events_write_nothing(self):
        wrong_currency = self.service.handle_payment_succeeded(self.order.pk, "30.00", "pi_1", currency="USD")
        fees_too_high = self.service.handle_payment_succeeded(self.order.pk, "30.00", "pi_2", platform_fee="31.00")
        no_reference = self.service.handle_payment_succeeded(self.order.pk, "30.00", " ")
        unknown_order = self.service.handle_payment_succeeded("00000000-0000-0000-0000-000000000000", "30.00", "pi_3")

        self.assertEqual(wrong_currency.error, ErrorCodes.CURRENCY_MISMATCH)
        self.assertEqual(fees_too_high.error, ErrorCodes.INVALID_AMOUNT)
        self.assertEqual(no_reference.error, ErrorCodes.VALIDATION_ERROR)
        self.assertEqual(unknown_order.error, ErrorCodes.ORDER_NOT_FOUND)
        self.assertFalse(OrderPayment.objects.exists())
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_PENDING)


class DraftPaymentTest(TestCase):
    def setUp(self):
        get_event_bus().clear()
        self.order_service = OrderService()
        self.service = PaymentEventService(order_service=self.order_service)
        vendor = UserFactory()
        self.store = StoreFactory(owner=vendor)
        self.vendor_actor = resolve_actor(vendor)
        self.variant = stocked_variant(self.store, available=5)
        created = self.order_service.create_order(
            self.vendor_actor,
            {
                "items": [{"variant_id": str(self.variant.pk), "quantity": 3}],
                "status": "draft",
                "email": "buyer@example.com",
            },
        )
        self.assertTrue(created.ok, created.error_detail)
        self.draft = created.value

    def test_payment_places_draft_and_reserves_stock(self):
        result = self.service.handle_payment_succeeded(self.draft.pk, self.draft.total_amount, "pi_draft")

        self.assertTrue(result.ok, result.error_detail)
        self.draft.refresh_from_db()
        self.assertEqual(self.draft.status, Order.STATUS_OPEN)
        self.assertEqual(self.draft.payment_status, Order.PAYMENT_PAID)
        self.assertTrue(self.draft.inventory_reserved)
        self.assertIsNotNone(self.draft.placed_at)
        level = level_for(self.variant)
        self.assertEqual((level.available, level.committed), (2, 3))

    def test_draft_without_stock_rejects_payment(self):
        buyer = UserFactory()
        placed = self.order_service.create_order(
            resolve_actor(buyer), {"items": [{"variant_id": str(self.variant.pk), "quantity": 4}]}
        )
        self.assertTrue(placed.ok, placed.error_detail)

        result = self.service.handle_payment_succeeded(self.draft.pk, self.draft.total_amount, "pi_draft")

        self.assertEqual(result.error, ErrorCodes.INSUFFICIENT_STOCK)
        self.draft.refresh_from_db()
        self.assertEqual(self.draft.status, Order.STATUS_DRAFT)
        self.assertEqual(self.draft.payment_status, Order.PAYMENT_PENDING)
        self.assertFalse(OrderPayment.objects.exists())
        self.assertFalse(SellerBalanceTransaction.objects.exists())
        self.assertEqual(level_for(self.variant).committed, 4)


class RefundTest(PaymentEventTestBase):
    def setUp(self):
        super().setUp()
        self.service.handle_payment_succeeded(self.order.pk, "30.00", "pi_123")

    def test_partial_then_full_refund(self):
        partial = self.service.handle_refund(self.order.pk, "10.00", "re_1")
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_PARTIALLY_REFUNDED)

        rest = self.service.handle_refund(self.order.pk, "20.00", "re_2")
        self.order.refresh_from_db()

        self.assertTrue(partial.ok and rest.ok)
        self.assertEqual(self.order.payment_status, Order.PAYMENT_REFUNDED)
        self.assertEqual(self.balance().available_balance, Decimal("-30.00"))
        self.assertEqual(self.balance().pending_balance, Decimal("30.00"))

    def test_refund_cannot_exceed_paid_amount(self):
        result = self.service.handle_refund(self.order.pk, "30.01", "re_1")

        self.assertEqual(result.error, ErrorCodes.INVALID_AMOUNT)
        self.assertEqual(result.details, {"refundable": "30.00", "requested": "30.01"})

    def test_refund_replay_is_ignored(self):
        self.service.handle_refund(self.order.pk, "5.00", "re_1")

        replay = self.service.handle_refund(self.order.pk, "5.00", "re_1")

        self.assertTrue(replay.value["duplicate"])
        self.assertEqual(SellerBalanceTransaction.objects.filter(type="refund").count(), 1)


class PaymentListenerTest(PaymentEventTestBase):
    def tearDown(self):
        container.reset()

    def test_payment_succeeded_event_applies_payment(self):
        get_event_bus().publish(
            "payment.succeeded",
            {"order_id": str(self.order.pk), "amount_paid": "30.00", "reference": "pi_evt", "platform_fee": "2.00"},
        )

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_PAID)
        self.assertEqual(self.balance().available_balance, Decimal("-2.00"))

    def test_refund_event_applies_refund(self):
        self.service.handle_payment_succeeded(self.order.pk, "30.00", "pi_123")

        get_event_bus().publish("payment.refunded", {"order_id": str(self.order.pk), "amount": "30.00", "reference": "re_evt"})

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_REFUNDED)

    def test_rejected_event_is_logged(self):
        with self.assertLogs("payment_system.infra.events.listeners", level="ERROR"):
            get_event_bus().publish(
                "payment.succeeded", {"order_id": str(self.order.pk), "amount_paid": "30.00", "reference": ""}
            )

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_PENDING)

    def test_payment_failed_event_marks_order(self):
        get_event_bus().publish("payment.failed", {"order_id": str(self.order.pk), "reason": "card declined"})

        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, Order.PAYMENT_FAILED)
