from decimal import Decimal
from unittest import mock

from django.test import TestCase

from infrastructure.events import get_event_bus
from infrastructure.shipping import ShippingUnavailableError, ShippingUnsupportedError
from infrastructure.shipping.mock_provider import MockShippingProvider
from marketplace.fulfillment.domain.models.fulfillment import Fulfillment
from marketplace.fulfillment.domain.services.fulfillment_service import (
    FulfillmentService,
    dispatch_tracking_notification,
)
from marketplace.models import Order
from marketplace.ordering.domain.services.order_service import OrderService
from marketplace.services.base import ErrorCodes
from marketplace.tests.factories import (
    AdminFactory,
    InventoryLocationFactory,
    StoreFactory,
    UserFactory,
    level_for,
    stocked_variant,
)
from payment_system.models import SellerBalance, SellerBalanceTransaction
from utils.rbac import resolve_actor

SHIPPING_ADDRESS = {
    "name": "Ana Silva",
    "street1": "Rua Augusta 10",
    "city": "Lisboa",
    "zip": "1100-053",
    "country": "PT",
}
PARCEL = {"length": 10, "width": 8, "height": 4, "weight": 16}
NOTIFY = "marketplace.fulfillment.domain.services.fulfillment_service.dispatch_tracking_notification"


class FulfillmentServiceTestBase(TestCase):
    def setUp(self):
        self.order_service = OrderService()
        self.provider = MockShippingProvider()
        self.service = FulfillmentService(
            order_service=self.order_service,
            inventory_service=self.order_service.inventory_service,
            shipping_provider=self.provider,
        )
        self.vendor = UserFactory()
        self.store = StoreFactory(owner=self.vendor)
        self.vendor_actor = resolve_actor(self.vendor)
        self.location = InventoryLocationFactory(store=self.store)
        self.variant = stocked_variant(self.store, available=5, location=self.location)
        self.buyer = UserFactory()
        self.customer_actor = resolve_actor(self.buyer)
        self.admin_actor = resolve_actor(AdminFactory())
        get_event_bus().clear()

    def place(self, items, paid=True, **extra):
        result = self.order_service.create_order(
            self.customer_actor,
            {"items": items, "shipping_address": SHIPPING_ADDRESS, "customer": {"first_name": "Ana"}, **extra},
        )
        self.assertTrue(result.ok, result.error_detail)
        order = result.value
        if paid:
            paid_result = self.order_service.update_payment_status(order.pk, Order.PAYMENT_PAID, self.admin_actor)
            self.assertTrue(paid_result.ok, paid_result.error_detail)
        return order

    def place_single(self, quantity=3, paid=True):
        order = self.place([{"variant_id": str(self.variant.pk), "quantity": quantity}], paid=paid)
        return order, order.items.get()

    def reload(self, order):
        return Order.objects.get(pk=order.pk)


class FulfillmentGateTest(FulfillmentServiceTestBase):
    def test_unpaid_order_cannot_ship(self):
        order, _ = self.place_single(paid=False)

        result = self.service.mark_shipped_manually(order.pk, self.vendor_actor, "UPS", "1Z999AA10123456784")

        self.assertEqual(result.error, ErrorCodes.PAYMENT_REQUIRED)
        self.assertEqual(level_for(self.variant).committed, 3)

    def test_held_order_cannot_ship(self):
        order, _ = self.place_single()
        self.order_service.update_workflow_status(order.pk, Order.WORKFLOW_ON_HOLD, self.vendor_actor, "fraud review")

        result = self.service.mark_shipped_manually(order.pk, self.vendor_actor, "UPS", "1Z999AA10123456784")

        self.assertEqual(result.error, ErrorCodes.ORDER_ON_HOLD)

    def test_canceled_order_cannot_ship(self):
        order, _ = self.place_single()
        self.order_service.cancel_order(order.pk, self.vendor_actor)

        result = self.service.mark_shipped_manually(order.pk, self.vendor_actor, "UPS", "1Z999AA10123456784")

        self.assertEqual(result.error, ErrorCodes.INVALID_ORDER_STATE)

    def test_paid_draft_cannot_ship(self):
        created = self.order_service.create_order(
            self.vendor_actor,
            {
                "items": [{"variant_id": str(self.variant.pk), "quantity": 2}],
                "status": "draft",
                "email": "buyer@example.com",
                "shipping_address": SHIPPING_ADDRESS,
            },
        )
        self.assertTrue(created.ok, created.error_detail)
        order = created.value
        self.assertTrue(self.order_service.update_payment_status(order.pk, Order.PAYMENT_PAID, self.admin_actor).ok)

        result = self.service.mark_shipped_manually(order.pk, self.vendor_actor, "UPS", "1Z999AA10123456784")

        self.assertEqual(result.error, ErrorCodes.INVALID_ORDER_STATE)
        level = level_for(self.variant)
        self.assertEqual((level.available, level.committed), (5, 0))
        self.assertEqual(order.fulfillments.get().vendor_fulfillment_status, Fulfillment.STATUS_UNFULFILLED)
        self.assertEqual(self.reload(order).status, Order.STATUS_DRAFT)

    def test_customer_cannot_ship(self):
        order, _ = self.place_single()

        result = self.service.mark_shipped_manually(order.pk, self.customer_actor, "UPS", "1Z999AA10123456784")

        self.assertEqual(result.error, ErrorCodes.PERMISSION_DENIED)

    def test_tracking_validation(self):
        order, _ = self.place_single()

        short = self.service.mark_shipped_manually(order.pk, self.vendor_actor, "UPS", "1234")
        no_carrier = self.service.mark_shipped_manually(order.pk, self.vendor_actor, "", "1Z999AA10123456784")

        self.assertEqual(short.error, ErrorCodes.INVALID_TRACKING)
        self.assertEqual(no_carrier.error, ErrorCodes.VALIDATION_ERROR)


class ShipmentTest(FulfillmentServiceTestBase):
    def test_partial_shipment(self):
        order, item = self.place_single(quantity=3)

        with mock.patch(NOTIFY):
            result = self.service.fulfill_items(order.pk, self.vendor_actor, [{"order_item_id": str(item.pk), "quantity": 1}])

        self.assertTrue(result.ok, result.error_detail)
        item.refresh_from_db()
        self.assertEqual(item.fulfilled_quantity, 1)
        level = level_for(self.variant)
        self.assertEqual((level.available, level.committed, level.on_hand, level.shipped), (2, 2, 4, 1))
        order = self.reload(order)
        self.assertEqual(order.fulfillment_status, Order.FULFILLMENT_PARTIAL)
        self.assertEqual(order.status, Order.STATUS_OPEN)
        self.assertTrue(order.inventory_reserved)
        self.assertEqual(len(order.tracking_token), 32)
        self.assertEqual(result.value.vendor_fulfillment_status, Fulfillment.STATUS_PARTIAL)
        self.assertEqual(result.value.line_items, {str(item.pk): 1})

    def test_full_manual_shipment_completes_paid_order(self):
        order, item = self.place_single(quantity=3)

        with mock.patch(NOTIFY), self.captureOnCommitCallbacks(execute=True):
            result = self.service.mark_shipped_manually(order.pk, self.vendor_actor, "UPS", "1Z999AA10123456784")

        self.assertTrue(result.ok, result.error_detail)
        fulfillment = result.value
        self.assertEqual(fulfillment.carrier_code, "ups")
        self.assertIn("ups.com", fulfillment.tracking_url)
        order = self.reload(order)
        self.assertEqual(order.status, Order.STATUS_COMPLETED)
        self.assertEqual(order.fulfillment_status, Order.FULFILLMENT_FULFILLED)
        self.assertFalse(order.inventory_reserved)
        self.assertIsNotNone(order.fulfilled_at)
        level = level_for(self.variant)
        self.assertEqual((level.available, level.committed, level.on_hand, level.shipped), (2, 0, 2, 3))
        events = get_event_bus().events_of_type("order.fulfilled")
        self.assertEqual(events[0]["payload"], {"order_id": str(order.pk), "order_number": order.order_number, "completed": True})

    def test_second_shipment_of_finished_portion_is_rejected(self):
        order, _ = self.place_single(quantity=1)
        with mock.patch(NOTIFY):
            self.service.mark_shipped_manually(order.pk, self.vendor_actor, "UPS", "1Z999AA10123456784")

        result = self.service.mark_shipped_manually(order.pk, self.vendor_actor, "UPS", "1Z999AA10123456785")

        self.assertEqual(result.error, ErrorCodes.INVALID_ORDER_STATE)

    def test_over_quantity_changes_nothing(self):
        order, item = self.place_single(quantity=2)

        result = self.service.fulfill_items(order.pk, self.vendor_actor, [{"order_item_id": str(item.pk), "quantity": 3}])

        self.assertEqual(result.error, ErrorCodes.INVALID_QUANTITY)
        self.assertEqual(result.details["remaining"], 2)
        item.refresh_from_db()
        self.assertEqual(item.fulfilled_quantity, 0)
        self.assertEqual(level_for(self.variant).committed, 2)
        self.assertIsNone(self.reload(order).tracking_token)

    def test_empty_and_duplicate_item_lists(self):
        order, item = self.place_single()
        entry = {"order_item_id": str(item.pk), "quantity": 1}

        empty = self.service.fulfill_items(order.pk, self.vendor_actor, [])
        twice = self.service.fulfill_items(order.pk, self.vendor_actor, [entry, entry])

        self.assertEqual(empty.error, ErrorCodes.VALIDATION_ERROR)
        self.assertEqual(twice.error, ErrorCodes.VALIDATION_ERROR)

    def test_notification_queued_on_first_shipment_only(self):
        order, item = self.place_single(quantity=3)
        entry = [{"order_item_id": str(item.pk), "quantity": 1}]

        with mock.patch(NOTIFY) as notify:
            with self.captureOnCommitCallbacks(execute=True):
                first = self.service.fulfill_items(order.pk, self.vendor_actor, entry)
            with self.captureOnCommitCallbacks(execute=True):
                self.service.fulfill_items(order.pk, self.vendor_actor, entry)

        notify.assert_called_once_with(str(order.pk), str(first.value.pk))

    def test_dispatch_queues_celery_task(self):
        with mock.patch("marketplace.tasks.send_tracking_notification_task.delay") as delay:
            dispatch_tracking_notification("order-id", "fulfillment-id")

        delay.assert_called_once_with("order-id", "fulfillment-id")

    def test_dispatch_swallows_broker_errors(self):
        with mock.patch("marketplace.tasks.send_tracking_notification_task.delay", side_effect=ConnectionError("down")):
            dispatch_tracking_notification("order-id", "fulfillment-id")

    def test_cancel_after_partial_shipment_releases_only_remainder(self):
        order, item = self.place_single(quantity=3)
        with mock.patch(NOTIFY):
            self.service.fulfill_items(order.pk, self.vendor_actor, [{"order_item_id": str(item.pk), "quantity": 1}])

        result = self.order_service.cancel_order(order.pk, self.vendor_actor)

        self.assertTrue(result.ok, result.error_detail)
        level = level_for(self.variant)
        self.assertEqual((level.available, level.committed, level.on_hand), (4, 0, 4))
        self.assertEqual(self.reload(order).fulfillment_status, Order.FULFILLMENT_CANCELED)


class MultiVendorFulfillmentTest(FulfillmentServiceTestBase):
    def setUp(self):
        super().setUp()
        self.other_vendor = UserFactory()
        self.other_store = StoreFactory(owner=self.other_vendor)
        self.other_actor = resolve_actor(self.other_vendor)
        self.other_variant = stocked_variant(self.other_store, available=5)
        self.order = self.place(
            [
                {"variant_id": str(self.variant.pk), "quantity": 1},
                {"variant_id": str(self.other_variant.pk), "quantity": 2},
            ]
        )

    def test_master_status_follows_both_vendors(self):
        with mock.patch(NOTIFY):
            first = self.service.mark_shipped_manually(self.order.pk, self.vendor_actor, "USPS", "9400111899223")
            self.assertTrue(first.ok, first.error_detail)
            order = self.reload(self.order)
            self.assertEqual(order.fulfillment_status, Order.FULFILLMENT_PARTIAL)
            self.assertEqual(order.status, Order.STATUS_OPEN)

            second = self.service.mark_shipped_manually(self.order.pk, self.other_actor, "DHL", "JD014600006281")

        self.assertTrue(second.ok, second.error_detail)
        order = self.reload(self.order)
        self.assertEqual(order.fulfillment_status, Order.FULFILLMENT_FULFILLED)
        self.assertEqual(order.status, Order.STATUS_COMPLETED)
        self.assertEqual(level_for(self.other_variant).shipped, 2)

    def test_vendor_cannot_ship_other_vendor_item(self):
        foreign_item = self.order.items.get(variant=self.other_variant)

        result = self.service.fulfill_items(
            self.order.pk, self.vendor_actor, [{"order_item_id": str(foreign_item.pk), "quantity": 1}]
        )

        self.assertEqual(result.error, ErrorCodes.ORDER_NOT_FOUND)

    def test_admin_must_name_store(self):
        result = self.service.mark_shipped_manually(self.order.pk, self.admin_actor, "UPS", "1Z999AA10123456784")

        self.assertEqual(result.error, ErrorCodes.VALIDATION_ERROR)

        with mock.patch(NOTIFY):
            named = self.service.mark_shipped_manually(
                self.order.pk, self.admin_actor, "UPS", "1Z999AA10123456784", store_id=str(self.other_store.pk)
            )
        self.assertTrue(named.ok, named.error_detail)
        self.assertEqual(str(named.value.store_id), str(self.other_store.pk))

    def test_mark_fulfilled_ships_every_vendor(self):
        with mock.patch(NOTIFY):
            result = self.service.update_fulfillment_status(self.order.pk, Order.FULFILLMENT_FULFILLED, self.admin_actor)

        self.assertTrue(result.ok, result.error_detail)
        self.assertEqual(result.value.status, Order.STATUS_COMPLETED)
        self.assertEqual(
            set(self.order.fulfillments.values_list("vendor_fulfillment_status", flat=True)),
            {Fulfillment.STATUS_FULFILLED},
        )

    def test_vendor_cannot_mark_whole_order_fulfilled(self):
        result = self.service.update_fulfillment_status(self.order.pk, Order.FULFILLMENT_FULFILLED, self.vendor_actor)

        self.assertEqual(result.error, ErrorCodes.NOT_ORDER_OWNER)


class FulfillmentStatusChangeTest(FulfillmentServiceTestBase):
    def test_cancel_through_fulfillment_status(self):
        order, _ = self.place_single(quantity=2)

        result = self.service.update_fulfillment_status(order.pk, Order.FULFILLMENT_CANCELED, self.vendor_actor)

        self.assertTrue(result.ok, result.error_detail)
        self.assertEqual(result.value.status, Order.STATUS_CANCELED)
        self.assertEqual(level_for(self.variant).available, 5)

    def test_other_values_are_rejected(self):
        order, _ = self.place_single()

        result = self.service.update_fulfillment_status(order.pk, Order.FULFILLMENT_PARTIAL, self.vendor_actor)

        self.assertEqual(result.error, ErrorCodes.VALIDATION_ERROR)

    def test_recompute(self):
        order, _ = self.place_single()
        Order.objects.filter(pk=order.pk).update(fulfillment_status=Order.FULFILLMENT_FULFILLED)

        result = self.service.recompute_fulfillment_status(order.pk)

        self.assertEqual(result.value, Order.FULFILLMENT_UNFULFILLED)
        self.assertEqual(self.reload(order).fulfillment_status, Order.FULFILLMENT_UNFULFILLED)


class ShippingLabelTest(FulfillmentServiceTestBase):
    def test_rates_from_mock_provider(self):
        order, _ = self.place_single()

        result = self.service.get_shipping_rates(order.pk, self.vendor_actor, PARCEL)

        self.assertTrue(result.ok, result.error_detail)
        self.assertEqual([(r["carrier"], r["amount"]) for r in result.value], [("USPS", "8.50"), ("UPS", "11.25")])

    def test_rates_need_parcel_and_destination(self):
        order, _ = self.place_single()
        missing_parcel = self.service.get_shipping_rates(order.pk, self.vendor_actor, {"length": 10})
        Order.objects.filter(pk=order.pk).update(shipping_address={})
        missing_address = self.service.get_shipping_rates(order.pk, self.vendor_actor, PARCEL)

        self.assertEqual(missing_parcel.error, ErrorCodes.VALIDATION_ERROR)
        self.assertEqual(missing_address.error, ErrorCodes.VALIDATION_ERROR)

    def test_purchase_label_ships_and_debits_balance(self):
        order, _ = self.place_single(quantity=2)
        rate = self.service.get_shipping_rates(order.pk, self.vendor_actor, PARCEL).value[0]

        with mock.patch(NOTIFY):
            result = self.service.purchase_shipping_label(order.pk, self.vendor_actor, rate["shipment_id"], rate["rate_id"])

        self.assertTrue(result.ok, result.error_detail)
        fulfillment = result.value
        self.assertTrue(fulfillment.tracking_number.startswith("9400"))
        self.assertEqual(fulfillment.shipping_label_cost, Decimal("8.50"))
        self.assertEqual(fulfillment.carrier_code, "usps")
        self.assertEqual(len(self.provider.purchased), 1)
        debit = SellerBalanceTransaction.objects.get(store=self.store)
        self.assertEqual(debit.type, SellerBalanceTransaction.TYPE_SHIPPING_LABEL)
        self.assertEqual(debit.amount, Decimal("8.50"))
        self.assertEqual(SellerBalance.objects.get(store=self.store).available_balance, Decimal("-8.50"))
        self.assertEqual(self.reload(order).status, Order.STATUS_COMPLETED)

    def test_purchase_requires_rate(self):
        order, _ = self.place_single()

        result = self.service.purchase_shipping_label(order.pk, self.vendor_actor, "", "")

        self.assertEqual(result.error, ErrorCodes.VALIDATION_ERROR)

    def test_transient_provider_failure_is_retryable(self):
        order, _ = self.place_single()
        self.provider.fail_with = ShippingUnavailableError("timeout")

        result = self.service.get_shipping_rates(order.pk, self.vendor_actor, PARCEL)

        self.assertEqual(result.error, ErrorCodes.SHIPPING_UNAVAILABLE)
        self.assertTrue(result.details["retryable"])

    def test_unsupported_route_falls_back_to_manual(self):
        order, _ = self.place_single()
        rate = self.service.get_shipping_rates(order.pk, self.vendor_actor, PARCEL).value[0]
        self.provider.fail_with = ShippingUnsupportedError("no service to PT")

        result = self.service.purchase_shipping_label(order.pk, self.vendor_actor, rate["shipment_id"], rate["rate_id"])

        self.assertEqual(result.error, ErrorCodes.SHIPPING_UNSUPPORTED)
        self.assertFalse(result.details["retryable"])
        self.assertFalse(SellerBalanceTransaction.objects.exists())
        self.assertEqual(self.reload(order).fulfillment_status, Order.FULFILLMENT_UNFULFILLED)


class PublicTrackingTest(FulfillmentServiceTestBase):
    def test_tracking_by_token(self):
        order, _ = self.place_single()
        with mock.patch(NOTIFY):
            self.service.mark_shipped_manually(order.pk, self.vendor_actor, "FedEx", "612999AA10")
        token = self.reload(order).tracking_token

        result = self.service.get_public_tracking_info(token)

        self.assertTrue(result.ok, result.error_detail)
        self.assertEqual(result.value["order_number"], order.order_number)
        self.assertEqual(result.value["customer_name"], "Ana")
        shipment = result.value["shipments"][0]
        self.assertEqual(shipment["carrier_code"], "fedex")
        self.assertEqual(shipment["tracking_number"], "612999AA10")

    def test_bad_tokens_look_like_missing_orders(self):
        self.assertEqual(self.service.get_public_tracking_info("short").error, ErrorCodes.ORDER_NOT_FOUND)
        self.assertEqual(self.service.get_public_tracking_info("x" * 32).error, ErrorCodes.ORDER_NOT_FOUND)
        self.assertEqual(self.service.get_public_tracking_info("").error, ErrorCodes.ORDER_NOT_FOUND)
