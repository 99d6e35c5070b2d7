"""
FulfillmentService - Vendor Shipments

Vendors ship their portion of an order (manually with a tracking number, or by
buying a label from the shipping provider). Each shipment increments the item
``fulfilled_quantity``, retires the inventory commitment, updates the vendor
fulfillment rows and re-derives the order's master fulfillment status.

Fulfillment requires ``payment_status == paid`` and no workflow hold.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from infrastructure.observability.tracing import add_span_attributes, get_tracer
from infrastructure.shipping import (
    Parcel,
    PurchasedLabel,
    ShippingAddress,
    ShippingProviderError,
    ShippingProviderInterface,
    ShippingUnavailableError,
)
from marketplace.domain.events.order_events import OrderFulfilledEvent
from marketplace.domain.events.publisher import publish_after_commit
from marketplace.fulfillment.domain.models.fulfillment import Fulfillment
from marketplace.fulfillment.domain.services.status import recompute_fulfillment_status
from marketplace.fulfillment.domain.services.tracking import (
    TRACKING_TOKEN_LENGTH,
    carrier_code,
    generate_tracking_token,
    is_valid_tracking_number,
    tracking_url,
)
from marketplace.infra.observability.metrics import (
    fulfillment_blocked_total,
    fulfillments_total,
    order_status_transitions_total,
    shipping_provider_errors_total,
    tracking_notifications_total,
)
from marketplace.inventory.domain.services.inventory_service import InventoryService, StockRequest
from marketplace.ordering.domain.models.order import Order, OrderEvent, OrderItem
from marketplace.ordering.domain.services.order_service import OrderService
from marketplace.services.base import BaseService, ErrorCodes, ServiceResult
from marketplace.services.exceptions import (
    Conflict,
    NotFound,
    PermissionDenied,
    UpstreamError,
    ValidationError,
)
from utils.rbac import Actor

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

METHOD_MANUAL = "manual"
METHOD_LABEL = "label"
METHOD_LINE_ITEMS = "line_items"
METHOD_STATUS_CHANGE = "status_change"

COMPLETABLE_PAYMENT_STATUSES = (Order.PAYMENT_PAID, Order.PAYMENT_PARTIALLY_REFUNDED)


def dispatch_tracking_notification(order_id: str, fulfillment_id: str):
    """Queue the shipment email. Never raises; failures are logged and counted."""
    from marketplace.tasks import send_tracking_notification_task

    try:
        send_tracking_notification_task.delay(order_id, fulfillment_id)
        tracking_notifications_total.labels(status="queued").inc()
    except Exception as e:
        tracking_notifications_total.labels(status="dispatch_failed").inc()
        logger.error(f"Failed to queue tracking notification for order {order_id}: {e}", exc_info=True)


class FulfillmentService(BaseService):
    """
    Service for vendor fulfillment of paid orders.
    """

    def __init__(
        self,
        order_service: OrderService = None,
        inventory_service: InventoryService = None,
        shipping_provider: Optional[ShippingProviderInterface] = None,
        balance_service=None,
    ):
        """
        Initialize FulfillmentService.

        Args:
            order_service: Order lifecycle helpers (injected)
            inventory_service: Stock ledger (injected)
            shipping_provider: Rates and label purchase (defaults to the container's provider)
            balance_service: Seller balance ledger, debited for purchased labels
        """
        super().__init__()
        self.inventory_service = inventory_service or InventoryService()
        self.order_service = order_service or OrderService(inventory_service=self.inventory_service)
        self._shipping_provider = shipping_provider
        self._balance_service = balance_service

    @property
    def shipping_provider(self) -> ShippingProviderInterface:
        if self._shipping_provider is None:
            from infrastructure.container import container

            self._shipping_provider = container.shipping()
        return self._shipping_provider

    @property
    def balance_service(self):
        if self._balance_service is None:
            from payment_system.domain.services import SellerBalanceService

            self._balance_service = SellerBalanceService()
        return self._balance_service

    # ------------------------------------------------------------------
    # Gating and ownership
    # ------------------------------------------------------------------

    def ensure_can_fulfill(self, order: Order):
        """
        Raises:
            Conflict: payment_required, order_on_hold or invalid_order_state
        """
        if order.payment_status != Order.PAYMENT_PAID:
            fulfillment_blocked_total.labels(reason="payment").inc()
            raise Conflict(
                f"Order #{order.order_number} must be paid before it can be fulfilled "
                f"(payment status: {order.payment_status})",
                code=ErrorCodes.PAYMENT_REQUIRED,
            )
        if order.workflow_status == Order.WORKFLOW_ON_HOLD:
            fulfillment_blocked_total.labels(reason="on_hold").inc()
            raise Conflict(
                f"Order #{order.order_number} is on hold: {order.hold_reason}", code=ErrorCodes.ORDER_ON_HOLD
            )
        # only placed orders hold the reservation that fulfillment retires
        if order.status != Order.STATUS_OPEN or not order.inventory_reserved:
            fulfillment_blocked_total.labels(reason=order.status).inc()
            raise Conflict(f"Order #{order.order_number} is {order.status} and cannot be fulfilled")

    def resolve_store(self, order: Order, actor: Actor, store_id=None) -> str:
        """The vendor whose portion is being shipped. Admins must name one on multi-vendor orders."""
        actor.require_vendor_or_admin()
        stores = self.order_service.item_store_ids(order)
        if actor.is_admin:
            if store_id:
                target = str(store_id)
            elif len(stores) == 1:
                target = next(iter(stores))
            else:
                raise ValidationError("store_id is required for multi-vendor orders", details={"field": "store_id"})
        else:
            target = actor.store_id
        if target not in stores:
            raise PermissionDenied(
                f"Order #{order.order_number} has no items from this store", code=ErrorCodes.NOT_ORDER_OWNER
            )
        return target

    # ------------------------------------------------------------------
    # Shipment core (caller holds the order lock inside a transaction)
    # ------------------------------------------------------------------

    def _vendor_items(self, order: Order, store_id: str) -> List[OrderItem]:
        return list(order.items.select_related("listing", "variant").filter(listing__store_id=store_id))

    def _validate_quantities(self, order: Order, store_id: str, requested: Dict[str, int]) -> Dict[OrderItem, int]:
        """All-or-nothing check of the requested quantities; nothing is written."""
        if not requested:
            raise ValidationError("No items to fulfill", details={"field": "items"})

        items = {str(item.pk): item for item in self._vendor_items(order, store_id)}
        plan = {}
        for item_id, quantity in requested.items():
            item = items.get(str(item_id))
            if item is None:
                raise NotFound(f"Order item {item_id} is not part of this vendor's portion", code=ErrorCodes.ORDER_NOT_FOUND)
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
                raise ValidationError(
                    f"Quantity for '{item.title}' must be a positive integer",
                    code=ErrorCodes.INVALID_QUANTITY,
                    details={"field": f"items.{item_id}"},
                )
            if item.remaining_quantity == 0:
                raise Conflict(f"'{item.title}' is already fulfilled", code=ErrorCodes.ALREADY_FULFILLED)
            if quantity > item.remaining_quantity:
                raise ValidationError(
                    f"Cannot fulfill {quantity} of '{item.title}': only {item.remaining_quantity} remaining",
                    code=ErrorCodes.INVALID_QUANTITY,
                    details={"order_item_id": str(item.pk), "remaining": item.remaining_quantity, "requested": quantity},
                )
            plan[item] = quantity
        return plan

    def _remaining_plan(self, order: Order, store_id: str) -> Dict[OrderItem, int]:
        plan = {item: item.remaining_quantity for item in self._vendor_items(order, store_id) if item.remaining_quantity}
        if not plan:
            raise Conflict(
                f"This vendor's portion of order #{order.order_number} is already fulfilled",
                code=ErrorCodes.ALREADY_FULFILLED,
            )
        return plan

    def _ship(
        self,
        order: Order,
        store_id: str,
        plan: Dict[OrderItem, int],
        actor: Actor,
        method: str,
        carrier: str = "",
        tracking_number: str = "",
        tracking_link: str = "",
        label: Optional[PurchasedLabel] = None,
    ) -> Fulfillment:
        now = timezone.now()

        for item, quantity in plan.items():
            updated = OrderItem.objects.filter(
                pk=item.pk, fulfilled_quantity__lte=item.quantity - quantity
            ).update(fulfilled_quantity=F("fulfilled_quantity") + quantity)
            if not updated:
                raise Conflict(f"'{item.title}' was fulfilled concurrently", code=ErrorCodes.ALREADY_FULFILLED)
            item.fulfilled_quantity += quantity

        requests = [
            StockRequest(
                variant_id=str(item.variant_id),
                store_id=store_id,
                quantity=quantity,
                label=item.title,
                order_item=item,
                location_id=item.inventory_location_id,
            )
            for item, quantity in plan.items()
        ]
        lines = self.inventory_service.build_lines(requests)
        self.inventory_service.fulfill_lines(lines, "order_fulfilled", actor, "order", order.pk)

        vendor_rows = Fulfillment.objects.select_for_update().filter(order=order, store_id=store_id)
        fulfillment = vendor_rows.filter(tracking_number="", fulfilled_at__isnull=True).exclude(
            vendor_fulfillment_status=Fulfillment.STATUS_CANCELED
        ).first()
        if fulfillment is None:
            fulfillment = Fulfillment(order=order, store_id=store_id)

        if carrier:
            fulfillment.carrier = carrier
            fulfillment.carrier_code = carrier_code(carrier)
        if tracking_number:
            fulfillment.tracking_number = tracking_number
            fulfillment.tracking_url = tracking_link or tracking_url(carrier, tracking_number)
        if label is not None:
            fulfillment.shipping_label_url = label.label_url
            fulfillment.shipping_label_cost = label.cost
            fulfillment.shipment_id = label.shipment_id
        fulfillment.line_items = {str(item.pk): quantity for item, quantity in plan.items()}
        fulfillment.fulfilled_by_id = actor.user_id
        fulfillment.fulfilled_at = now
        fulfillment.save()

        vendor_done = all(item.is_fulfilled for item in self._vendor_items(order, store_id))
        vendor_status = Fulfillment.STATUS_FULFILLED if vendor_done else Fulfillment.STATUS_PARTIAL
        Fulfillment.objects.filter(order=order, store_id=store_id).update(
            vendor_fulfillment_status=vendor_status, updated_at=now
        )
        fulfillment.vendor_fulfillment_status = vendor_status

        recompute_fulfillment_status(order)

        first_shipment = order.tracking_token is None
        update_fields = ["updated_at"]
        if first_shipment:
            order.tracking_token = generate_tracking_token()
            update_fields.append("tracking_token")

        completed = False
        if order.fulfillment_status == Order.FULFILLMENT_FULFILLED:
            order.fulfilled_at = now
            # fulfill retired every remaining commitment
            order.inventory_reserved = False
            update_fields += ["fulfilled_at", "inventory_reserved"]
            if order.payment_status in COMPLETABLE_PAYMENT_STATUSES and order.status == Order.STATUS_OPEN:
                order_status_transitions_total.labels(from_status=order.status, to_status=Order.STATUS_COMPLETED).inc()
                order.status = Order.STATUS_COMPLETED
                update_fields.append("status")
                completed = True
        order.save(update_fields=update_fields)

        shipped = sum(plan.values())
        self.order_service.log_event(
            order,
            "fulfillment",
            f"{shipped} item(s) shipped" + (f" via {carrier} ({tracking_number})" if tracking_number else ""),
            actor,
            metadata={
                "fulfillment_id": str(fulfillment.pk),
                "store_id": store_id,
                "method": method,
                "carrier": carrier,
                "tracking_number": tracking_number,
                "line_items": fulfillment.line_items,
            },
            visibility=OrderEvent.VISIBILITY_CUSTOMER,
        )
        if completed:
            self.order_service.log_event(
                order, "status_changed", "Order completed", actor, metadata={"from": "open", "to": "completed"}
            )
        if order.fulfillment_status == Order.FULFILLMENT_FULFILLED:
            publish_after_commit(OrderFulfilledEvent(str(order.pk), order.order_number, completed))

        if first_shipment:
            order_id, fulfillment_id = str(order.pk), str(fulfillment.pk)
            transaction.on_commit(lambda: dispatch_tracking_notification(order_id, fulfillment_id))

        fulfillments_total.labels(method=method, status=vendor_status).inc()
        self.logger.info(
            f"Order {order.pk}: store {store_id} shipped {shipped} unit(s) via {method}; "
            f"vendor={vendor_status} master={order.fulfillment_status}"
        )
        return fulfillment

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_tracking(carrier: str, tracking_number: str, required: bool):
        carrier = (carrier or "").strip()
        tracking_number = (tracking_number or "").strip()
        if required and not carrier:
            raise ValidationError("Carrier is required", details={"field": "carrier"})
        if (required or tracking_number) and not is_valid_tracking_number(tracking_number):
            raise ValidationError(
                "Tracking number must be at least 5 characters",
                code=ErrorCodes.INVALID_TRACKING,
                details={"field": "tracking_number"},
            )
        return carrier, tracking_number

    @BaseService.log_performance
    def fulfill_items(
        self,
        order_id,
        actor: Actor,
        items: List[Dict],
        carrier: str = "",
        tracking_number: str = "",
        tracking_link: str = "",
        store_id=None,
    ) -> ServiceResult[Fulfillment]:
        """
        Ship specific quantities of the caller's items.

        Args:
            items: [{"order_item_id": ..., "quantity": n}]
        """

        def operation():
            carrier_name, number = self._validate_tracking(carrier, tracking_number, required=False)
            requested: Dict[str, int] = {}
            for entry in items or []:
                item_id = str(entry.get("order_item_id"))
                quantity = entry.get("quantity")
                if item_id in requested:
                    raise ValidationError(f"Order item {item_id} listed twice", details={"field": "items"})
                requested[item_id] = quantity

            with tracer.start_as_current_span("fulfillment.fulfill_items") as span, transaction.atomic():
                order = self.order_service.lock_order(order_id)
                add_span_attributes(span, **{"order.id": order.pk, "actor.role": actor.role})
                store = self.resolve_store(order, actor, store_id)
                self.ensure_can_fulfill(order)
                plan = self._validate_quantities(order, store, requested)
                return self._ship(order, store, plan, actor, METHOD_LINE_ITEMS, carrier_name, number, tracking_link)

        return self.run("fulfill_items", operation)

    @BaseService.log_performance
    def mark_shipped_manually(
        self,
        order_id,
        actor: Actor,
        carrier: str,
        tracking_number: str,
        tracking_link: str = "",
        store_id=None,
    ) -> ServiceResult[Fulfillment]:
        """Ship the vendor's whole remaining portion with a manually entered tracking number."""

        def operation():
            carrier_name, number = self._validate_tracking(carrier, tracking_number, required=True)
            with tracer.start_as_current_span("fulfillment.mark_shipped") as span, transaction.atomic():
                order = self.order_service.lock_order(order_id)
                add_span_attributes(span, **{"order.id": order.pk, "carrier": carrier_name})
                store = self.resolve_store(order, actor, store_id)
                self.ensure_can_fulfill(order)
                plan = self._remaining_plan(order, store)
                return self._ship(order, store, plan, actor, METHOD_MANUAL, carrier_name, number, tracking_link)

        return self.run("mark_shipped_manually", operation)

    @BaseService.log_performance
    def update_fulfillment_status(
        self, order_id, new_status: str, actor: Actor, reason: str = ""
    ) -> ServiceResult[Order]:
        """
        Order-level fulfillment change.

        ``fulfilled`` ships every remaining item of every vendor; ``canceled`` cancels the
        order and releases its reservation.
        """

        if new_status == Order.FULFILLMENT_CANCELED:
            return self.order_service.cancel_order(order_id, actor, reason)

        def operation():
            if new_status != Order.FULFILLMENT_FULFILLED:
                raise ValidationError(
                    "Fulfillment status can only be set to fulfilled or canceled", details={"field": "status"}
                )

            with transaction.atomic():
                order = self.order_service.lock_order(order_id)
                self.order_service.authorize_manage(order, actor)
                self.ensure_can_fulfill(order)
                stores = sorted(self.order_service.item_store_ids(order))
                pending = [store for store in stores if any(i.remaining_quantity for i in self._vendor_items(order, store))]
                if not pending:
                    raise Conflict(f"Order #{order.order_number} is already fulfilled", code=ErrorCodes.ALREADY_FULFILLED)
                for store in pending:
                    self._ship(order, store, self._remaining_plan(order, store), actor, METHOD_STATUS_CHANGE)
                return order

        return self.run("update_fulfillment_status", operation)

    def recompute_fulfillment_status(self, order_id) -> ServiceResult[str]:
        def operation():
            with transaction.atomic():
                return recompute_fulfillment_status(self.order_service.lock_order(order_id))

        return self.run("recompute_fulfillment_status", operation)

    # ------------------------------------------------------------------
    # Shipping provider flow
    # ------------------------------------------------------------------

    @staticmethod
    def _parcel(data: Dict) -> Parcel:
        values = {}
        for field in ("length", "width", "height", "weight"):
            try:
                value = Decimal(str(data.get(field)))
            except (InvalidOperation, TypeError, ValueError):
                raise ValidationError(f"Parcel {field} is required", details={"field": f"parcel.{field}"})
            if value <= 0:
                raise ValidationError(f"Parcel {field} must be positive", details={"field": f"parcel.{field}"})
            values[field] = value
        return Parcel(**values)

    def _upstream_error(self, operation: str, error: ShippingProviderError) -> UpstreamError:
        retryable = isinstance(error, ShippingUnavailableError)
        shipping_provider_errors_total.labels(operation=operation, retryable=str(retryable).lower()).inc()
        self.logger.warning(f"Shipping provider {operation} failed (retryable={retryable}): {error}")
        if retryable:
            return UpstreamError(
                f"Shipping service is temporarily unavailable: {error}",
                code=ErrorCodes.SHIPPING_UNAVAILABLE,
                retryable=True,
            )
        return UpstreamError(
            f"Shipping labels are not available for this shipment: {error}. Enter tracking manually instead.",
            code=ErrorCodes.SHIPPING_UNSUPPORTED,
            retryable=False,
        )

    def _load_for_shipping(self, order_id, actor: Actor, store_id=None):
        order = self.order_service.find_order(order_id)
        store = self.resolve_store(order, actor, store_id)
        self.ensure_can_fulfill(order)
        self._remaining_plan(order, store)
        return order, store

    @BaseService.log_performance
    def get_shipping_rates(
        self, order_id, actor: Actor, parcel: Dict, from_address: Optional[Dict] = None, store_id=None
    ) -> ServiceResult[List[Dict]]:
        """Quote label rates from the vendor's default location to the order's shipping address."""

        def operation():
            order, store = self._load_for_shipping(order_id, actor, store_id)
            parcel_obj = self._parcel(parcel or {})
            origin = from_address or self.inventory_service.resolve_location(store).address
            if not origin:
                raise ValidationError("A ship-from address is required", details={"field": "from_address"})
            if not order.shipping_address:
                raise ValidationError("Order has no shipping address", details={"field": "shipping_address"})

            try:
                rates = self.shipping_provider.get_rates(
                    ShippingAddress.from_dict(origin), ShippingAddress.from_dict(order.shipping_address), parcel_obj
                )
            except ShippingProviderError as e:
                raise self._upstream_error("get_rates", e)

            return [
                {
                    "rate_id": rate.rate_id,
                    "shipment_id": rate.shipment_id,
                    "carrier": rate.carrier,
                    "service": rate.service,
                    "amount": str(rate.amount),
                    "currency": rate.currency,
                    "delivery_days": rate.delivery_days,
                }
                for rate in rates
            ]

        return self.run("get_shipping_rates", operation)

    @BaseService.log_performance
    def purchase_shipping_label(
        self, order_id, actor: Actor, shipment_id: str, rate_id: str, store_id=None
    ) -> ServiceResult[Fulfillment]:
        """
        Buy a label and record the shipment.

        The label is bought outside the database transaction; the fulfillment and the
        ``shipping_label`` debit on the vendor's balance are then written together.
        """

        def operation():
            if not shipment_id or not rate_id:
                raise ValidationError("shipment_id and rate_id are required", details={"field": "rate_id"})
            order, store = self._load_for_shipping(order_id, actor, store_id)

            try:
                with tracer.start_as_current_span("fulfillment.buy_label"):
                    label = self.shipping_provider.buy_label(shipment_id, rate_id)
            except ShippingProviderError as e:
                raise self._upstream_error("buy_label", e)

            try:
                with transaction.atomic():
                    locked = self.order_service.lock_order(order.pk)
                    self.ensure_can_fulfill(locked)
                    plan = self._remaining_plan(locked, store)
                    fulfillment = self._ship(
                        locked, store, plan, actor, METHOD_LABEL, label.carrier, label.tracking_number,
                        label.tracking_url or "", label,
                    )
                    self.balance_service.record_entry(
                        store_id=store,
                        entry_type="shipping_label",
                        amount=label.cost,
                        currency=label.currency,
                        actor=actor,
                        order=locked,
                        reference_type="shipping_label",
                        reference_id=label.shipment_id,
                        description=f"Shipping label {label.carrier} {label.tracking_number} for order #{locked.order_number}",
                    )
                    return fulfillment
            except Exception:
                self.logger.error(
                    f"Label {label.tracking_number} ({label.shipment_id}) was bought for order {order.pk} "
                    f"but the shipment could not be recorded",
                    exc_info=True,
                )
                raise

        return self.run("purchase_shipping_label", operation)

    # ------------------------------------------------------------------
    # Public tracking
    # ------------------------------------------------------------------

    def get_public_tracking_info(self, token: str) -> ServiceResult[Dict]:
        """Customer-facing shipment summary looked up by the opaque tracking token. No authentication."""

        def operation():
            if not token or len(token) != TRACKING_TOKEN_LENGTH:
                raise NotFound("Order not found", code=ErrorCodes.ORDER_NOT_FOUND)
            order = Order.objects.select_related("customer").filter(tracking_token=token).first()
            if order is None:
                raise NotFound("Order not found", code=ErrorCodes.ORDER_NOT_FOUND)

            first_name = order.customer.first_name if order.customer_id else ""
            return {
                "order_number": order.order_number,
                "customer_name": first_name or "Customer",
                "status": order.status,
                "fulfillment_status": order.fulfillment_status,
                "shipments": [
                    {
                        "id": str(fulfillment.pk),
                        "carrier": fulfillment.carrier,
                        "carrier_code": fulfillment.carrier_code,
                        "tracking_number": fulfillment.tracking_number or None,
                        "tracking_url": fulfillment.tracking_url
                        or (tracking_url(fulfillment.carrier, fulfillment.tracking_number) if fulfillment.tracking_number else None),
                        "status": fulfillment.vendor_fulfillment_status,
                        "fulfilled_at": fulfillment.fulfilled_at.isoformat() if fulfillment.fulfilled_at else None,
                    }
                    for fulfillment in order.fulfillments.all()
                    if fulfillment.fulfilled_at is not None
                ],
            }

        return self.run("get_public_tracking_info", operation)
