"""
OrderService - Order Lifecycle Management

Handles order creation, lifecycle/payment/workflow transitions, cancellation,
archiving and deletion. Stock moves through InventoryService; every mutation runs
in one transaction and is recorded on the order timeline.

Inventory is reserved exactly once when an order enters ``open`` and released
exactly once when it leaves it; ``Order.inventory_reserved`` carries that state.
"""

import logging
import uuid
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterable, List, Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Max, Q
from django.utils import timezone

from infrastructure.observability.tracing import add_span_attributes, get_tracer
from marketplace.catalog.domain.models.catalog import Listing, ListingVariant
from marketplace.domain.events.order_events import OrderCanceledEvent, OrderPlacedEvent
from marketplace.domain.events.publisher import publish_after_commit
from marketplace.fulfillment.domain.models.fulfillment import Fulfillment
from marketplace.fulfillment.domain.services.status import recompute_fulfillment_status
from marketplace.infra.observability.metrics import (
    order_creation_duration,
    order_status_transitions_total,
    order_value,
    orders_deleted_total,
    orders_placed_total,
)
from marketplace.inventory.domain.services.inventory_service import InventoryService, StockRequest
from marketplace.ordering.domain.models.order import Customer, Order, OrderEvent, OrderItem
from marketplace.services.base import BaseService, ErrorCodes, ServiceResult
from marketplace.services.exceptions import Conflict, NotFound, PermissionDenied, ServiceError, ValidationError
from utils.logging_utils import mask_value
from utils.rbac import Actor
from utils.transaction_utils import retry_on_deadlock

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

CENT = Decimal("0.01")

LIFECYCLE_TRANSITIONS = {
    Order.STATUS_DRAFT: {Order.STATUS_OPEN, Order.STATUS_CANCELED, Order.STATUS_ARCHIVED},
    Order.STATUS_OPEN: {Order.STATUS_DRAFT, Order.STATUS_ARCHIVED, Order.STATUS_CANCELED},
    Order.STATUS_COMPLETED: {Order.STATUS_ARCHIVED},
    Order.STATUS_ARCHIVED: {Order.STATUS_OPEN},
    Order.STATUS_CANCELED: set(),
}

PAYMENT_TRANSITIONS = {
    Order.PAYMENT_PENDING: {Order.PAYMENT_PAID, Order.PAYMENT_FAILED, Order.PAYMENT_VOID},
    Order.PAYMENT_PAID: {Order.PAYMENT_PARTIALLY_REFUNDED, Order.PAYMENT_REFUNDED},
    Order.PAYMENT_PARTIALLY_REFUNDED: {Order.PAYMENT_PARTIALLY_REFUNDED, Order.PAYMENT_REFUNDED},
    Order.PAYMENT_REFUNDED: set(),
    Order.PAYMENT_FAILED: set(),
    Order.PAYMENT_VOID: set(),
}

CREATE_STATUSES = (Order.STATUS_OPEN, Order.STATUS_DRAFT)
CREATE_PAYMENT_STATUSES = (Order.PAYMENT_PENDING, Order.PAYMENT_PAID)
# concurrent creates can read the same max order number
ORDER_NUMBER_ATTEMPTS = 3

ORDER_SORT_FIELDS = ("created_at", "-created_at", "order_number", "-order_number", "total_amount", "-total_amount")


def _money(value, field: str) -> Decimal:
    try:
        amount = Decimal(str(value if value is not None else "0")).quantize(CENT)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a decimal amount", details={"field": field})
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative", details={"field": field})
    return amount


def _uuid(value, field: str) -> str:
    try:
        return str(uuid.UUID(str(value)))
    except (TypeError, ValueError):
        raise ValidationError(f"{field} is not a valid identifier", code=ErrorCodes.INVALID_INPUT, details={"field": field})


class OrderService(BaseService):
    """
    Service for managing order lifecycle.
    """

    def __init__(self, inventory_service: InventoryService = None):
        """
        Initialize OrderService.

        Args:
            inventory_service: Service for stock management (injected)
        """
        super().__init__()
        self.inventory_service = inventory_service or InventoryService()

    # ------------------------------------------------------------------
    # Shared helpers (used by fulfillment and payment services inside their transactions)
    # ------------------------------------------------------------------

    def find_order(self, order_id, lock: bool = False) -> Order:
        queryset = Order.objects.select_for_update() if lock else Order.objects.all()
        order = queryset.filter(pk=_uuid(order_id, "order_id")).first()
        if order is None:
            raise NotFound(f"Order {order_id} not found", code=ErrorCodes.ORDER_NOT_FOUND)
        return order

    def lock_order(self, order_id) -> Order:
        """Row-locked load; must run inside ``transaction.atomic()``."""
        return self.find_order(order_id, lock=True)

    @staticmethod
    def item_store_ids(order: Order) -> set:
        return {str(store_id) for store_id in order.items.values_list("listing__store_id", flat=True)}

    def authorize_read(self, order: Order, actor: Actor):
        """Admins, vendors owning at least one item, and the buying customer may read an order."""
        if actor.is_admin:
            return
        if actor.store_id and actor.store_id in self.item_store_ids(order):
            return
        if actor.user_id and order.customer_id and order.customer.user_id == actor.user_id:
            return
        raise PermissionDenied("You do not have access to this order", code=ErrorCodes.NOT_ORDER_OWNER)

    def authorize_manage(self, order: Order, actor: Actor):
        """Admins, or a vendor whose store owns every line item."""
        if actor.is_admin:
            return
        actor.require_vendor_or_admin()
        stores = self.item_store_ids(order)
        if stores != {actor.store_id}:
            raise PermissionDenied(
                f"Order #{order.order_number} contains items from other vendors", code=ErrorCodes.NOT_ORDER_OWNER
            )

    def log_event(
        self,
        order: Order,
        event_type: str,
        message: str,
        actor: Optional[Actor] = None,
        metadata: Optional[dict] = None,
        visibility: str = OrderEvent.VISIBILITY_INTERNAL,
    ) -> OrderEvent:
        return OrderEvent.objects.create(
            order=order,
            type=event_type,
            visibility=visibility,
            message=message,
            metadata=metadata or {},
            created_by_id=actor.user_id if actor else None,
        )

    def _stock_requests(self, order: Order, use_reserved_location: bool) -> List[StockRequest]:
        requests = []
        for item in order.items.select_related("listing", "variant"):
            if item.remaining_quantity <= 0:
                continue
            requests.append(
                StockRequest(
                    variant_id=str(item.variant_id),
                    store_id=str(item.listing.store_id),
                    quantity=item.remaining_quantity,
                    label=item.variant.display_name,
                    order_item=item,
                    location_id=item.inventory_location_id if use_reserved_location else None,
                )
            )
        return requests

    def reserve_order_inventory(self, order: Order, actor: Optional[Actor], reason: str):
        """Reserve the remaining quantities of every item. No-op when already reserved."""
        if order.inventory_reserved:
            logger.debug(f"Order {order.pk} already holds a reservation")
            return
        lines = self.inventory_service.build_lines(self._stock_requests(order, use_reserved_location=False))
        self.inventory_service.reserve_lines(lines, reason, actor, "order", order.pk)
        order.inventory_reserved = True
        order.save(update_fields=["inventory_reserved", "updated_at"])

    def release_order_inventory(self, order: Order, actor: Optional[Actor], reason: str):
        """Release the remaining quantities of every item. No-op when nothing is reserved."""
        if not order.inventory_reserved:
            return
        lines = self.inventory_service.build_lines(self._stock_requests(order, use_reserved_location=True))
        self.inventory_service.release_lines(lines, reason, actor, "order", order.pk)
        order.inventory_reserved = False
        order.save(update_fields=["inventory_reserved", "updated_at"])

    def apply_lifecycle_transition(self, order: Order, new_status: str, actor: Optional[Actor], reason: str = ""):
        """
        Move ``order`` to ``new_status`` with its inventory side effects. Caller holds the row lock.

        Entering open reserves stock; leaving open releases it. Canceling also cancels
        the unfinished vendor fulfillments so the derived fulfillment status becomes canceled.
        """
        current = order.status
        if new_status not in LIFECYCLE_TRANSITIONS:
            raise ValidationError(f"Invalid status '{new_status}'", details={"field": "status"})
        if new_status not in LIFECYCLE_TRANSITIONS[current]:
            raise Conflict(f"Cannot change order #{order.order_number} from {current} to {new_status}")
        if new_status == Order.STATUS_CANCELED and order.fulfillment_status == Order.FULFILLMENT_FULFILLED:
            raise Conflict(
                f"Order #{order.order_number} is already fulfilled and cannot be canceled",
                code=ErrorCodes.ALREADY_FULFILLED,
            )

        now = timezone.now()
        update_fields = ["status", "updated_at"]

        if new_status == Order.STATUS_OPEN:
            self.reserve_order_inventory(order, actor, "order_opened")
            if order.placed_at is None:
                order.placed_at = now
                update_fields.append("placed_at")
        elif current == Order.STATUS_OPEN:
            self.release_order_inventory(order, actor, f"order_{new_status}")

        if new_status == Order.STATUS_CANCELED:
            order.canceled_at = now
            update_fields.append("canceled_at")
            Fulfillment.objects.filter(order=order).exclude(
                vendor_fulfillment_status=Fulfillment.STATUS_FULFILLED
            ).update(vendor_fulfillment_status=Fulfillment.STATUS_CANCELED, updated_at=now)
        elif new_status == Order.STATUS_ARCHIVED:
            order.archived_at = now
            update_fields.append("archived_at")
        elif current == Order.STATUS_ARCHIVED:
            order.archived_at = None
            update_fields.append("archived_at")

        order.status = new_status
        order.save(update_fields=update_fields)
        if new_status == Order.STATUS_CANCELED:
            recompute_fulfillment_status(order)

        order_status_transitions_total.labels(from_status=current, to_status=new_status).inc()
        self.log_event(
            order,
            "status_changed",
            f"Order status changed from {current} to {new_status}" + (f": {reason}" if reason else ""),
            actor,
            metadata={"from": current, "to": new_status, "reason": reason},
            visibility=OrderEvent.VISIBILITY_CUSTOMER if new_status == Order.STATUS_CANCELED else OrderEvent.VISIBILITY_INTERNAL,
        )
        self.logger.info(f"Order {order.pk} status {current} -> {new_status}")

    def apply_payment_transition(self, order: Order, new_status: str, actor: Optional[Actor], reason: str = ""):
        current = order.payment_status
        if new_status not in PAYMENT_TRANSITIONS:
            raise ValidationError(f"Invalid payment status '{new_status}'", details={"field": "payment_status"})
        if new_status not in PAYMENT_TRANSITIONS[current]:
            raise Conflict(
                f"Cannot change payment status of order #{order.order_number} from {current} to {new_status}",
                code=ErrorCodes.INVALID_PAYMENT_STATE,
            )

        update_fields = ["payment_status", "updated_at"]
        if new_status == Order.PAYMENT_PAID:
            order.paid_at = timezone.now()
            update_fields.append("paid_at")
        order.payment_status = new_status
        order.save(update_fields=update_fields)

        self.log_event(
            order,
            "payment_status_changed",
            f"Payment status changed from {current} to {new_status}" + (f": {reason}" if reason else ""),
            actor,
            metadata={"from": current, "to": new_status, "reason": reason},
        )
        self.logger.info(f"Order {order.pk} payment {current} -> {new_status}")

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def _validate_create_payload(self, actor: Actor, data: Dict) -> Dict:
        if not actor.is_admin and not actor.user_id:
            raise PermissionDenied("Authentication required")

        raw_items = data.get("items") or []
        if not raw_items:
            raise ValidationError("Order must contain at least one item", details={"field": "items"})

        variant_ids = [_uuid(raw.get("variant_id"), f"items[{index}].variant_id") for index, raw in enumerate(raw_items)]
        variants = {
            str(variant.pk): variant
            for variant in ListingVariant.objects.select_related("listing").filter(pk__in=variant_ids)
        }

        can_price = actor.is_admin or actor.is_vendor
        lines = []
        for index, (raw, variant_id) in enumerate(zip(raw_items, variant_ids)):
            quantity = raw.get("quantity")
            if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
                raise ValidationError(
                    f"Item {index + 1}: quantity must be a positive integer",
                    code=ErrorCodes.INVALID_QUANTITY,
                    details={"field": f"items[{index}].quantity"},
                )
            variant = variants.get(variant_id)
            if variant is None:
                raise NotFound(f"Variant {variant_id} not found", code=ErrorCodes.VARIANT_NOT_FOUND)

            listing = variant.listing
            if actor.is_vendor and not actor.is_admin and str(listing.store_id) != actor.store_id:
                raise PermissionDenied(f"'{listing.title}' is not sold by your store")
            if not can_price and listing.status != Listing.STATUS_ACTIVE:
                raise ValidationError(f"'{listing.title}' is not available for sale", details={"field": f"items[{index}]"})

            unit_price = variant.price
            if can_price and raw.get("unit_price") is not None:
                unit_price = _money(raw["unit_price"], f"items[{index}].unit_price")
            lines.append({"variant": variant, "quantity": quantity, "unit_price": unit_price})

        status = data.get("status") or Order.STATUS_OPEN
        if status not in CREATE_STATUSES:
            raise ValidationError(f"Orders can only be created as {' or '.join(CREATE_STATUSES)}", details={"field": "status"})

        payment_status = data.get("payment_status") or Order.PAYMENT_PENDING
        if payment_status not in CREATE_PAYMENT_STATUSES:
            raise ValidationError("Invalid initial payment status", details={"field": "payment_status"})
        if payment_status != Order.PAYMENT_PENDING and not can_price:
            raise PermissionDenied("Only vendors and admins can create paid orders")

        email = (data.get("email") or (actor.email if not actor.is_vendor else "") or "").strip()
        if not email or "@" not in email:
            raise ValidationError("A valid customer email is required", details={"field": "email"})

        currency = (data.get("currency") or settings.DEFAULT_CURRENCY).upper()
        if len(currency) != 3:
            raise ValidationError("Currency must be a 3-letter ISO code", details={"field": "currency"})

        subtotal = sum((line["unit_price"] * line["quantity"] for line in lines), Decimal("0.00"))
        discount = _money(data.get("discount_amount"), "discount_amount")
        if discount > subtotal:
            raise ValidationError("Discount cannot exceed the order subtotal", details={"field": "discount_amount"})
        shipping = _money(data.get("shipping_cost"), "shipping_cost")
        tax = _money(data.get("tax_amount"), "tax_amount")

        store_ids = []
        for line in lines:
            store_id = str(line["variant"].listing.store_id)
            if store_id not in store_ids:
                store_ids.append(store_id)

        nominal_store = actor.store_id if actor.is_vendor and not actor.is_admin else None
        if actor.is_admin and data.get("store_id"):
            nominal_store = _uuid(data["store_id"], "store_id")
        nominal_store = nominal_store or store_ids[0]

        customer = data.get("customer") or {}
        return {
            "lines": lines,
            "status": status,
            "payment_status": payment_status,
            "email": email,
            "phone": (data.get("phone") or customer.get("phone") or "").strip(),
            "first_name": (customer.get("first_name") or "").strip(),
            "last_name": (customer.get("last_name") or "").strip(),
            "currency": currency,
            "subtotal": subtotal,
            "discount_amount": discount,
            "shipping_cost": shipping,
            "tax_amount": tax,
            "total_amount": subtotal - discount + shipping + tax,
            "store_ids": store_ids,
            "nominal_store": nominal_store,
            "shipping_address": data.get("shipping_address") or {},
            "billing_address": data.get("billing_address") or {},
            "notes": data.get("notes") or "",
            "tags": list(data.get("tags") or []),
        }

    def resolve_customer(self, actor: Actor, email: str, store_id, first_name="", last_name="", phone="") -> Customer:
        """
        Find or create the buyer record.

        When the caller is buying for themselves the customer is matched by user, then
        by email among unscoped customers. Otherwise the match is by (email, vendor store)
        so third-party orders keep customers isolated per vendor.
        """
        email_key = email.strip().lower()
        buying_for_self = bool(actor.user_id and actor.email and actor.email.strip().lower() == email_key)

        if buying_for_self:
            customer = Customer.objects.filter(user_id=actor.user_id).order_by("created_at").first()
            if customer is None:
                customer = (
                    Customer.objects.filter(email__iexact=email_key, store__isnull=True).order_by("created_at").first()
                )
                if customer is not None and customer.user_id is None:
                    customer.user_id = actor.user_id
                    customer.save(update_fields=["user"])
            if customer is None:
                customer = Customer.objects.create(
                    user_id=actor.user_id, email=email, first_name=first_name, last_name=last_name, phone=phone
                )
                self.logger.info(f"Created customer {customer.pk} for user {actor.user_id}")
            return customer

        customer = (
            Customer.objects.filter(email__iexact=email_key, store_id=store_id).order_by("created_at").first()
        )
        if customer is None:
            customer = Customer.objects.create(
                store_id=store_id, email=email, first_name=first_name, last_name=last_name, phone=phone
            )
            self.logger.info(f"Created customer {customer.pk} scoped to store {store_id}")
        return customer

    @staticmethod
    def _next_order_number() -> int:
        last = Order.objects.aggregate(last=Max("order_number"))["last"]
        return (last or 1000) + 1

    def _insert_order(self, actor: Actor, payload: Dict) -> Order:
        stock_requests = [
            StockRequest(
                variant_id=str(line["variant"].pk),
                store_id=str(line["variant"].listing.store_id),
                quantity=line["quantity"],
                label=line["variant"].display_name,
            )
            for line in payload["lines"]
        ]
        opening = payload["status"] == Order.STATUS_OPEN

        if opening:
            with tracer.start_as_current_span("order.check_stock"):
                self.inventory_service.ensure_available(self.inventory_service.build_lines(stock_requests))

        customer = self.resolve_customer(
            actor,
            payload["email"],
            payload["nominal_store"],
            payload["first_name"],
            payload["last_name"],
            payload["phone"],
        )
        now = timezone.now()
        order = Order.objects.create(
            order_number=self._next_order_number(),
            store_id=payload["nominal_store"],
            customer=customer,
            created_by_id=actor.user_id,
            email=payload["email"],
            phone=payload["phone"],
            customer_name=f"{payload['first_name']} {payload['last_name']}".strip() or customer.full_name,
            shipping_address=payload["shipping_address"],
            billing_address=payload["billing_address"],
            currency=payload["currency"],
            subtotal=payload["subtotal"],
            discount_amount=payload["discount_amount"],
            shipping_cost=payload["shipping_cost"],
            tax_amount=payload["tax_amount"],
            total_amount=payload["total_amount"],
            status=payload["status"],
            payment_status=payload["payment_status"],
            paid_at=now if payload["payment_status"] == Order.PAYMENT_PAID else None,
            placed_at=now if opening else None,
            notes=payload["notes"],
            tags=payload["tags"],
        )

        for line, request in zip(payload["lines"], stock_requests):
            variant = line["variant"]
            request.order_item = OrderItem.objects.create(
                order=order,
                listing=variant.listing,
                variant=variant,
                quantity=line["quantity"],
                unit_price=line["unit_price"],
                total_price=line["unit_price"] * line["quantity"],
                title=variant.listing.title,
                variant_title=variant.title,
                sku=variant.sku,
            )

        Fulfillment.objects.bulk_create([Fulfillment(order=order, store_id=store_id) for store_id in payload["store_ids"]])

        if opening:
            with tracer.start_as_current_span("order.reserve_inventory"):
                lines = self.inventory_service.build_lines(stock_requests)
                self.inventory_service.reserve_lines(lines, "order_placed", actor, "order", order.pk)
            order.inventory_reserved = True
            order.save(update_fields=["inventory_reserved"])

        self.log_event(
            order,
            "order_created",
            f"Order #{order.order_number} created with {len(payload['lines'])} item(s)",
            actor,
            metadata={"status": order.status, "total": str(order.total_amount)},
            visibility=OrderEvent.VISIBILITY_CUSTOMER,
        )
        return order

    @retry_on_deadlock()
    def _create_in_transaction(self, actor: Actor, payload: Dict) -> Order:
        for attempt in range(1, ORDER_NUMBER_ATTEMPTS + 1):
            try:
                with transaction.atomic():
                    order = self._insert_order(actor, payload)
                    if order.status == Order.STATUS_OPEN:
                        publish_after_commit(
                            OrderPlacedEvent(
                                order_id=str(order.pk),
                                order_number=order.order_number,
                                store_ids=payload["store_ids"],
                                total_amount=order.total_amount,
                                currency=order.currency,
                            )
                        )
                return order
            except IntegrityError as e:
                if "order_number" not in str(e):
                    raise
                if attempt == ORDER_NUMBER_ATTEMPTS:
                    raise Conflict(
                        "Could not allocate an order number, please retry", code=ErrorCodes.ORDER_NUMBER_TAKEN
                    ) from e
                self.logger.warning(f"Order number collision on attempt {attempt}, retrying: {e}")

    @BaseService.log_performance
    def create_order(self, actor: Actor, data: Dict) -> ServiceResult[Order]:
        """
        Create an order with its items, vendor fulfillment placeholders and (for open
        orders) the stock reservation, all in one transaction.

        Args:
            actor: Resolved caller
            data: ``items`` [{variant_id, quantity, unit_price?}], ``email``, ``customer``,
                ``status`` (open|draft), ``payment_status``, money fields, addresses

        Returns:
            ServiceResult with the Order. A stock shortfall fails with
            ``insufficient_stock`` and ``details["items"]`` listing available/requested per item.
        """

        def operation():
            with tracer.start_as_current_span("order.create") as span, order_creation_duration.time():
                add_span_attributes(span, **{"actor.role": actor.role, "actor.user_id": actor.user_id})
                payload = self._validate_create_payload(actor, data)
                order = self._create_in_transaction(actor, payload)
                add_span_attributes(span, **{"order.id": order.pk, "order.number": order.order_number})

            orders_placed_total.labels(status=order.status).inc()
            order_value.observe(float(order.total_amount))
            self.logger.info(
                f"Order #{order.order_number} ({order.pk}) for {mask_value(order.email)} created by user {actor.user_id}"
            )
            return order

        return self.run("create_order", operation)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    @BaseService.log_performance
    def update_status(self, order_id, new_status: str, actor: Actor, reason: str = "") -> ServiceResult[Order]:
        """Explicit lifecycle change. ``completed`` is never accepted here; it is inferred from fulfillment."""

        def operation():
            with transaction.atomic():
                order = self.lock_order(order_id)
                self.authorize_manage(order, actor)
                self.apply_lifecycle_transition(order, new_status, actor, reason)
                if new_status == Order.STATUS_CANCELED:
                    publish_after_commit(
                        OrderCanceledEvent(str(order.pk), actor.user_id, reason, order.payment_status)
                    )
                return order

        return self.run("update_status", operation)

    def cancel_order(self, order_id, actor: Actor, reason: str = "") -> ServiceResult[Order]:
        """Cancel an unfulfilled or partially fulfilled order and release its reservation."""
        return self.update_status(order_id, Order.STATUS_CANCELED, actor, reason)

    @BaseService.log_performance
    def update_payment_status(self, order_id, new_status: str, actor: Actor, reason: str = "") -> ServiceResult[Order]:
        def operation():
            with transaction.atomic():
                order = self.lock_order(order_id)
                self.authorize_manage(order, actor)
                self.apply_payment_transition(order, new_status, actor, reason)
                return order

        return self.run("update_payment_status", operation)

    @BaseService.log_performance
    def update_workflow_status(
        self, order_id, workflow_status: str, actor: Actor, hold_reason: str = ""
    ) -> ServiceResult[Order]:
        """Operational flag. ``on_hold`` needs a reason and blocks fulfillment until cleared."""

        def operation():
            valid = {choice for choice, _ in Order.WORKFLOW_STATUS_CHOICES}
            if workflow_status not in valid:
                raise ValidationError(f"Invalid workflow status '{workflow_status}'", details={"field": "workflow_status"})
            if workflow_status == Order.WORKFLOW_ON_HOLD and not (hold_reason or "").strip():
                raise ValidationError("A reason is required to put an order on hold", details={"field": "hold_reason"})

            with transaction.atomic():
                order = self.lock_order(order_id)
                self.authorize_manage(order, actor)
                previous = order.workflow_status
                order.workflow_status = workflow_status
                order.hold_reason = hold_reason.strip() if workflow_status == Order.WORKFLOW_ON_HOLD else ""
                order.save(update_fields=["workflow_status", "hold_reason", "updated_at"])
                self.log_event(
                    order,
                    "workflow_changed",
                    f"Workflow status changed from {previous} to {workflow_status}",
                    actor,
                    metadata={"from": previous, "to": workflow_status, "hold_reason": order.hold_reason},
                )
                return order

        return self.run("update_workflow_status", operation)

    def _bulk_transition(self, order_ids: Iterable, new_status: str, actor: Actor) -> Dict:
        updated, failed = [], []
        for order_id in order_ids:
            result = self.update_status(order_id, new_status, actor)
            if result.ok:
                updated.append(str(result.value.pk))
            else:
                failed.append({"order_id": str(order_id), "error": result.error, "message": result.error_detail})
        return {"updated": updated, "failed": failed}

    def archive_orders(self, order_ids: Iterable, actor: Actor) -> ServiceResult[Dict]:
        """Archive each order in its own transaction; refusals are reported per order."""
        return self.run("archive_orders", lambda: self._bulk_transition(order_ids, Order.STATUS_ARCHIVED, actor))

    def unarchive_orders(self, order_ids: Iterable, actor: Actor) -> ServiceResult[Dict]:
        """Unarchiving reopens the order and re-reserves its remaining stock."""
        return self.run("unarchive_orders", lambda: self._bulk_transition(order_ids, Order.STATUS_OPEN, actor))

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def _delete_one(self, order_id, actor: Actor) -> str:
        with transaction.atomic():
            order = self.lock_order(order_id)
            if not actor.is_admin:
                actor.require_vendor_or_admin()
                if self.item_store_ids(order) != {actor.store_id}:
                    raise PermissionDenied(
                        f"Order #{order.order_number} contains items from other vendors",
                        code=ErrorCodes.ORDER_CANNOT_DELETE,
                    )
            self.release_order_inventory(order, actor, "order_deleted")
            number = order.order_number
            order.delete()
        orders_deleted_total.labels(actor_role=actor.role).inc()
        self.logger.info(f"Order #{number} ({order_id}) deleted by user {actor.user_id}")
        return str(order_id)

    @BaseService.log_performance
    def delete_orders(self, order_ids: Iterable, actor: Actor) -> ServiceResult[Dict]:
        """
        Delete orders. Vendors may only delete orders whose every item is theirs; reserved
        stock is released first.

        Returns:
            ServiceResult with ``deleted`` ids and ``failed`` [{order_id, error, message}]
        """

        def operation():
            deleted, failed = [], []
            for order_id in order_ids:
                try:
                    deleted.append(self._delete_one(order_id, actor))
                except ServiceError as e:
                    failed.append({"order_id": str(order_id), "error": e.code, "message": e.message})
            return {"deleted": deleted, "failed": failed}

        return self.run("delete_orders", operation)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _scoped_orders(self, actor: Actor):
        queryset = Order.objects.all()
        if actor.is_admin:
            return queryset
        if actor.is_vendor:
            return queryset.filter(items__listing__store_id=actor.store_id).distinct()
        if actor.user_id:
            return queryset.filter(customer__user_id=actor.user_id)
        return queryset.none()

    @staticmethod
    def order_summary(order: Order) -> Dict:
        return {
            "id": str(order.pk),
            "order_number": order.order_number,
            "email": order.email,
            "customer_name": order.customer_name,
            "currency": order.currency,
            "total_amount": str(order.total_amount),
            "status": order.status,
            "payment_status": order.payment_status,
            "fulfillment_status": order.fulfillment_status,
            "workflow_status": order.workflow_status,
            "created_at": order.created_at.isoformat(),
        }

    def list_orders(self, actor: Actor, filters: Optional[Dict] = None) -> ServiceResult[Dict]:
        """
        Paginated order list, vendor-scoped through item ownership.

        Filters: search, status, payment_status, fulfillment_status, workflow_status, sort, page, page_size.
        """

        def operation():
            params = filters or {}
            queryset = self._scoped_orders(actor)

            search = (params.get("search") or "").strip()
            if search:
                query = Q(email__icontains=search) | Q(customer_name__icontains=search)
                digits = search.lstrip("#")
                if digits.isdigit():
                    query |= Q(order_number=int(digits))
                queryset = queryset.filter(query)

            for field in ("status", "payment_status", "fulfillment_status", "workflow_status"):
                if params.get(field):
                    queryset = queryset.filter(**{field: params[field]})

            sort = params.get("sort") or "-created_at"
            if sort not in ORDER_SORT_FIELDS:
                raise ValidationError(f"Cannot sort by '{sort}'", details={"field": "sort"})
            queryset = queryset.order_by(sort)

            page = max(int(params.get("page") or 1), 1)
            page_size = min(max(int(params.get("page_size") or settings.ORDER_SEARCH_PAGE_SIZE), 1), 200)
            total = queryset.count()
            orders = queryset[(page - 1) * page_size : page * page_size]
            return {
                "count": total,
                "page": page,
                "page_size": page_size,
                "results": [self.order_summary(order) for order in orders],
            }

        return self.run("list_orders", operation)

    def get_order(self, order_id, actor: Actor) -> ServiceResult[Order]:
        """Order with items, fulfillments and timeline prefetched."""

        def operation():
            order = (
                Order.objects.select_related("customer")
                .prefetch_related("items__listing", "fulfillments", "events")
                .filter(pk=_uuid(order_id, "order_id"))
                .first()
            )
            if order is None:
                raise NotFound(f"Order {order_id} not found", code=ErrorCodes.ORDER_NOT_FOUND)
            self.authorize_read(order, actor)
            return order

        return self.run("get_order", operation)

    def search_variants_for_order(
        self, actor: Actor, query: str = "", page: int = 1, page_size: Optional[int] = None
    ) -> ServiceResult[Dict]:
        """
        Variants a caller can put on a new order, matched on listing title, variant title,
        SKU or id, with live available stock summed across locations.
        """

        def operation():
            actor.require_vendor_or_admin()
            queryset = ListingVariant.objects.select_related("listing", "listing__store").exclude(
                listing__status=Listing.STATUS_ARCHIVED
            )
            if not actor.is_admin:
                queryset = queryset.filter(listing__store_id=actor.store_id)

            term = (query or "").strip()
            if term:
                match = Q(listing__title__icontains=term) | Q(title__icontains=term) | Q(sku__icontains=term)
                try:
                    identifier = uuid.UUID(term)
                    match |= Q(pk=identifier) | Q(listing_id=identifier)
                except ValueError:
                    pass
                queryset = queryset.filter(match)

            queryset = queryset.order_by("listing__title", "title")
            page_number = max(int(page or 1), 1)
            size = min(max(int(page_size or settings.ORDER_SEARCH_PAGE_SIZE), 1), 200)
            total = queryset.count()
            variants = list(queryset[(page_number - 1) * size : page_number * size])
            stock = self.inventory_service.available_by_variant([variant.pk for variant in variants])
            return {
                "count": total,
                "page": page_number,
                "page_size": size,
                "results": [
                    {
                        "variant_id": str(variant.pk),
                        "listing_id": str(variant.listing_id),
                        "store_id": str(variant.listing.store_id),
                        "store_name": variant.listing.store.name,
                        "title": variant.display_name,
                        "sku": variant.sku,
                        "price": str(variant.price),
                        "available": stock.get(str(variant.pk), 0),
                    }
                    for variant in variants
                ],
            }

        return self.run("search_variants_for_order", operation)
