"""
PaymentEventService - External payment events

Entry point for the payment source (webhook or processor callback). Signature
verification happens before this layer; here a confirmed payment marks the order
paid, stores the OrderPayment and credits each vendor's ledger for its share.

Events are idempotent per processor ``reference``: a replayed event returns the
original payment without writing anything.
"""

import logging
from collections import OrderedDict
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Optional

from django.db import transaction
from django.db.models import Sum

from marketplace.domain.events.order_events import OrderPaidEvent
from marketplace.domain.events.publisher import publish_after_commit
from marketplace.ordering.domain.models.order import Order
from marketplace.services.base import BaseService, ErrorCodes, ServiceResult
from marketplace.services.exceptions import ValidationError
from payment_system.domain.models.order_payment import OrderPayment
from payment_system.domain.models.seller_balance import SellerBalanceTransaction
from payment_system.infra.observability.metrics import payment_events_total
from utils.rbac import SYSTEM_ACTOR, Actor

from .balance_service import CENT, ZERO, SellerBalanceService, to_amount


logger = logging.getLogger(__name__)


def allocate_by_store(order: Order, amount: Decimal) -> "OrderedDict[str, Decimal]":
    """
    Split ``amount`` across the stores in ``order`` by their share of the item subtotal.

    Shares are rounded to cents; the last store (by id) takes the rounding remainder
    so the parts always add up to ``amount``.
    """
    subtotals: Dict[str, Decimal] = {}
    for store_id, total_price in order.items.values_list("listing__store_id", "total_price"):
        key = str(store_id)
        subtotals[key] = subtotals.get(key, ZERO) + total_price
    if not subtotals:
        raise ValidationError(f"Order #{order.order_number} has no items to allocate", code=ErrorCodes.INVALID_INPUT)

    stores = sorted(subtotals)
    items_total = sum(subtotals.values(), ZERO)
    allocations: "OrderedDict[str, Decimal]" = OrderedDict()
    allocated = ZERO
    for store_id in stores[:-1]:
        if items_total > ZERO:
            share = (amount * subtotals[store_id] / items_total).quantize(CENT, rounding=ROUND_HALF_UP)
        else:
            share = (amount / len(stores)).quantize(CENT, rounding=ROUND_HALF_UP)
        allocations[store_id] = share
        allocated += share
    allocations[stores[-1]] = amount - allocated
    return allocations


class PaymentEventService(BaseService):
    """
    Applies payment and refund events to orders and seller balances.
    """

    def __init__(self, order_service=None, balance_service: SellerBalanceService = None):
        super().__init__()
        if order_service is None:
            from marketplace.ordering.domain.services.order_service import OrderService

            order_service = OrderService()
        self.order_service = order_service
        self.balance_service = balance_service or SellerBalanceService()

    @staticmethod
    def _payment_result(payment: OrderPayment, duplicate: bool) -> Dict:
        return {
            "payment_id": str(payment.pk),
            "order_id": str(payment.order_id),
            "kind": payment.kind,
            "reference": payment.reference,
            "amount": str(payment.amount),
            "currency": payment.currency,
            "allocations": payment.allocations,
            "duplicate": duplicate,
        }

    def _replayed(self, reference: str, kind: str) -> Optional[Dict]:
        existing = OrderPayment.objects.filter(reference=reference).first()
        if existing is None:
            return None
        payment_events_total.labels(kind=kind, status="duplicate").inc()
        self.logger.info(f"Payment event {reference} already processed; ignoring replay")
        return self._payment_result(existing, duplicate=True)

    @staticmethod
    def _check_currency(order: Order, currency: Optional[str]) -> str:
        currency = (currency or order.currency).upper()
        if currency != order.currency.upper():
            raise ValidationError(
                f"Payment currency {currency} does not match order currency {order.currency}",
                code=ErrorCodes.CURRENCY_MISMATCH,
            )
        return currency

    @BaseService.log_performance
    def handle_payment_succeeded(
        self,
        order_id,
        amount_paid,
        reference: str,
        platform_fee=ZERO,
        processing_fee=ZERO,
        currency: Optional[str] = None,
        actor: Actor = SYSTEM_ACTOR,
    ) -> ServiceResult[Dict]:
        """
        Mark the order paid and post the vendor credits. A draft order is opened
        in the same transaction, reserving its stock or failing with insufficient_stock.

        Per store: one ``order_payment`` credit (held for the store's hold period) for
        its share of ``amount_paid``, plus ``platform_fee`` and ``stripe_fee`` debits for
        its share of the fees.

        Returns:
            ServiceResult with the payment summary; ``duplicate`` is True for a replay
        """

        def operation():
            if not (reference or "").strip():
                raise ValidationError("A payment reference is required", details={"field": "reference"})
            amount = to_amount(amount_paid, "amount_paid")
            fee = to_amount(platform_fee, "platform_fee")
            processor_fee = to_amount(processing_fee, "processing_fee")
            if amount <= ZERO:
                raise ValidationError("amount_paid must be positive", code=ErrorCodes.INVALID_AMOUNT)
            if fee < ZERO or processor_fee < ZERO or fee + processor_fee > amount:
                raise ValidationError("Fees must be between zero and the paid amount", code=ErrorCodes.INVALID_AMOUNT)

            with transaction.atomic():
                order = self.order_service.lock_order(order_id)
                replay = self._replayed(reference, OrderPayment.KIND_PAYMENT)
                if replay is not None:
                    return replay
                currency_code = self._check_currency(order, currency)

                self.order_service.apply_payment_transition(
                    order, Order.PAYMENT_PAID, actor, reason=f"payment {reference}"
                )
                if order.status == Order.STATUS_DRAFT:
                    # a paid draft is placed with it
                    self.order_service.apply_lifecycle_transition(
                        order, Order.STATUS_OPEN, actor, reason=f"draft completed by payment {reference}"
                    )
                allocations = allocate_by_store(order, amount)
                fee_allocations = allocate_by_store(order, fee) if fee > ZERO else {}
                processor_allocations = allocate_by_store(order, processor_fee) if processor_fee > ZERO else {}

                payment = OrderPayment.objects.create(
                    order=order,
                    kind=OrderPayment.KIND_PAYMENT,
                    reference=reference,
                    amount=amount,
                    platform_fee=fee,
                    currency=currency_code,
                    allocations={store_id: str(share) for store_id, share in allocations.items()},
                )

                for store_id, share in allocations.items():
                    if share > ZERO:
                        self.balance_service.record_entry(
                            store_id,
                            SellerBalanceTransaction.TYPE_ORDER_PAYMENT,
                            share,
                            currency_code,
                            actor=actor,
                            order=order,
                            reference_type="order_payment",
                            reference_id=str(payment.pk),
                            description=f"Payment for order #{order.order_number}",
                        )
                    for entry_type, fee_shares in (
                        (SellerBalanceTransaction.TYPE_PLATFORM_FEE, fee_allocations),
                        (SellerBalanceTransaction.TYPE_STRIPE_FEE, processor_allocations),
                    ):
                        if fee_shares.get(store_id, ZERO) > ZERO:
                            self.balance_service.record_entry(
                                store_id,
                                entry_type,
                                fee_shares[store_id],
                                currency_code,
                                actor=actor,
                                order=order,
                                reference_type="order_payment",
                                reference_id=str(payment.pk),
                                description=f"{entry_type.replace('_', ' ').capitalize()} for order #{order.order_number}",
                            )

                publish_after_commit(OrderPaidEvent(str(order.pk), amount, currency_code))

            payment_events_total.labels(kind=OrderPayment.KIND_PAYMENT, status="processed").inc()
            self.logger.info(f"Order #{order.order_number} paid {amount} {currency_code} ({reference})")
            return self._payment_result(payment, duplicate=False)

        return self.run("handle_payment_succeeded", operation)

    @BaseService.log_performance
    def handle_refund(
        self, order_id, amount, reference: str, currency: Optional[str] = None, actor: Actor = SYSTEM_ACTOR
    ) -> ServiceResult[Dict]:
        """
        Refund part or all of the paid amount.

        Payment status becomes ``refunded`` once refunds reach the paid total, otherwise
        ``partially_refunded``. Each store is debited a ``refund`` for its share.
        """

        def operation():
            if not (reference or "").strip():
                raise ValidationError("A refund reference is required", details={"field": "reference"})
            value = to_amount(amount)
            if value <= ZERO:
                raise ValidationError("Refund amount must be positive", code=ErrorCodes.INVALID_AMOUNT)

            with transaction.atomic():
                order = self.order_service.lock_order(order_id)
                replay = self._replayed(reference, OrderPayment.KIND_REFUND)
                if replay is not None:
                    return replay
                currency_code = self._check_currency(order, currency)

                totals = {
                    row["kind"]: row["total"]
                    for row in OrderPayment.objects.filter(order=order).values("kind").annotate(total=Sum("amount"))
                }
                paid = totals.get(OrderPayment.KIND_PAYMENT) or ZERO
                refunded = totals.get(OrderPayment.KIND_REFUND) or ZERO
                refundable = paid - refunded
                if value > refundable:
                    raise ValidationError(
                        f"Refund {value} exceeds the refundable amount {refundable}",
                        code=ErrorCodes.INVALID_AMOUNT,
                        details={"refundable": str(refundable), "requested": str(value)},
                    )

                new_status = Order.PAYMENT_REFUNDED if value == refundable else Order.PAYMENT_PARTIALLY_REFUNDED
                self.order_service.apply_payment_transition(order, new_status, actor, reason=f"refund {reference}")

                allocations = allocate_by_store(order, value)
                payment = OrderPayment.objects.create(
                    order=order,
                    kind=OrderPayment.KIND_REFUND,
                    reference=reference,
                    amount=value,
                    currency=currency_code,
                    allocations={store_id: str(share) for store_id, share in allocations.items()},
                )
                for store_id, share in allocations.items():
                    if share > ZERO:
                        self.balance_service.record_entry(
                            store_id,
                            SellerBalanceTransaction.TYPE_REFUND,
                            share,
                            currency_code,
                            actor=actor,
                            order=order,
                            reference_type="refund",
                            reference_id=str(payment.pk),
                            description=f"Refund for order #{order.order_number}",
                        )

            payment_events_total.labels(kind=OrderPayment.KIND_REFUND, status="processed").inc()
            self.logger.info(f"Order #{order.order_number} refunded {value} {currency_code} ({reference})")
            return self._payment_result(payment, duplicate=False)

        return self.run("handle_refund", operation)
