import logging
from decimal import Decimal
from typing import Any, Dict, Optional

from django.db import transaction
from django.utils import timezone

from marketplace.services.base import BaseService, ErrorCodes, ServiceResult
from marketplace.services.exceptions import Conflict, NotFound, PermissionDenied, ValidationError
from payment_system.domain.models.payout import SellerPayout
from payment_system.domain.models.seller_balance import SellerBalance, SellerBalanceTransaction
from payment_system.infra.observability.metrics import payout_requests_total, payout_volume_total
from utils.rbac import Actor

from .balance_service import SellerBalanceService, to_amount


logger = logging.getLogger(__name__)


class PayoutService(BaseService):
    """
    Seller payout requests.

    A request only reserves the seller's turn; money leaves the ledger when an admin
    completes the payout with the transfer reference.
    """

    def __init__(self, balance_service: SellerBalanceService = None):
        super().__init__()
        self.balance_service = balance_service or SellerBalanceService()

    @staticmethod
    def payout_to_dict(payout: SellerPayout) -> Dict[str, Any]:
        return {
            "id": str(payout.pk),
            "store_id": str(payout.store_id),
            "amount": str(payout.amount),
            "currency": payout.currency,
            "status": payout.status,
            "transfer_reference": payout.transfer_reference,
            "failure_reason": payout.failure_reason,
            "requested_at": payout.requested_at.isoformat() if payout.requested_at else None,
            "processed_at": payout.processed_at.isoformat() if payout.processed_at else None,
            "completed_at": payout.completed_at.isoformat() if payout.completed_at else None,
        }

    def _lock_payout(self, payout_id) -> SellerPayout:
        payout = SellerPayout.objects.select_for_update().filter(pk=payout_id).first()
        if payout is None:
            raise NotFound(f"Payout {payout_id} not found", code=ErrorCodes.PAYOUT_NOT_FOUND)
        return payout

    @staticmethod
    def _ensure_open(payout: SellerPayout):
        if not payout.is_open:
            raise Conflict(f"Payout is already {payout.status}", code=ErrorCodes.INVALID_PAYOUT_STATE)

    @BaseService.log_performance
    def request_payout(self, actor: Actor, amount, store_id=None) -> ServiceResult[SellerPayout]:
        """
        Request a withdrawal of available balance.

        Rules: positive amount, no more than the available balance, at least the
        store's minimum, no other open payout and no payout completed today.
        """

        def operation():
            target = self.balance_service.resolve_store_id(actor, store_id)
            value = to_amount(amount)
            if value <= Decimal("0"):
                raise ValidationError("Payout amount must be positive", code=ErrorCodes.INVALID_AMOUNT)

            with transaction.atomic():
                balance = SellerBalance.objects.select_for_update().filter(store_id=target).first()
                available = balance.available_balance if balance else Decimal("0.00")
                if value > available:
                    payout_requests_total.labels(status="rejected").inc()
                    raise ValidationError(
                        f"Requested {value} exceeds the available balance of {available}",
                        code=ErrorCodes.INSUFFICIENT_FUNDS,
                        details={"available": str(available), "requested": str(value)},
                    )

                minimum = self.balance_service.minimum_payout_amount(target)
                if value < minimum:
                    payout_requests_total.labels(status="rejected").inc()
                    raise ValidationError(
                        f"Minimum payout amount is {minimum}",
                        code=ErrorCodes.PAYOUT_BELOW_MINIMUM,
                        details={"minimum": str(minimum)},
                    )

                if SellerPayout.objects.filter(store_id=target, status__in=SellerPayout.OPEN_STATUSES).exists():
                    payout_requests_total.labels(status="rejected").inc()
                    raise Conflict("A payout is already pending for this store", code=ErrorCodes.PAYOUT_ALREADY_PENDING)

                today = timezone.localdate()
                if SellerPayout.objects.filter(
                    store_id=target, status=SellerPayout.STATUS_COMPLETED, completed_at__date=today
                ).exists():
                    payout_requests_total.labels(status="rejected").inc()
                    raise Conflict("Only one payout per day is allowed", code=ErrorCodes.PAYOUT_LIMIT_REACHED)

                payout = SellerPayout.objects.create(
                    store_id=target,
                    amount=value,
                    currency=balance.currency,
                    requested_by_id=actor.user_id,
                )

            payout_requests_total.labels(status="accepted").inc()
            self.logger.info(f"Payout {payout.pk} of {value} {payout.currency} requested for store {target}")
            return payout

        return self.run("request_payout", operation)

    @BaseService.log_performance
    def complete_payout(self, payout_id, transfer_reference: str, actor: Actor) -> ServiceResult[SellerPayout]:
        """Record the ``payout`` debit and close the request (admin only)."""

        def operation():
            actor.require_admin()
            if not (transfer_reference or "").strip():
                raise ValidationError("transfer_reference is required", details={"field": "transfer_reference"})

            with transaction.atomic():
                payout = self._lock_payout(payout_id)
                self._ensure_open(payout)
                balance = self.balance_service.lock_balance(payout.store_id, payout.currency)
                if payout.amount > balance.available_balance:
                    raise ValidationError(
                        f"Available balance {balance.available_balance} no longer covers payout {payout.amount}",
                        code=ErrorCodes.INSUFFICIENT_FUNDS,
                        details={"available": str(balance.available_balance), "requested": str(payout.amount)},
                    )

                self.balance_service.record_entry(
                    payout.store_id,
                    SellerBalanceTransaction.TYPE_PAYOUT,
                    payout.amount,
                    payout.currency,
                    actor=actor,
                    payout=payout,
                    reference_type="payout",
                    reference_id=str(payout.pk),
                    description=f"Payout {transfer_reference.strip()}",
                )

                now = timezone.now()
                payout.status = SellerPayout.STATUS_COMPLETED
                payout.transfer_reference = transfer_reference.strip()
                payout.processed_at = payout.processed_at or now
                payout.completed_at = now
                payout.save(update_fields=["status", "transfer_reference", "processed_at", "completed_at", "updated_at"])

                SellerBalance.objects.filter(pk=balance.pk).update(last_payout_at=now, last_payout_amount=payout.amount)

            payout_volume_total.labels(currency=payout.currency, status="completed").inc(float(payout.amount))
            self.logger.info(f"Payout {payout.pk} completed ({payout.transfer_reference})")
            return payout

        return self.run("complete_payout", operation)

    @BaseService.log_performance
    def fail_payout(self, payout_id, reason: str, actor: Actor) -> ServiceResult[SellerPayout]:
        """Mark a payout failed. The ledger is untouched."""

        def operation():
            actor.require_admin()
            with transaction.atomic():
                payout = self._lock_payout(payout_id)
                self._ensure_open(payout)
                payout.status = SellerPayout.STATUS_FAILED
                payout.failure_reason = reason or ""
                payout.processed_at = timezone.now()
                payout.save(update_fields=["status", "failure_reason", "processed_at", "updated_at"])

            payout_volume_total.labels(currency=payout.currency, status="failed").inc(float(payout.amount))
            self.logger.warning(f"Payout {payout.pk} failed: {reason}")
            return payout

        return self.run("fail_payout", operation)

    def cancel_payout(self, payout_id, actor: Actor) -> ServiceResult[SellerPayout]:
        def operation():
            with transaction.atomic():
                payout = self._lock_payout(payout_id)
                if not actor.can_access_store(payout.store_id):
                    raise PermissionDenied("You can only cancel your own store's payouts")
                if payout.status != SellerPayout.STATUS_PENDING:
                    raise Conflict(f"Payout is already {payout.status}", code=ErrorCodes.INVALID_PAYOUT_STATE)
                payout.status = SellerPayout.STATUS_CANCELED
                payout.processed_at = timezone.now()
                payout.save(update_fields=["status", "processed_at", "updated_at"])
            return payout

        return self.run("cancel_payout", operation)

    def list_payouts(
        self, actor: Actor, store_id=None, status: Optional[str] = None, limit: int = 50, offset: int = 0
    ) -> ServiceResult[Dict]:
        def operation():
            queryset = SellerPayout.objects.all()
            if store_id or not actor.is_admin:
                queryset = queryset.filter(store_id=self.balance_service.resolve_store_id(actor, store_id))
            if status:
                queryset = queryset.filter(status=status)
            size = max(1, min(int(limit), 200))
            start = max(0, int(offset))
            return {
                "count": queryset.count(),
                "limit": size,
                "offset": start,
                "results": [self.payout_to_dict(p) for p in queryset.order_by("-requested_at")[start : start + size]],
            }

        return self.run("list_payouts", operation)
