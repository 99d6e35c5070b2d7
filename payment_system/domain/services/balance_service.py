"""
SellerBalanceService - Seller Balance Ledger

Append-only ledger of money owed to each store plus a cached snapshot
(``available_balance`` / ``pending_balance``) kept in step under a row lock.

Posting rules:
    order_payment   credit, lands in pending until ``available_at`` (hold period)
    payout          debit from available, row marked ``paid``
    adjustment      signed by the caller, available
    everything else debit from available

The hold period is resolved once when the row is written; later changes to the
store's payout settings never re-price existing pending rows.
"""

import logging
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Dict, Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Case, DecimalField, F, Min, Q, Sum, Value, When
from django.db.models.functions import Coalesce
from django.utils import timezone

from marketplace.catalog.domain.models.catalog import Store
from marketplace.services.base import BaseService, ErrorCodes, ServiceResult
from marketplace.services.exceptions import Conflict, NotFound, PermissionDenied, ValidationError
from payment_system.domain.models.seller_balance import SellerBalance, SellerBalanceTransaction, SellerPayoutSettings
from payment_system.infra.observability.metrics import (
    balance_reconciliation_drift,
    held_funds_released_total,
    ledger_entries_total,
    ledger_volume_total,
)
from utils.rbac import Actor
from utils.transaction_utils import retry_on_deadlock

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

TRANSACTION_TYPES = {choice for choice, _ in SellerBalanceTransaction.TYPE_CHOICES}


def to_amount(value, field: str = "amount") -> Decimal:
    try:
        return Decimal(str(value)).quantize(CENT)
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"{field} must be a decimal amount", code=ErrorCodes.INVALID_AMOUNT, details={"field": field})


def signed_amount_expression():
    """SQL expression for a row's signed amount: debits count negative."""
    return Case(
        When(type__in=SellerBalanceTransaction.DEBIT_TYPES, then=F("amount") * Value(-1)),
        default=F("amount"),
        output_field=DecimalField(max_digits=14, decimal_places=2),
    )


class SellerBalanceService(BaseService):
    """
    Service for the seller balance ledger.
    """

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @staticmethod
    def hold_period_days(store_id) -> int:
        configured = (
            SellerPayoutSettings.objects.filter(store_id=store_id).values_list("hold_period_days", flat=True).first()
        )
        if configured is None:
            return int(settings.SELLER_BALANCE_HOLD_PERIOD_DAYS)
        return configured

    @staticmethod
    def minimum_payout_amount(store_id) -> Decimal:
        configured = SellerPayoutSettings.objects.filter(store_id=store_id).values_list("minimum_amount", flat=True).first()
        if configured is None:
            return Decimal(str(settings.SELLER_PAYOUT_MINIMUM_AMOUNT))
        return configured

    # ------------------------------------------------------------------
    # Ledger write path
    # ------------------------------------------------------------------

    def lock_balance(self, store_id, currency: str) -> SellerBalance:
        """Row-locked balance for ``store_id``, created on first use in ``currency``."""
        balance, created = SellerBalance.objects.get_or_create(store_id=store_id, defaults={"currency": currency})
        if created:
            self.logger.info(f"Opened {currency} balance for store {store_id}")
        return SellerBalance.objects.select_for_update().get(pk=balance.pk)

    def record_entry(
        self,
        store_id,
        entry_type: str,
        amount,
        currency: str,
        actor: Optional[Actor] = None,
        order=None,
        payout=None,
        reference_type: str = "",
        reference_id: str = "",
        description: str = "",
        metadata: Optional[Dict] = None,
    ) -> SellerBalanceTransaction:
        """
        Write one ledger row and move the snapshot by the same signed amount.

        Joins the caller's transaction when there is one, so a failure in the
        caller rolls the entry back with it.

        Raises:
            ValidationError: unknown type, zero amount, or a negative non-adjustment amount
            NotFound: store does not exist
            Conflict: currency differs from the store's balance currency
        """
        if entry_type not in TRANSACTION_TYPES:
            raise ValidationError(f"Unknown transaction type '{entry_type}'", details={"field": "type"})
        amount = to_amount(amount)
        if amount == ZERO:
            raise ValidationError("Amount must not be zero", code=ErrorCodes.INVALID_AMOUNT, details={"field": "amount"})
        if amount < ZERO and entry_type != SellerBalanceTransaction.TYPE_ADJUSTMENT:
            raise ValidationError(
                "Amount must be positive; only adjustments carry a sign",
                code=ErrorCodes.INVALID_AMOUNT,
                details={"field": "amount"},
            )
        currency = (currency or "").upper()
        if len(currency) != 3:
            raise ValidationError("Currency must be a 3-letter code", details={"field": "currency"})
        if not Store.objects.filter(pk=store_id).exists():
            raise NotFound(f"Store {store_id} not found", code=ErrorCodes.STORE_NOT_FOUND)

        now = timezone.now()
        with transaction.atomic():
            balance = self.lock_balance(store_id, currency)
            if balance.currency != currency:
                raise Conflict(
                    f"Store balance is kept in {balance.currency}, got {currency}",
                    code=ErrorCodes.CURRENCY_MISMATCH,
                    details={"balance_currency": balance.currency, "currency": currency},
                )

            available_at = None
            if entry_type == SellerBalanceTransaction.TYPE_ORDER_PAYMENT:
                status = SellerBalanceTransaction.STATUS_PENDING
                available_at = now + timedelta(days=self.hold_period_days(store_id))
                column = "pending_balance"
            elif entry_type == SellerBalanceTransaction.TYPE_PAYOUT:
                status = SellerBalanceTransaction.STATUS_PAID
                column = "available_balance"
            else:
                status = SellerBalanceTransaction.STATUS_AVAILABLE
                column = "available_balance"

            signed = SellerBalanceTransaction(type=entry_type, amount=amount).signed_amount
            balance_before = getattr(balance, column)

            SellerBalance.objects.filter(pk=balance.pk).update(**{column: F(column) + signed, "updated_at": now})

            entry = SellerBalanceTransaction.objects.create(
                store_id=store_id,
                type=entry_type,
                amount=amount,
                currency=currency,
                balance_before=balance_before,
                balance_after=balance_before + signed,
                status=status,
                available_at=available_at,
                order=order,
                payout=payout,
                reference_type=reference_type,
                reference_id=str(reference_id or ""),
                description=description,
                metadata=metadata or {},
                created_by_id=actor.user_id if actor else None,
            )

        ledger_entries_total.labels(type=entry_type, status=status).inc()
        ledger_volume_total.labels(currency=currency, type=entry_type).inc(float(abs(amount)))
        self.logger.info(f"Ledger {entry_type} {signed} {currency} for store {store_id} ({column} {balance_before} -> {balance_before + signed})")
        return entry

    @BaseService.log_performance
    def record(
        self,
        store_id,
        entry_type: str,
        amount,
        currency: str,
        actor: Optional[Actor] = None,
        order=None,
        reference_type: str = "",
        reference_id: str = "",
        description: str = "",
    ) -> ServiceResult[SellerBalanceTransaction]:
        """
        Record a ledger entry as its own operation.

        Returns:
            ServiceResult with the SellerBalanceTransaction
        """

        def operation():
            return self.record_entry(
                store_id,
                entry_type,
                amount,
                currency,
                actor=actor,
                order=order,
                reference_type=reference_type,
                reference_id=reference_id,
                description=description,
            )

        return self.run("record", operation)

    @BaseService.log_performance
    def create_adjustment(self, actor: Actor, store_id, amount, description: str, currency: Optional[str] = None):
        """Admin correction. The sign of ``amount`` is the direction of the correction."""

        def operation():
            actor.require_admin()
            if not (description or "").strip():
                raise ValidationError("Adjustments need a description", details={"field": "description"})
            balance_currency = (
                SellerBalance.objects.filter(store_id=store_id).values_list("currency", flat=True).first()
                or currency
                or settings.DEFAULT_CURRENCY
            )
            return self.record_entry(
                store_id,
                SellerBalanceTransaction.TYPE_ADJUSTMENT,
                amount,
                currency or balance_currency,
                actor=actor,
                reference_type="manual_adjustment",
                description=description.strip(),
            )

        return self.run("create_adjustment", operation)

    # ------------------------------------------------------------------
    # Hold release
    # ------------------------------------------------------------------

    @retry_on_deadlock()
    def _release_one(self, entry_id, now) -> Optional[SellerBalanceTransaction]:
        with transaction.atomic():
            entry = (
                SellerBalanceTransaction.objects.select_for_update()
                .filter(pk=entry_id, status=SellerBalanceTransaction.STATUS_PENDING)
                .first()
            )
            if entry is None:
                return None
            balance = self.lock_balance(entry.store_id, entry.currency)

            entry.status = SellerBalanceTransaction.STATUS_AVAILABLE
            entry.released_at = now
            entry.save(update_fields=["status", "released_at"])

            SellerBalance.objects.filter(pk=balance.pk).update(
                pending_balance=F("pending_balance") - entry.amount,
                available_balance=F("available_balance") + entry.amount,
                updated_at=now,
            )
        held_funds_released_total.labels(currency=entry.currency).inc(float(entry.amount))
        return entry

    @BaseService.log_performance
    def release_matured_funds(self, now=None) -> ServiceResult[Dict]:
        """
        Move every pending credit whose hold has ended into the available balance.

        Each row is released in its own transaction so one failure does not hold
        back the rest.
        """

        def operation():
            cutoff = now or timezone.now()
            due = list(
                SellerBalanceTransaction.objects.filter(
                    status=SellerBalanceTransaction.STATUS_PENDING, available_at__lte=cutoff
                )
                .order_by("available_at")
                .values_list("pk", flat=True)
            )
            released, total, stores = 0, ZERO, set()
            for entry_id in due:
                entry = self._release_one(entry_id, cutoff)
                if entry is not None:
                    released += 1
                    total += entry.amount
                    stores.add(str(entry.store_id))

            if released:
                self.logger.info(f"Released {released} matured credits ({total}) across {len(stores)} stores")
            return {"released": released, "amount": str(total), "stores": sorted(stores)}

        return self.run("release_matured_funds", operation)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    def ledger_totals(store_id) -> Dict[str, Decimal]:
        """Both buckets recomputed from the ledger rows alone."""
        signed = signed_amount_expression()
        totals = SellerBalanceTransaction.objects.filter(store_id=store_id).aggregate(
            pending=Coalesce(
                Sum(signed, filter=Q(status=SellerBalanceTransaction.STATUS_PENDING)),
                Value(ZERO),
                output_field=DecimalField(max_digits=14, decimal_places=2),
            ),
            available=Coalesce(
                Sum(signed, filter=~Q(status=SellerBalanceTransaction.STATUS_PENDING)),
                Value(ZERO),
                output_field=DecimalField(max_digits=14, decimal_places=2),
            ),
        )
        return {"available": totals["available"].quantize(CENT), "pending": totals["pending"].quantize(CENT)}

    @BaseService.log_performance
    def reconcile(self, store_id) -> ServiceResult[Dict]:
        """
        Compare the cached snapshot with the ledger.

        Returns:
            ServiceResult with ``snapshot``, ``ledger``, ``drift`` per bucket and ``balanced``
        """

        def operation():
            balance = SellerBalance.objects.filter(store_id=store_id).first()
            snapshot = {
                "available": balance.available_balance if balance else ZERO,
                "pending": balance.pending_balance if balance else ZERO,
            }
            ledger = self.ledger_totals(store_id)
            drift = {bucket: snapshot[bucket] - ledger[bucket] for bucket in ("available", "pending")}
            for bucket, value in drift.items():
                balance_reconciliation_drift.labels(bucket=bucket).set(float(abs(value)))

            balanced = all(value == ZERO for value in drift.values())
            if not balanced:
                self.logger.error(f"Balance drift for store {store_id}: {drift}")
            return {
                "store_id": str(store_id),
                "currency": balance.currency if balance else settings.DEFAULT_CURRENCY,
                "snapshot": {k: str(v) for k, v in snapshot.items()},
                "ledger": {k: str(v) for k, v in ledger.items()},
                "drift": {k: str(v) for k, v in drift.items()},
                "balanced": balanced,
            }

        return self.run("reconcile", operation)

    @staticmethod
    def resolve_store_id(actor: Actor, store_id=None) -> str:
        actor.require_vendor_or_admin()
        target = store_id or actor.store_id
        if not target:
            raise ValidationError("store_id is required", details={"field": "store_id"})
        if not actor.can_access_store(target):
            raise PermissionDenied("You can only view your own store's balance")
        return str(target)

    def get_balance(self, actor: Actor, store_id=None) -> ServiceResult[Dict]:
        def operation():
            target = self.resolve_store_id(actor, store_id)
            balance = SellerBalance.objects.filter(store_id=target).first()
            next_release = (
                SellerBalanceTransaction.objects.filter(store_id=target, status=SellerBalanceTransaction.STATUS_PENDING)
                .aggregate(next_release=Min("available_at"))
                .get("next_release")
            )
            available = balance.available_balance if balance else ZERO
            pending = balance.pending_balance if balance else ZERO
            return {
                "store_id": target,
                "currency": balance.currency if balance else settings.DEFAULT_CURRENCY,
                "available_balance": str(available),
                "pending_balance": str(pending),
                "total_balance": str(available + pending),
                "hold_period_days": self.hold_period_days(target),
                "minimum_payout_amount": str(self.minimum_payout_amount(target)),
                "next_release_at": next_release.isoformat() if next_release else None,
                "last_payout_at": balance.last_payout_at.isoformat() if balance and balance.last_payout_at else None,
                "last_payout_amount": str(balance.last_payout_amount)
                if balance and balance.last_payout_amount is not None
                else None,
            }

        return self.run("get_balance", operation)

    @staticmethod
    def transaction_to_dict(entry: SellerBalanceTransaction) -> Dict:
        return {
            "id": str(entry.pk),
            "type": entry.type,
            "amount": str(entry.amount),
            "signed_amount": str(entry.signed_amount),
            "currency": entry.currency,
            "status": entry.status,
            "balance_before": str(entry.balance_before),
            "balance_after": str(entry.balance_after),
            "available_at": entry.available_at.isoformat() if entry.available_at else None,
            "released_at": entry.released_at.isoformat() if entry.released_at else None,
            "order_id": str(entry.order_id) if entry.order_id else None,
            "payout_id": str(entry.payout_id) if entry.payout_id else None,
            "reference_type": entry.reference_type,
            "reference_id": entry.reference_id,
            "description": entry.description,
            "created_at": entry.created_at.isoformat(),
        }

    def list_transactions(
        self, actor: Actor, store_id=None, limit: int = 50, offset: int = 0, entry_type: Optional[str] = None
    ) -> ServiceResult[Dict]:
        """Newest first. ``limit`` is capped at 200."""

        def operation():
            target = self.resolve_store_id(actor, store_id)
            queryset = SellerBalanceTransaction.objects.filter(store_id=target)
            if entry_type:
                queryset = queryset.filter(type=entry_type)
            count = queryset.count()
            size = max(1, min(int(limit), 200))
            start = max(0, int(offset))
            rows = queryset.order_by("-created_at")[start : start + size]
            return {"count": count, "limit": size, "offset": start, "results": [self.transaction_to_dict(r) for r in rows]}

        return self.run("list_transactions", operation)
