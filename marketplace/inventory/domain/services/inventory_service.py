"""
InventoryService - Stock Ledger

Per-location stock counters (available / committed / on hand) and the append-only
adjustment log. Every counter change goes through this service as a relative
UPDATE; reservations are conditional on ``available >= quantity`` so two concurrent
orders can never drive stock negative.

Directions used by the order lifecycle:
    reserve: available -= q, committed += q
    release: committed -= q, available += q
    fulfill: committed -= q, on_hand -= q, shipped += q (available untouched)
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from django.db import transaction
from django.db.models import F, Q, Sum
from django.utils import timezone

from marketplace.catalog.domain.models.catalog import InventoryItem, ListingVariant
from marketplace.infra.observability.metrics import inventory_adjustments_total, stock_reservation_failures
from marketplace.inventory.domain.models.inventory import InventoryAdjustment, InventoryLevel, InventoryLocation
from marketplace.services.base import BaseService, ErrorCodes, ServiceResult
from marketplace.services.exceptions import Conflict, InsufficientStock, NotFound, PermissionDenied, ValidationError
from utils.rbac import Actor

logger = logging.getLogger(__name__)

DIRECTION_RESERVE = "reserve"
DIRECTION_RELEASE = "release"
DIRECTION_FULFILL = "fulfill"
DIRECTIONS = (DIRECTION_RESERVE, DIRECTION_RELEASE, DIRECTION_FULFILL)


@dataclass
class StockRequest:
    """A quantity of one variant that an order wants to move through the ledger."""

    variant_id: str
    store_id: str
    quantity: int
    label: str = ""
    order_item: Optional[object] = None
    location_id: Optional[str] = None


@dataclass
class StockLine:
    inventory_item: InventoryItem
    location: InventoryLocation
    quantity: int
    label: str = ""
    variant_id: Optional[str] = None
    order_item: Optional[object] = None

    @property
    def key(self):
        return (self.inventory_item.pk, self.location.pk)


class InventoryService(BaseService):
    """
    Service for inventory levels, reservations and manual stock adjustments.
    """

    # ------------------------------------------------------------------
    # Location resolution
    # ------------------------------------------------------------------

    def resolve_location(self, store_id) -> InventoryLocation:
        """
        Default location for a vendor: the first active location holding any stock,
        otherwise the first active location.

        Raises:
            NotFound: the vendor has no active location
        """
        locations = InventoryLocation.objects.filter(store_id=store_id, is_active=True).order_by("created_at")
        location = (
            locations.filter(Q(levels__available__gt=0) | Q(levels__on_hand__gt=0)).distinct().first()
            or locations.first()
        )
        if location is None:
            raise NotFound(f"No inventory location found for store {store_id}", code=ErrorCodes.NO_INVENTORY_LOCATION)
        return location

    def build_lines(self, requests: Iterable[StockRequest]) -> List[StockLine]:
        """
        Resolve variant requests into (inventory item, location) lines.

        Variants without a tracked inventory item are not stock-managed and are skipped.
        """
        requests = [request for request in requests if request.quantity > 0]
        items_by_variant = {
            str(item.variant_id): item
            for item in InventoryItem.objects.filter(
                variant_id__in=[request.variant_id for request in requests], tracked=True
            )
        }

        location_cache: Dict[str, InventoryLocation] = {}
        lines = []
        for request in requests:
            inventory_item = items_by_variant.get(str(request.variant_id))
            if inventory_item is None:
                continue

            if request.location_id:
                cache_key = f"location:{request.location_id}"
                if cache_key not in location_cache:
                    location_cache[cache_key] = InventoryLocation.objects.get(pk=request.location_id)
            else:
                cache_key = f"store:{request.store_id}"
                if cache_key not in location_cache:
                    location_cache[cache_key] = self.resolve_location(request.store_id)

            lines.append(
                StockLine(
                    inventory_item=inventory_item,
                    location=location_cache[cache_key],
                    quantity=request.quantity,
                    label=request.label,
                    variant_id=str(request.variant_id),
                    order_item=request.order_item,
                )
            )
        return lines

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def _availability_report(self, lines: List[StockLine]) -> List[dict]:
        """Per (item, location): available vs total requested. No mutation."""
        grouped: "OrderedDict[tuple, dict]" = OrderedDict()
        for line in lines:
            entry = grouped.setdefault(
                line.key,
                {
                    "inventory_item_id": str(line.inventory_item.pk),
                    "location_id": str(line.location.pk),
                    "variant_id": line.variant_id,
                    "title": line.label,
                    "requested": 0,
                },
            )
            entry["requested"] += line.quantity

        available = {
            (level.inventory_item_id, level.location_id): level.available
            for level in InventoryLevel.objects.filter(
                inventory_item_id__in={key[0] for key in grouped},
                location_id__in={key[1] for key in grouped},
            )
        }
        report = []
        for key, entry in grouped.items():
            entry["available"] = available.get(key, 0)
            report.append(entry)
        return report

    @staticmethod
    def _shortfall_message(shortfalls: List[dict]) -> str:
        parts = [
            f"{line['title'] or line['inventory_item_id']} (available: {line['available']}, "
            f"requested: {line['requested']})"
            for line in shortfalls
        ]
        return "Insufficient stock for " + "; ".join(parts)

    @BaseService.log_performance
    def check_stock_availability(self, requests: Iterable[StockRequest]) -> ServiceResult[dict]:
        """
        Pre-flight availability check for a set of variant quantities.

        Returns:
            ServiceResult with ``items`` (every line with available/requested) and
            ``shortfalls`` (the lines that cannot be reserved).
        """

        def operation():
            report = self._availability_report(self.build_lines(requests))
            shortfalls = [line for line in report if line["available"] < line["requested"]]
            return {"items": report, "shortfalls": shortfalls, "available": not shortfalls}

        return self.run("check_stock_availability", operation)

    def available_by_variant(self, variant_ids: Iterable[str]) -> Dict[str, int]:
        """Live available quantity per variant, summed across all locations."""
        rows = (
            InventoryLevel.objects.filter(inventory_item__variant_id__in=list(variant_ids))
            .values("inventory_item__variant_id")
            .annotate(total=Sum("available"))
        )
        return {str(row["inventory_item__variant_id"]): row["total"] or 0 for row in rows}

    # ------------------------------------------------------------------
    # Ledger primitives (must run inside the caller's transaction)
    # ------------------------------------------------------------------

    def _get_or_create_level(self, inventory_item_id, location_id) -> InventoryLevel:
        level, created = InventoryLevel.objects.get_or_create(inventory_item_id=inventory_item_id, location_id=location_id)
        if created:
            self.logger.info(f"Created inventory level for item {inventory_item_id} at location {location_id}")
        return level

    def _log_adjustment(
        self, inventory_item_id, location_id, change, event_type, reason, actor, reference_type="", reference_id=""
    ) -> InventoryAdjustment:
        adjustment = InventoryAdjustment.objects.create(
            inventory_item_id=inventory_item_id,
            location_id=location_id,
            change=change,
            reason=reason,
            event_type=event_type,
            reference_type=reference_type,
            reference_id=str(reference_id or ""),
            created_by_id=actor.user_id if actor else None,
        )
        inventory_adjustments_total.labels(event_type=event_type).inc()
        return adjustment

    def apply_adjustment(
        self,
        inventory_item: InventoryItem,
        location: InventoryLocation,
        direction: str,
        quantity: int,
        reason: str,
        actor: Optional[Actor] = None,
        reference_type: str = "",
        reference_id: str = "",
    ) -> InventoryLevel:
        """
        Apply one reserve/release/fulfill movement as a conditional relative update
        and append the adjustment row.

        Raises:
            ValidationError: bad direction or quantity
            InsufficientStock: reserve found fewer than ``quantity`` available
            Conflict: release/fulfill found fewer than ``quantity`` committed
        """
        if direction not in DIRECTIONS:
            raise ValidationError(f"Invalid direction '{direction}'. Must be one of {', '.join(DIRECTIONS)}")
        if not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("Quantity must be a positive integer", code=ErrorCodes.INVALID_QUANTITY)

        level = self._get_or_create_level(inventory_item.pk, location.pk)
        rows = InventoryLevel.objects.filter(pk=level.pk)
        now = timezone.now()

        if direction == DIRECTION_RESERVE:
            updated = rows.filter(available__gte=quantity).update(
                available=F("available") - quantity, committed=F("committed") + quantity, updated_at=now
            )
            if not updated:
                level.refresh_from_db(fields=["available"])
                stock_reservation_failures.labels(reason="concurrent_update").inc()
                shortfall = {
                    "inventory_item_id": str(inventory_item.pk),
                    "location_id": str(location.pk),
                    "title": reason,
                    "available": level.available,
                    "requested": quantity,
                }
                raise InsufficientStock(self._shortfall_message([shortfall]), details={"items": [shortfall]})
            change, event_type = -quantity, InventoryAdjustment.EVENT_RESERVE

        elif direction == DIRECTION_RELEASE:
            updated = rows.filter(committed__gte=quantity).update(
                committed=F("committed") - quantity, available=F("available") + quantity, updated_at=now
            )
            if not updated:
                raise Conflict(
                    f"Cannot release {quantity} units of {inventory_item.pk}: not enough committed stock",
                    code=ErrorCodes.INVALID_QUANTITY,
                )
            change, event_type = quantity, InventoryAdjustment.EVENT_RELEASE

        else:
            updated = rows.filter(committed__gte=quantity).update(
                committed=F("committed") - quantity,
                on_hand=F("on_hand") - quantity,
                shipped=F("shipped") + quantity,
                updated_at=now,
            )
            if not updated:
                raise Conflict(
                    f"Cannot fulfill {quantity} units of {inventory_item.pk}: not enough committed stock",
                    code=ErrorCodes.INVALID_QUANTITY,
                )
            change, event_type = -quantity, InventoryAdjustment.EVENT_FULFILL

        self._log_adjustment(
            inventory_item.pk, location.pk, change, event_type, reason, actor, reference_type, reference_id
        )
        level.refresh_from_db()
        self.logger.debug(
            f"{direction} {quantity} of {inventory_item.pk} at {location.pk}: "
            f"available={level.available} committed={level.committed}"
        )
        return level

    def ensure_available(self, lines: List[StockLine]):
        """Raise InsufficientStock listing every short line; touches nothing."""
        report = self._availability_report(lines)
        shortfalls = [line for line in report if line["available"] < line["requested"]]
        if shortfalls:
            stock_reservation_failures.labels(reason="insufficient_stock").inc()
            raise InsufficientStock(self._shortfall_message(shortfalls), details={"items": shortfalls})

    def reserve_lines(self, lines: List[StockLine], reason: str, actor=None, reference_type="", reference_id=""):
        """
        All-or-nothing reservation: pre-flight every line, then decrement.

        A shortfall detected by the pre-flight raises before any row is touched; a
        shortfall caused by a concurrent order raises from the conditional update and
        the caller's transaction rolls back the lines already reserved.
        """
        self.ensure_available(lines)

        for line in lines:
            self.apply_adjustment(
                line.inventory_item, line.location, DIRECTION_RESERVE, line.quantity, reason, actor,
                reference_type, reference_id,
            )
            self._stamp_location(line)

    def release_lines(self, lines: List[StockLine], reason: str, actor=None, reference_type="", reference_id=""):
        for line in lines:
            self.apply_adjustment(
                line.inventory_item, line.location, DIRECTION_RELEASE, line.quantity, reason, actor,
                reference_type, reference_id,
            )

    def fulfill_lines(self, lines: List[StockLine], reason: str, actor=None, reference_type="", reference_id=""):
        for line in lines:
            self.apply_adjustment(
                line.inventory_item, line.location, DIRECTION_FULFILL, line.quantity, reason, actor,
                reference_type, reference_id,
            )

    @staticmethod
    def _stamp_location(line: StockLine):
        order_item = line.order_item
        if order_item is not None and order_item.inventory_location_id != line.location.pk:
            order_item.inventory_location = line.location
            order_item.save(update_fields=["inventory_location"])

    # ------------------------------------------------------------------
    # Public operations (own transaction, ServiceResult)
    # ------------------------------------------------------------------

    def _load_item_and_location(self, actor: Actor, inventory_item_id, location_id):
        inventory_item = InventoryItem.objects.select_related("variant__listing").filter(pk=inventory_item_id).first()
        if inventory_item is None:
            raise NotFound(f"Inventory item {inventory_item_id} not found", code=ErrorCodes.INVENTORY_ITEM_NOT_FOUND)
        location = InventoryLocation.objects.filter(pk=location_id).first()
        if location is None:
            raise NotFound(f"Inventory location {location_id} not found", code=ErrorCodes.NO_INVENTORY_LOCATION)
        if inventory_item.variant.listing.store_id != location.store_id:
            raise ValidationError("Inventory item and location belong to different stores")
        if not actor.can_access_store(location.store_id):
            raise PermissionDenied("You do not have access to this inventory")
        return inventory_item, location

    @staticmethod
    def level_to_dict(level: InventoryLevel) -> dict:
        return {
            "id": str(level.pk),
            "inventory_item_id": str(level.inventory_item_id),
            "location_id": str(level.location_id),
            "available": level.available,
            "committed": level.committed,
            "on_hand": level.on_hand,
            "incoming": level.incoming,
            "shipped": level.shipped,
            "damaged": level.damaged,
            "returned": level.returned,
            "updated_at": level.updated_at.isoformat() if level.updated_at else None,
        }

    @BaseService.log_performance
    def adjust(
        self,
        inventory_item_id,
        location_id,
        direction: str,
        quantity: int,
        reason: str,
        actor: Actor,
        reference_type: str = "",
        reference_id: str = "",
    ) -> ServiceResult[dict]:
        """
        Move ``quantity`` units of one item at one location in ``direction``.

        Example:
            >>> result = inventory_service.adjust(item.id, location.id, "reserve", 2, "order_placed", actor)
            >>> result.value["available"]
        """

        def operation():
            with transaction.atomic():
                inventory_item, location = self._load_item_and_location(actor, inventory_item_id, location_id)
                line = StockLine(inventory_item=inventory_item, location=location, quantity=quantity, label=reason)
                if direction == DIRECTION_RESERVE and isinstance(quantity, int) and quantity > 0:
                    self.reserve_lines([line], reason, actor, reference_type, reference_id)
                    level = InventoryLevel.objects.get(inventory_item=inventory_item, location=location)
                else:
                    level = self.apply_adjustment(
                        inventory_item, location, direction, quantity, reason, actor, reference_type, reference_id
                    )
                return self.level_to_dict(level)

        return self.run("adjust", operation)

    @BaseService.log_performance
    def restock(self, inventory_item_id, location_id, quantity: int, actor: Actor, reason: str = "restock"):
        """Receive physical stock: available += q, on_hand += q."""

        def operation():
            if not isinstance(quantity, int) or quantity <= 0:
                raise ValidationError("Quantity must be a positive integer", code=ErrorCodes.INVALID_QUANTITY)
            with transaction.atomic():
                inventory_item, location = self._load_item_and_location(actor, inventory_item_id, location_id)
                level = self._get_or_create_level(inventory_item.pk, location.pk)
                InventoryLevel.objects.filter(pk=level.pk).update(
                    available=F("available") + quantity, on_hand=F("on_hand") + quantity, updated_at=timezone.now()
                )
                self._log_adjustment(
                    inventory_item.pk, location.pk, quantity, InventoryAdjustment.EVENT_RESTOCK, reason, actor
                )
                level.refresh_from_db()
                return self.level_to_dict(level)

        return self.run("restock", operation)

    @BaseService.log_performance
    def set_available(self, level_id, new_available: int, actor: Actor, reason: str = "manual") -> ServiceResult[dict]:
        """Manual correction of the available counter, logged as a signed adjustment."""

        def operation():
            if not isinstance(new_available, int) or new_available < 0:
                raise ValidationError("Quantity cannot be negative", code=ErrorCodes.INVALID_QUANTITY)
            with transaction.atomic():
                level = InventoryLevel.objects.select_for_update().select_related("location").filter(pk=level_id).first()
                if level is None:
                    raise NotFound(f"Inventory level {level_id} not found")
                if not actor.can_access_store(level.location.store_id):
                    raise PermissionDenied("You do not have access to this inventory")

                change = new_available - level.available
                if change == 0:
                    return self.level_to_dict(level)

                InventoryLevel.objects.filter(pk=level.pk).update(
                    available=F("available") + change, updated_at=timezone.now()
                )
                self._log_adjustment(
                    level.inventory_item_id, level.location_id, change, InventoryAdjustment.EVENT_ADJUSTMENT, reason, actor
                )
                level.refresh_from_db()
                return self.level_to_dict(level)

        return self.run("set_available", operation)

    @BaseService.log_performance
    def update_incoming(self, level_id, incoming: int, actor: Actor) -> ServiceResult[dict]:
        def operation():
            if not isinstance(incoming, int) or incoming < 0:
                raise ValidationError("Quantity cannot be negative", code=ErrorCodes.INVALID_QUANTITY)
            with transaction.atomic():
                level = InventoryLevel.objects.select_related("location").filter(pk=level_id).first()
                if level is None:
                    raise NotFound(f"Inventory level {level_id} not found")
                if not actor.can_access_store(level.location.store_id):
                    raise PermissionDenied("You do not have access to this inventory")
                InventoryLevel.objects.filter(pk=level.pk).update(incoming=incoming, updated_at=timezone.now())
                level.refresh_from_db()
                return self.level_to_dict(level)

        return self.run("update_incoming", operation)

    def get_adjustment_history(
        self, inventory_item_id, location_id, actor: Actor, page: int = 1, page_size: int = 20
    ) -> ServiceResult[dict]:
        """Adjustment log for one item at one location, newest first."""

        def operation():
            self._load_item_and_location(actor, inventory_item_id, location_id)
            page_number = max(int(page), 1)
            size = min(max(int(page_size), 1), 100)
            queryset = InventoryAdjustment.objects.filter(
                inventory_item_id=inventory_item_id, location_id=location_id
            ).order_by("-created_at")
            total = queryset.count()
            rows = queryset[(page_number - 1) * size : page_number * size]
            return {
                "count": total,
                "page": page_number,
                "page_size": size,
                "results": [
                    {
                        "id": str(row.pk),
                        "change": row.change,
                        "event_type": row.event_type,
                        "reason": row.reason,
                        "reference_type": row.reference_type,
                        "reference_id": row.reference_id,
                        "created_by": row.created_by_id,
                        "created_at": row.created_at.isoformat(),
                    }
                    for row in rows
                ],
            }

        return self.run("get_adjustment_history", operation)

    def list_levels(self, actor: Actor, store_id=None) -> ServiceResult[list]:
        """Inventory rows for the actor's store (admins may pass any store or none)."""

        def operation():
            actor.require_vendor_or_admin()
            target_store = store_id if actor.is_admin else actor.store_id
            queryset = InventoryLevel.objects.select_related(
                "inventory_item__variant__listing", "location"
            ).order_by("location__created_at", "inventory_item__sku")
            if target_store:
                queryset = queryset.filter(location__store_id=target_store)
            rows = []
            for level in queryset:
                data = self.level_to_dict(level)
                variant: ListingVariant = level.inventory_item.variant
                data.update(
                    {
                        "sku": level.inventory_item.sku or variant.sku,
                        "title": variant.display_name,
                        "location_name": level.location.name,
                    }
                )
                rows.append(data)
            return rows

        return self.run("list_levels", operation)

    @BaseService.log_performance
    def create_location(self, actor: Actor, name: str, address: Optional[dict] = None, phone: str = "", store_id=None):
        def operation():
            actor.require_vendor_or_admin()
            target_store = (store_id or actor.store_id) if actor.is_admin else actor.store_id
            if not target_store:
                raise ValidationError("store_id is required")
            if not name or not name.strip():
                raise ValidationError("Location name is required")
            location = InventoryLocation.objects.create(
                store_id=target_store, name=name.strip(), address=address or {}, phone=phone or ""
            )
            self.logger.info(f"Created inventory location {location.pk} for store {target_store}")
            return location

        return self.run("create_location", operation)


__all__ = [
    "DIRECTIONS",
    "DIRECTION_FULFILL",
    "DIRECTION_RELEASE",
    "DIRECTION_RESERVE",
    "InventoryService",
    "StockLine",
    "StockRequest",
]
