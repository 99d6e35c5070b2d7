import uuid

from django.contrib.auth import get_user_model
from django.db import models

from marketplace.catalog.domain.models.catalog import InventoryItem, Store

User = get_user_model()


class InventoryLocation(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name="inventory_locations")
    name = models.CharField(max_length=200)
    address = models.JSONField(default=dict, blank=True)
    phone = models.CharField(max_length=50, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "marketplace_inventory_locations"
        ordering = ["created_at"]
        app_label = "marketplace"

    def __str__(self):
        return f"{self.name} ({self.store.name})"


class InventoryLevel(models.Model):
    """
    Stock counters for one (inventory item, location) pair.

    ``available`` is sellable stock, ``committed`` is reserved by open orders and
    ``on_hand`` is physical stock. Rows are created lazily and never deleted; all
    counter changes go through InventoryService as relative updates.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    inventory_item = models.ForeignKey(InventoryItem, on_delete=models.CASCADE, related_name="levels")
    location = models.ForeignKey(InventoryLocation, on_delete=models.CASCADE, related_name="levels")

    available = models.IntegerField(default=0)
    committed = models.IntegerField(default=0)
    on_hand = models.IntegerField(default=0)
    incoming = models.IntegerField(default=0)
    shipped = models.IntegerField(default=0)
    damaged = models.IntegerField(default=0)
    returned = models.IntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "marketplace_inventory_levels"
        app_label = "marketplace"
        constraints = [
            models.UniqueConstraint(fields=["inventory_item", "location"], name="unique_inventory_level_per_location"),
            models.CheckConstraint(condition=models.Q(available__gte=0), name="inventory_level_available_non_negative"),
            models.CheckConstraint(condition=models.Q(committed__gte=0), name="inventory_level_committed_non_negative"),
        ]

    def __str__(self):
        return f"{self.inventory_item_id}@{self.location_id}: available={self.available} committed={self.committed}"


class InventoryAdjustment(models.Model):
    """Append-only audit row for every stock mutation. Never used to derive current levels."""

    EVENT_RESERVE = "reserve"
    EVENT_RELEASE = "release"
    EVENT_FULFILL = "fulfill"
    EVENT_SHIP = "ship"
    EVENT_RESTOCK = "restock"
    EVENT_ADJUSTMENT = "adjustment"
    EVENT_RETURN = "return"
    EVENT_DAMAGE = "damage"

    EVENT_TYPE_CHOICES = [
        (EVENT_RESERVE, "Reserve"),
        (EVENT_RELEASE, "Release"),
        (EVENT_FULFILL, "Fulfill"),
        (EVENT_SHIP, "Ship"),
        (EVENT_RESTOCK, "Restock"),
        (EVENT_ADJUSTMENT, "Adjustment"),
        (EVENT_RETURN, "Return"),
        (EVENT_DAMAGE, "Damage"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    inventory_item = models.ForeignKey(InventoryItem, on_delete=models.CASCADE, related_name="adjustments")
    location = models.ForeignKey(InventoryLocation, on_delete=models.CASCADE, related_name="adjustments")
    change = models.IntegerField(help_text="Signed delta applied to the counter named by event_type")
    reason = models.CharField(max_length=100)
    event_type = models.CharField(max_length=20, choices=EVENT_TYPE_CHOICES)
    reference_type = models.CharField(max_length=50, blank=True)
    reference_id = models.CharField(max_length=64, blank=True)
    created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="inventory_adjustments"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "marketplace_inventory_adjustments"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["inventory_item", "location", "-created_at"], name="mkt_invadj_item_loc_idx"),
            models.Index(fields=["reference_type", "reference_id"], name="mkt_invadj_reference_idx"),
        ]
        app_label = "marketplace"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Inventory adjustments are write-once")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Inventory adjustments cannot be deleted")

    def __str__(self):
        return f"{self.event_type} {self.change:+d} ({self.reason})"
