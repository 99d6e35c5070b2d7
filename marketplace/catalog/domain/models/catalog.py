import uuid

from django.contrib.auth import get_user_model
from django.core.validators import MinValueValidator
from django.db import models
from django.utils.text import slugify

User = get_user_model()


class Store(models.Model):
    """A vendor storefront. Owns listings, inventory locations and a seller balance."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name="stores")
    name = models.CharField(max_length=200)
    slug = models.SlugField(unique=True, blank=True)
    email = models.EmailField(blank=True, help_text="Contact address used as reply-to on customer emails")
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "marketplace_stores"
        ordering = ["created_at"]
        app_label = "marketplace"

    def save(self, *args, **kwargs):
        if not self.slug:
            base_slug = slugify(self.name) or "store"
            slug = base_slug
            counter = 1
            while Store.objects.filter(slug=slug).exclude(pk=self.pk).exists():
                slug = f"{base_slug}-{counter}"
                counter += 1
            self.slug = slug
        super().save(*args, **kwargs)

    def __str__(self):
        return self.name


class Listing(models.Model):
    STATUS_ACTIVE = "active"
    STATUS_DRAFT = "draft"
    STATUS_ARCHIVED = "archived"

    STATUS_CHOICES = [
        (STATUS_ACTIVE, "Active"),
        (STATUS_DRAFT, "Draft"),
        (STATUS_ARCHIVED, "Archived"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name="listings")
    title = models.CharField(max_length=200)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "marketplace_listings"
        ordering = ["-created_at"]
        indexes = [models.Index(fields=["store", "status"], name="mkt_listing_store_status_idx")]
        app_label = "marketplace"

    def __str__(self):
        return self.title


class ListingVariant(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    listing = models.ForeignKey(Listing, on_delete=models.CASCADE, related_name="variants")
    title = models.CharField(max_length=200, default="Default")
    sku = models.CharField(max_length=100, blank=True, db_index=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "marketplace_listing_variants"
        ordering = ["created_at"]
        app_label = "marketplace"

    @property
    def display_name(self):
        if self.title and self.title != "Default":
            return f"{self.listing.title} - {self.title}"
        return self.listing.title

    def __str__(self):
        return self.display_name


class InventoryItem(models.Model):
    """The stockable unit behind a variant. Read by the inventory ledger, never mutated by it."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    variant = models.OneToOneField(ListingVariant, on_delete=models.CASCADE, related_name="inventory_item")
    sku = models.CharField(max_length=100, blank=True)
    cost_per_item = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    tracked = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "marketplace_inventory_items"
        app_label = "marketplace"

    @property
    def store_id(self):
        return self.variant.listing.store_id

    def __str__(self):
        return f"InventoryItem {self.sku or self.id}"
