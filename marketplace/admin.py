from django.contrib import admin

from .models import (
    Customer,
    Fulfillment,
    InventoryAdjustment,
    InventoryItem,
    InventoryLevel,
    InventoryLocation,
    Listing,
    ListingVariant,
    Order,
    OrderEvent,
    OrderItem,
    Store,
)


class ListingVariantInline(admin.TabularInline):
    model = ListingVariant
    extra = 0
    fields = ('title', 'sku', 'price')


@admin.register(Store)
class StoreAdmin(admin.ModelAdmin):
    list_display = ('name', 'owner', 'email', 'is_active', 'created_at')
    list_filter = ('is_active',)
    search_fields = ('name', 'owner__username', 'owner__email')
    readonly_fields = ('id', 'slug', 'created_at', 'updated_at')


@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):
    list_display = ('title', 'store', 'status', 'created_at')
    list_filter = ('status',)
    search_fields = ('title', 'store__name')
    inlines = [ListingVariantInline]


@admin.register(InventoryItem)
class InventoryItemAdmin(admin.ModelAdmin):
    list_display = ('sku', 'variant', 'tracked', 'cost_per_item')
    list_filter = ('tracked',)
    search_fields = ('sku', 'variant__sku', 'variant__listing__title')


@admin.register(InventoryLocation)
class InventoryLocationAdmin(admin.ModelAdmin):
    list_display = ('name', 'store', 'is_active', 'created_at')
    list_filter = ('is_active',)
    search_fields = ('name', 'store__name')


@admin.register(InventoryLevel)
class InventoryLevelAdmin(admin.ModelAdmin):
    """Counters are read-only here; stock changes go through the inventory API so they are logged."""

    list_display = ('inventory_item', 'location', 'available', 'committed', 'on_hand', 'incoming', 'updated_at')
    search_fields = ('inventory_item__sku', 'location__name')
    readonly_fields = (
        'inventory_item', 'location', 'available', 'committed', 'on_hand',
        'incoming', 'shipped', 'damaged', 'returned', 'created_at', 'updated_at',
    )

    def has_add_permission(self, request):
        return False


@admin.register(InventoryAdjustment)
class InventoryAdjustmentAdmin(admin.ModelAdmin):
    list_display = ('event_type', 'change', 'inventory_item', 'location', 'reason', 'reference_id', 'created_at')
    list_filter = ('event_type', 'created_at')
    search_fields = ('reference_id', 'inventory_item__sku')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ('title', 'variant_title', 'sku', 'quantity', 'fulfilled_quantity', 'unit_price', 'total_price')
    readonly_fields = fields
    can_delete = False


class FulfillmentInline(admin.TabularInline):
    model = Fulfillment
    extra = 0
    fields = ('store', 'vendor_fulfillment_status', 'carrier', 'tracking_number', 'fulfilled_at')
    readonly_fields = fields
    can_delete = False


class OrderEventInline(admin.TabularInline):
    model = OrderEvent
    extra = 0
    fields = ('type', 'visibility', 'message', 'created_by', 'created_at')
    readonly_fields = fields
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        'order_number', 'email', 'total_amount', 'currency', 'status',
        'payment_status', 'fulfillment_status', 'workflow_status', 'created_at',
    )
    list_filter = ('status', 'payment_status', 'fulfillment_status', 'workflow_status', 'created_at')
    search_fields = ('order_number', 'email', 'customer_name')
    # Status axes change only through the order and fulfillment services
    readonly_fields = (
        'id', 'order_number', 'status', 'payment_status', 'fulfillment_status',
        'inventory_reserved', 'tracking_token', 'placed_at', 'paid_at',
        'fulfilled_at', 'canceled_at', 'archived_at', 'created_at', 'updated_at',
    )
    inlines = [OrderItemInline, FulfillmentInline, OrderEventInline]

    fieldsets = (
        (None, {
            'fields': ('id', 'order_number', 'store', 'customer', 'email', 'phone', 'customer_name')
        }),
        ('Status', {
            'fields': ('status', 'payment_status', 'fulfillment_status', 'workflow_status', 'hold_reason', 'inventory_reserved')
        }),
        ('Totals', {
            'fields': ('currency', 'subtotal', 'discount_amount', 'shipping_cost', 'tax_amount', 'total_amount')
        }),
        ('Addresses', {
            'fields': ('shipping_address', 'billing_address'),
            'classes': ('collapse',)
        }),
        ('Timestamps', {
            'fields': ('placed_at', 'paid_at', 'fulfilled_at', 'canceled_at', 'archived_at', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ('email', 'first_name', 'last_name', 'store', 'user', 'created_at')
    search_fields = ('email', 'first_name', 'last_name')
