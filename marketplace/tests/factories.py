from decimal import Decimal

import factory
from django.contrib.auth import get_user_model
from faker import Faker

from marketplace.models import (
    Customer,
    InventoryItem,
    InventoryLevel,
    InventoryLocation,
    Listing,
    ListingVariant,
    Order,
    OrderItem,
    Store,
)
from payment_system.models import SellerPayout, SellerPayoutSettings

User = get_user_model()
fake = Faker()


class UserFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = User

    username = factory.Sequence(lambda n: f"user_{n}")
    email = factory.Sequence(lambda n: f"user_{n}@example.com")
    first_name = factory.LazyFunction(fake.first_name)
    last_name = factory.LazyFunction(fake.last_name)
    password = factory.PostGenerationMethodCall("set_password", "defaultpassword")
    is_active = True


class AdminFactory(UserFactory):
    username = factory.Sequence(lambda n: f"admin_{n}")
    email = factory.Sequence(lambda n: f"admin_{n}@example.com")
    is_staff = True
    is_superuser = True


class StoreFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Store

    owner = factory.SubFactory(UserFactory)
    name = factory.LazyFunction(lambda: fake.company()[:200])
    email = factory.Sequence(lambda n: f"store_{n}@example.com")
    is_active = True


class ListingFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Listing

    store = factory.SubFactory(StoreFactory)
    title = factory.LazyFunction(lambda: fake.sentence(nb_words=3).rstrip("."))
    status = Listing.STATUS_ACTIVE


class ListingVariantFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = ListingVariant

    listing = factory.SubFactory(ListingFactory)
    title = "Default"
    sku = factory.Sequence(lambda n: f"SKU-{n:05d}")
    price = Decimal("10.00")


class InventoryItemFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = InventoryItem

    variant = factory.SubFactory(ListingVariantFactory)
    sku = factory.LazyAttribute(lambda o: o.variant.sku)
    tracked = True


class InventoryLocationFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = InventoryLocation

    store = factory.SubFactory(StoreFactory)
    name = factory.Sequence(lambda n: f"Warehouse {n}")
    address = factory.LazyFunction(
        lambda: {
            "name": "Warehouse",
            "street1": fake.street_address(),
            "city": fake.city(),
            "zip": fake.postcode(),
            "country": "US",
        }
    )
    is_active = True


class InventoryLevelFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = InventoryLevel

    inventory_item = factory.SubFactory(InventoryItemFactory)
    location = factory.SubFactory(
        InventoryLocationFactory, store=factory.SelfAttribute("..inventory_item.variant.listing.store")
    )
    available = 10
    committed = 0
    on_hand = factory.LazyAttribute(lambda o: o.available + o.committed)


class CustomerFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Customer

    email = factory.Sequence(lambda n: f"customer_{n}@example.com")
    first_name = factory.LazyFunction(fake.first_name)
    last_name = factory.LazyFunction(fake.last_name)


class OrderFactory(factory.django.DjangoModelFactory):
    """Bare order row; use ``make_order`` for orders that went through the service."""

    class Meta:
        model = Order

    order_number = factory.Sequence(lambda n: 5000 + n)
    customer = factory.SubFactory(CustomerFactory)
    email = factory.LazyAttribute(lambda o: o.customer.email)
    currency = "EUR"
    status = Order.STATUS_OPEN
    payment_status = Order.PAYMENT_PENDING


class OrderItemFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = OrderItem

    order = factory.SubFactory(OrderFactory)
    variant = factory.SubFactory(ListingVariantFactory)
    listing = factory.LazyAttribute(lambda o: o.variant.listing)
    quantity = 1
    unit_price = factory.LazyAttribute(lambda o: o.variant.price)
    total_price = factory.LazyAttribute(lambda o: o.unit_price * o.quantity)
    title = factory.LazyAttribute(lambda o: o.variant.listing.title)
    sku = factory.LazyAttribute(lambda o: o.variant.sku)


class SellerPayoutSettingsFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = SellerPayoutSettings

    store = factory.SubFactory(StoreFactory)
    hold_period_days = 7
    minimum_amount = Decimal("20.00")


class SellerPayoutFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = SellerPayout

    store = factory.SubFactory(StoreFactory)
    amount = Decimal("50.00")
    currency = "EUR"
    status = SellerPayout.STATUS_PENDING


def stocked_variant(store, available=10, price=Decimal("10.00"), location=None, **listing_kwargs):
    """A variant of a new listing in ``store`` with ``available`` units at ``location`` (created if omitted)."""
    location = location or InventoryLocation.objects.filter(store=store).first() or InventoryLocationFactory(store=store)
    variant = ListingVariantFactory(listing=ListingFactory(store=store, **listing_kwargs), price=price)
    item = InventoryItemFactory(variant=variant)
    InventoryLevelFactory(inventory_item=item, location=location, available=available)
    return variant


def level_for(variant) -> InventoryLevel:
    return InventoryLevel.objects.get(inventory_item__variant=variant)
