"""
Dependency Injection Container
================================

Simple service locator pattern for managing infrastructure dependencies and the
domain services built on top of them.

Usage:
    from infrastructure.container import container

    # In your service
    email = container.email()
    shipping = container.shipping()
    orders = container.order_service()
"""

import logging
from typing import Optional

from .email import EmailFactory, EmailServiceInterface
from .events import EventBus, get_event_bus
from .shipping import ShippingFactory, ShippingProviderInterface

logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Service container for infrastructure dependencies.

    Implements lazy initialization and caching of service instances.
    Singleton: every ``ServiceContainer()`` returns the same object.
    """

    _instance: Optional["ServiceContainer"] = None
    _initialized: bool = False

    def __new__(cls):
        """Ensure only one instance exists (singleton pattern)."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize container (only once)."""
        if not self._initialized:
            self._reset_instances()
            self._initialized = True
            logger.info("Service container initialized")

    def _reset_instances(self):
        self._email: Optional[EmailServiceInterface] = None
        self._shipping: Optional[ShippingProviderInterface] = None

        # Domain Services
        self._inventory_service = None
        self._order_service = None
        self._fulfillment_service = None
        self._balance_service = None
        self._payout_service = None
        self._payment_event_service = None

    def email(self, backend: Optional[str] = None) -> EmailServiceInterface:
        """
        Get email service instance.

        Args:
            backend: Email backend type ('smtp' or 'mock')
                    If None, uses configuration from settings

        Returns:
            EmailServiceInterface implementation (cached)
        """
        if self._email is None or backend is not None:
            self._email = EmailFactory.create(backend)
            logger.debug(f"Created email service: {type(self._email).__name__}")

        return self._email

    def shipping(self, backend: Optional[str] = None) -> ShippingProviderInterface:
        """
        Get shipping provider instance.

        Args:
            backend: 'easypost' or 'mock'. If None, uses settings.SHIPPING_PROVIDER

        Returns:
            ShippingProviderInterface implementation (cached)
        """
        if self._shipping is None or backend is not None:
            self._shipping = ShippingFactory.create(backend)
            logger.debug(f"Created shipping provider: {type(self._shipping).__name__}")

        return self._shipping

    def event_bus(self) -> EventBus:
        return get_event_bus()

    def inventory_service(self):
        """Get InventoryService instance."""
        if self._inventory_service is None:
            from marketplace.inventory.domain.services import InventoryService

            self._inventory_service = InventoryService()
            logger.debug("Created InventoryService")
        return self._inventory_service

    def order_service(self):
        """Get OrderService instance."""
        if self._order_service is None:
            from marketplace.ordering.domain.services import OrderService

            self._order_service = OrderService(inventory_service=self.inventory_service())
            logger.debug("Created OrderService")
        return self._order_service

    def balance_service(self):
        """Get SellerBalanceService instance."""
        if self._balance_service is None:
            from payment_system.domain.services import SellerBalanceService

            self._balance_service = SellerBalanceService()
            logger.debug("Created SellerBalanceService")
        return self._balance_service

    def fulfillment_service(self):
        """Get FulfillmentService instance."""
        if self._fulfillment_service is None:
            from marketplace.fulfillment.domain.services import FulfillmentService

            # FulfillmentService depends on OrderService, the shipping provider and the balance ledger
            self._fulfillment_service = FulfillmentService(
                order_service=self.order_service(),
                inventory_service=self.inventory_service(),
                shipping_provider=self.shipping(),
                balance_service=self.balance_service(),
            )
            logger.debug("Created FulfillmentService")
        return self._fulfillment_service

    def payout_service(self):
        if self._payout_service is None:
            from payment_system.domain.services import PayoutService

            self._payout_service = PayoutService(balance_service=self.balance_service())
            logger.debug("Created PayoutService")
        return self._payout_service

    def payment_event_service(self):
        if self._payment_event_service is None:
            from payment_system.domain.services import PaymentEventService

            self._payment_event_service = PaymentEventService(
                order_service=self.order_service(), balance_service=self.balance_service()
            )
            logger.debug("Created PaymentEventService")
        return self._payment_event_service

    def reset(self):
        """
        Reset all cached service instances.

        Useful for testing or when switching between environments.
        """
        self._reset_instances()
        logger.info("Service container reset")

    def configure_for_testing(self):
        """
        Configure container with mock services for testing.

        Sets up:
            - Mock email service (in-memory outbox)
            - Mock shipping provider (fixed rates)
        """
        self.reset()
        self._email = EmailFactory.create("mock")
        self._shipping = ShippingFactory.create("mock")
        logger.info("Service container configured for testing")


# Global singleton instance
container = ServiceContainer()


# Convenience functions for quick access
def get_email() -> EmailServiceInterface:
    """Get email service from global container."""
    return container.email()


def get_shipping() -> ShippingProviderInterface:
    """Get shipping provider from global container."""
    return container.shipping()
