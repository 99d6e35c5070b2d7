"""
Shipping Provider Factory
=========================

Creates the provider configured by settings.SHIPPING_PROVIDER.
"""

import logging
from typing import Literal, Optional

from django.conf import settings

from .easypost_provider import EasyPostShippingProvider
from .interface import ShippingProviderInterface
from .mock_provider import MockShippingProvider

logger = logging.getLogger(__name__)

ShippingBackend = Literal["easypost", "mock"]


class ShippingFactory:
    @staticmethod
    def create(backend: Optional[ShippingBackend] = None) -> ShippingProviderInterface:
        backend_type = backend or getattr(settings, "SHIPPING_PROVIDER", "easypost")

        logger.info(f"Creating shipping provider: {backend_type}")

        if backend_type == "easypost":
            return EasyPostShippingProvider()
        elif backend_type == "mock":
            return MockShippingProvider(currency=getattr(settings, "DEFAULT_CURRENCY", "EUR"))
        else:
            raise ValueError(f"Invalid shipping provider: {backend_type}. Must be 'easypost' or 'mock'")
