"""
Shipping Provider Abstraction Layer
===================================
"""

from .easypost_provider import EasyPostShippingProvider
from .factory import ShippingFactory
from .interface import (
    Parcel,
    PurchasedLabel,
    ShippingAddress,
    ShippingProviderError,
    ShippingProviderInterface,
    ShippingRate,
    ShippingUnavailableError,
    ShippingUnsupportedError,
)
from .mock_provider import MockShippingProvider

__all__ = [
    "EasyPostShippingProvider",
    "MockShippingProvider",
    "Parcel",
    "PurchasedLabel",
    "ShippingAddress",
    "ShippingFactory",
    "ShippingProviderError",
    "ShippingProviderInterface",
    "ShippingRate",
    "ShippingUnavailableError",
    "ShippingUnsupportedError",
]
