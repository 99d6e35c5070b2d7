"""
Shipping Provider Interface
============================

Abstract contract for carrier rate lookup and label purchase. The marketplace core
only needs rates, and on purchase a tracking number, carrier, cost and label URL.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional


@dataclass
class ShippingAddress:
    name: str
    street1: str
    city: str
    zip: str
    country: str
    street2: str = ""
    state: str = ""
    phone: str = ""
    email: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "street1": self.street1,
            "street2": self.street2,
            "city": self.city,
            "state": self.state,
            "zip": self.zip,
            "country": self.country,
            "phone": self.phone,
            "email": self.email,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ShippingAddress":
        return cls(
            name=data.get("name") or data.get("full_name") or "",
            street1=data.get("street1") or data.get("address1") or data.get("street") or "",
            street2=data.get("street2") or data.get("address2") or "",
            city=data.get("city") or "",
            state=data.get("state") or data.get("province") or "",
            zip=data.get("zip") or data.get("postal_code") or "",
            country=data.get("country") or "",
            phone=data.get("phone") or "",
            email=data.get("email") or "",
        )


@dataclass
class Parcel:
    """Parcel dimensions in inches and weight in ounces."""

    length: Decimal
    width: Decimal
    height: Decimal
    weight: Decimal

    def to_dict(self) -> Dict[str, str]:
        return {
            "length": str(self.length),
            "width": str(self.width),
            "height": str(self.height),
            "weight": str(self.weight),
        }


@dataclass
class ShippingRate:
    rate_id: str
    shipment_id: str
    carrier: str
    service: str
    amount: Decimal
    currency: str
    delivery_days: Optional[int] = None


@dataclass
class PurchasedLabel:
    tracking_number: str
    carrier: str
    service: str
    cost: Decimal
    currency: str
    label_url: str
    shipment_id: str
    tracking_url: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


class ShippingProviderError(Exception):
    """Base exception for shipping provider failures."""

    retryable = False


class ShippingUnavailableError(ShippingProviderError):
    """Transient failure (timeouts, 5xx, rate limits). The caller may retry."""

    retryable = True


class ShippingUnsupportedError(ShippingProviderError):
    """Permanent failure for this route or parcel. The caller should fall back to manual tracking."""

    retryable = False


class ShippingProviderInterface(ABC):
    """
    Concrete implementations:
        - EasyPostShippingProvider: EasyPost REST API
        - MockShippingProvider: deterministic rates and labels for tests
    """

    @abstractmethod
    def get_rates(
        self, from_address: ShippingAddress, to_address: ShippingAddress, parcel: Parcel
    ) -> List[ShippingRate]:
        """
        Return rate options for a parcel.

        Raises:
            ShippingUnavailableError: transient upstream failure
            ShippingUnsupportedError: no rates for this route
        """
        pass

    @abstractmethod
    def buy_label(self, shipment_id: str, rate_id: str) -> PurchasedLabel:
        """
        Buy the label for a previously quoted rate.

        Raises:
            ShippingUnavailableError: transient upstream failure
            ShippingUnsupportedError: rate rejected by the carrier
        """
        pass
