"""
Mock Shipping Provider
======================

Deterministic shipping provider used by tests and local development.
"""

import logging
import uuid
from decimal import Decimal
from typing import Dict, List, Optional

from .interface import (
    Parcel,
    PurchasedLabel,
    ShippingAddress,
    ShippingProviderInterface,
    ShippingRate,
    ShippingUnavailableError,
    ShippingUnsupportedError,
)

logger = logging.getLogger(__name__)


class MockShippingProvider(ShippingProviderInterface):
    """
    Returns fixed USPS/UPS rates. Set ``fail_with`` to an exception instance to make
    the next calls raise it.
    """

    RATE_TABLE = (
        ("USPS", "Priority", Decimal("8.50"), 3),
        ("UPS", "Ground", Decimal("11.25"), 5),
    )

    def __init__(self, currency: str = "EUR"):
        self.currency = currency
        self.fail_with: Optional[Exception] = None
        self.purchased: List[PurchasedLabel] = []
        self._rates: Dict[str, ShippingRate] = {}

    def _maybe_fail(self):
        if self.fail_with is not None:
            raise self.fail_with

    def get_rates(
        self, from_address: ShippingAddress, to_address: ShippingAddress, parcel: Parcel
    ) -> List[ShippingRate]:
        self._maybe_fail()
        if not to_address.country:
            raise ShippingUnsupportedError("Destination country is required")

        shipment_id = f"shp_{uuid.uuid4().hex[:16]}"
        rates = []
        for carrier, service, amount, days in self.RATE_TABLE:
            rate = ShippingRate(
                rate_id=f"rate_{uuid.uuid4().hex[:16]}",
                shipment_id=shipment_id,
                carrier=carrier,
                service=service,
                amount=amount,
                currency=self.currency,
                delivery_days=days,
            )
            self._rates[rate.rate_id] = rate
            rates.append(rate)

        logger.info(f"[MOCK SHIPPING] {len(rates)} rates for shipment {shipment_id}")
        return rates

    def buy_label(self, shipment_id: str, rate_id: str) -> PurchasedLabel:
        self._maybe_fail()
        rate = self._rates.get(rate_id)
        if rate is None or rate.shipment_id != shipment_id:
            raise ShippingUnsupportedError(f"Unknown rate {rate_id} for shipment {shipment_id}")

        label = PurchasedLabel(
            tracking_number=f"9400{uuid.uuid4().int % 10**18:018d}",
            carrier=rate.carrier,
            service=rate.service,
            cost=rate.amount,
            currency=rate.currency,
            label_url=f"https://labels.example.com/{shipment_id}.pdf",
            shipment_id=shipment_id,
        )
        self.purchased.append(label)
        logger.info(f"[MOCK SHIPPING] Label bought: {label.carrier} {label.tracking_number}")
        return label


__all__ = ["MockShippingProvider", "ShippingUnavailableError", "ShippingUnsupportedError"]
