"""
EasyPost Shipping Provider
==========================

ShippingProviderInterface implementation over the EasyPost REST API.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List

import requests
from django.conf import settings
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

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


class EasyPostShippingProvider(ShippingProviderInterface):
    """
    Configuration (in settings.py):
        EASYPOST_API_KEY: API key
        EASYPOST_API_URL: base URL (defaults to https://api.easypost.com/v2)
        SHIPPING_PROVIDER_TIMEOUT_SECONDS: request timeout
    """

    def __init__(self, api_key: str = None, session: requests.Session = None):
        self.api_key = api_key or getattr(settings, "EASYPOST_API_KEY", "")
        self.base_url = getattr(settings, "EASYPOST_API_URL", "https://api.easypost.com/v2").rstrip("/")
        self.timeout = getattr(settings, "SHIPPING_PROVIDER_TIMEOUT_SECONDS", 20)
        self.session = session or requests.Session()

        if not self.api_key:
            logger.warning("EASYPOST_API_KEY not configured")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type(ShippingUnavailableError),
        reraise=True,
    )
    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST with retries on transient failures."""
        if not self.api_key:
            raise ShippingUnsupportedError("Shipping provider is not configured")

        try:
            response = self.session.post(
                f"{self.base_url}{path}",
                json=payload,
                auth=(self.api_key, ""),
                timeout=self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.warning(f"EasyPost request to {path} failed: {e}")
            raise ShippingUnavailableError(f"Shipping provider unreachable: {e}") from e

        if response.status_code == 429 or response.status_code >= 500:
            raise ShippingUnavailableError(f"Shipping provider returned {response.status_code}")
        if response.status_code >= 400:
            message = self._error_message(response)
            logger.info(f"EasyPost rejected {path}: {response.status_code} {message}")
            raise ShippingUnsupportedError(message)

        return response.json()

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            return response.json().get("error", {}).get("message") or response.text
        except ValueError:
            return response.text

    def get_rates(
        self, from_address: ShippingAddress, to_address: ShippingAddress, parcel: Parcel
    ) -> List[ShippingRate]:
        data = self._post(
            "/shipments",
            {
                "shipment": {
                    "from_address": from_address.to_dict(),
                    "to_address": to_address.to_dict(),
                    "parcel": parcel.to_dict(),
                }
            },
        )

        rates = [
            ShippingRate(
                rate_id=rate["id"],
                shipment_id=data["id"],
                carrier=rate.get("carrier", ""),
                service=rate.get("service", ""),
                amount=Decimal(str(rate.get("rate", "0"))),
                currency=rate.get("currency", ""),
                delivery_days=rate.get("delivery_days"),
            )
            for rate in data.get("rates", [])
        ]
        if not rates:
            messages = "; ".join(m.get("message", "") for m in data.get("messages", []))
            raise ShippingUnsupportedError(messages or "No shipping rates available for this route")

        return rates

    def buy_label(self, shipment_id: str, rate_id: str) -> PurchasedLabel:
        data = self._post(f"/shipments/{shipment_id}/buy", {"rate": {"id": rate_id}})

        selected = data.get("selected_rate") or {}
        tracker = data.get("tracker") or {}
        label = data.get("postage_label") or {}
        if not data.get("tracking_code"):
            raise ShippingUnsupportedError("Label purchase returned no tracking number")

        return PurchasedLabel(
            tracking_number=data["tracking_code"],
            carrier=selected.get("carrier", ""),
            service=selected.get("service", ""),
            cost=Decimal(str(selected.get("rate", "0"))),
            currency=selected.get("currency", ""),
            label_url=label.get("label_url", ""),
            shipment_id=shipment_id,
            tracking_url=tracker.get("public_url"),
            raw={"id": data.get("id")},
        )
