"""
Shipping Infrastructure Tests
=============================

Mock provider behaviour and the EasyPost adapter against a stubbed HTTP session.
"""

from decimal import Decimal
from unittest.mock import MagicMock, patch

import requests
from django.test import SimpleTestCase, override_settings

from infrastructure.shipping import (
    EasyPostShippingProvider,
    MockShippingProvider,
    Parcel,
    ShippingAddress,
    ShippingFactory,
    ShippingUnavailableError,
    ShippingUnsupportedError,
)

FROM = ShippingAddress(name="Shop", street1="1 Main St", city="Austin", zip="78701", country="US", state="TX")
TO = ShippingAddress.from_dict(
    {"full_name": "Ana Silva", "address1": "Rua Augusta 10", "city": "Lisboa", "postal_code": "1100-053", "country": "PT"}
)
PARCEL = Parcel(length=Decimal("10"), width=Decimal("6"), height=Decimal("4"), weight=Decimal("12"))


def http_response(status_code, payload=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload or {}
    response.text = str(payload)
    return response


class ShippingAddressTest(SimpleTestCase):
    def test_from_dict_accepts_alternate_keys(self):
        self.assertEqual(TO.name, "Ana Silva")
        self.assertEqual(TO.street1, "Rua Augusta 10")
        self.assertEqual(TO.zip, "1100-053")
        self.assertEqual(TO.to_dict()["country"], "PT")


class MockShippingProviderTest(SimpleTestCase):
    def setUp(self):
        self.provider = MockShippingProvider(currency="EUR")

    def test_rates_then_label(self):
        rates = self.provider.get_rates(FROM, TO, PARCEL)

        self.assertEqual([(r.carrier, r.amount) for r in rates], [("USPS", Decimal("8.50")), ("UPS", Decimal("11.25"))])
        label = self.provider.buy_label(rates[0].shipment_id, rates[0].rate_id)
        self.assertEqual(label.carrier, "USPS")
        self.assertEqual(label.cost, Decimal("8.50"))
        self.assertTrue(label.tracking_number.startswith("9400"))
        self.assertEqual(self.provider.purchased, [label])

    def test_unknown_rate_is_unsupported(self):
        rates = self.provider.get_rates(FROM, TO, PARCEL)

        with self.assertRaises(ShippingUnsupportedError):
            self.provider.buy_label("shp_other", rates[0].rate_id)

    def test_destination_country_required(self):
        with self.assertRaises(ShippingUnsupportedError):
            self.provider.get_rates(FROM, ShippingAddress.from_dict({"city": "Nowhere"}), PARCEL)

    def test_fail_with(self):
        self.provider.fail_with = ShippingUnavailableError("maintenance")

        with self.assertRaises(ShippingUnavailableError):
            self.provider.get_rates(FROM, TO, PARCEL)


@patch("tenacity.nap.time.sleep")
class EasyPostShippingProviderTest(SimpleTestCase):
    def setUp(self):
        self.session = MagicMock()
        self.provider = EasyPostShippingProvider(api_key="EZTK_test", session=self.session)

    def test_get_rates(self, _sleep):
        self.session.post.return_value = http_response(
            200,
            {
                "id": "shp_1",
                "rates": [{"id": "rate_1", "carrier": "USPS", "service": "Priority", "rate": "7.58", "currency": "USD", "delivery_days": 2}],
            },
        )

        rates = self.provider.get_rates(FROM, TO, PARCEL)

        self.assertEqual(rates[0].shipment_id, "shp_1")
        self.assertEqual(rates[0].amount, Decimal("7.58"))
        url = self.session.post.call_args.args[0]
        payload = self.session.post.call_args.kwargs["json"]
        self.assertTrue(url.endswith("/shipments"))
        self.assertEqual(payload["shipment"]["parcel"]["weight"], "12")
        self.assertEqual(self.session.post.call_args.kwargs["auth"], ("EZTK_test", ""))

    def test_no_rates_is_unsupported(self, _sleep):
        self.session.post.return_value = http_response(
            200, {"id": "shp_1", "rates": [], "messages": [{"message": "No service to destination"}]}
        )

        with self.assertRaisesMessage(ShippingUnsupportedError, "No service to destination"):
            self.provider.get_rates(FROM, TO, PARCEL)

    def test_transient_failures_are_retried(self, sleep):
        self.session.post.side_effect = [
            requests.Timeout("read timed out"),
            http_response(503),
            http_response(200, {"id": "shp_1", "rates": [{"id": "rate_1", "rate": "5.00"}]}),
        ]

        rates = self.provider.get_rates(FROM, TO, PARCEL)

        self.assertEqual(len(rates), 1)
        self.assertEqual(self.session.post.call_count, 3)
        self.assertEqual(sleep.call_count, 2)

    def test_gives_up_after_three_attempts(self, _sleep):
        self.session.post.return_value = http_response(429)

        with self.assertRaises(ShippingUnavailableError):
            self.provider.get_rates(FROM, TO, PARCEL)

        self.assertEqual(self.session.post.call_count, 3)

    def test_client_errors_are_not_retried(self, _sleep):
        self.session.post.return_value = http_response(422, {"error": {"message": "Invalid address"}})

        with self.assertRaisesMessage(ShippingUnsupportedError, "Invalid address"):
            self.provider.get_rates(FROM, TO, PARCEL)

        self.assertEqual(self.session.post.call_count, 1)

    def test_buy_label(self, _sleep):
        self.session.post.return_value = http_response(
            200,
            {
                "id": "shp_1",
                "tracking_code": "9400111899223197428490",
                "selected_rate": {"carrier": "USPS", "service": "Priority", "rate": "7.58", "currency": "USD"},
                "postage_label": {"label_url": "https://easypost-files.example.com/label.png"},
                "tracker": {"public_url": "https://track.easypost.com/abc"},
            },
        )

        label = self.provider.buy_label("shp_1", "rate_1")

        self.assertEqual(label.tracking_number, "9400111899223197428490")
        self.assertEqual(label.cost, Decimal("7.58"))
        self.assertEqual(label.tracking_url, "https://track.easypost.com/abc")
        self.assertEqual(self.session.post.call_args.kwargs["json"], {"rate": {"id": "rate_1"}})

    def test_label_without_tracking_number(self, _sleep):
        self.session.post.return_value = http_response(200, {"id": "shp_1"})

        with self.assertRaises(ShippingUnsupportedError):
            self.provider.buy_label("shp_1", "rate_1")

    @override_settings(EASYPOST_API_KEY="")
    def test_missing_api_key(self, _sleep):
        provider = EasyPostShippingProvider(session=self.session)

        with self.assertRaises(ShippingUnsupportedError):
            provider.get_rates(FROM, TO, PARCEL)
        self.session.post.assert_not_called()


class ShippingFactoryTest(SimpleTestCase):
    def test_create(self):
        self.assertIsInstance(ShippingFactory.create("mock"), MockShippingProvider)
        self.assertIsInstance(ShippingFactory.create("easypost"), EasyPostShippingProvider)

    def test_invalid_backend(self):
        with self.assertRaises(ValueError):
            ShippingFactory.create("pony-express")
