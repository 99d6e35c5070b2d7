import pytest

from marketplace.fulfillment.domain.services.status import derive_fulfillment_status
from marketplace.fulfillment.domain.services.tracking import (
    TRACKING_TOKEN_ALPHABET,
    carrier_code,
    generate_tracking_token,
    is_valid_tracking_number,
    tracking_url,
)


@pytest.mark.unit
@pytest.mark.parametrize(
    "vendor_statuses, expected",
    [
        ([], "unfulfilled"),
        (["unfulfilled", "unfulfilled"], "unfulfilled"),
        (["fulfilled", "unfulfilled"], "partial"),
        (["partial"], "partial"),
        (["fulfilled", "fulfilled"], "fulfilled"),
        (["fulfilled", "canceled"], "canceled"),
        (["partial", "canceled"], "canceled"),
    ],
)
def test_derive_fulfillment_status(vendor_statuses, expected):
    assert derive_fulfillment_status(vendor_statuses) == expected


@pytest.mark.unit
def test_carrier_code():
    assert carrier_code("UPS") == "ups"
    assert carrier_code("Canada Post") == "canada_post"
    assert carrier_code(" Local-Courier ") == "local_courier"
    assert carrier_code("") == ""


@pytest.mark.unit
def test_tracking_url_for_known_and_unknown_carriers():
    assert tracking_url("UPS", "1Z 999") == "https://www.ups.com/track?tracknum=1Z+999"
    assert tracking_url("Local Courier", "ABC123") == "https://www.google.com/search?q=track+Local+Courier+ABC123"


@pytest.mark.unit
def test_tracking_number_length():
    assert not is_valid_tracking_number("1234")
    assert not is_valid_tracking_number("  123  ")
    assert is_valid_tracking_number("12345")


@pytest.mark.unit
def test_tracking_token_shape():
    token = generate_tracking_token()

    assert len(token) == 32
    assert set(token) <= set(TRACKING_TOKEN_ALPHABET)
    assert generate_tracking_token() != token
