"""
Shipment tracking helpers.

Carrier name normalization, public carrier tracking URLs and the opaque order
tracking token handed to customers.
"""

import logging
import secrets
import string
from urllib.parse import quote_plus

logger = logging.getLogger(__name__)

TRACKING_TOKEN_LENGTH = 32
TRACKING_TOKEN_ALPHABET = string.ascii_letters + string.digits + "_-"
MIN_TRACKING_NUMBER_LENGTH = 5

CARRIER_CODES = {
    "USPS": "usps",
    "FedEx": "fedex",
    "UPS": "ups",
    "DHL": "dhl",
    "Canada Post": "canada_post",
    "Royal Mail": "royal_mail",
    "Posti": "posti",
}

TRACKING_URL_TEMPLATES = {
    "usps": "https://tools.usps.com/go/TrackConfirmAction?tLabels={number}",
    "fedex": "https://www.fedex.com/fedextrack/?trknbr={number}",
    "ups": "https://www.ups.com/track?tracknum={number}",
    "dhl": "https://www.dhl.com/en/express/tracking.html?AWB={number}",
    "posti": "https://www.posti.fi/en/tracking#/{number}",
    "canada_post": "https://www.canadapost-postescanada.ca/track-reperage/en#/search?searchFor={number}",
    "royal_mail": "https://www.royalmail.com/track-your-item#/tracking-results/{number}",
}


def carrier_code(carrier: str) -> str:
    """
    Map a display carrier name to its code; unknown carriers are lower-cased.

    Example:
        >>> carrier_code("Canada Post")
        'canada_post'
    """
    carrier = (carrier or "").strip()
    return CARRIER_CODES.get(carrier, carrier.lower().replace(" ", "_").replace("-", "_"))


def tracking_url(carrier: str, tracking_number: str) -> str:
    code = carrier_code(carrier)
    template = TRACKING_URL_TEMPLATES.get(code)
    if template:
        return template.format(number=quote_plus(tracking_number))
    return f"https://www.google.com/search?q=track+{quote_plus(carrier)}+{quote_plus(tracking_number)}"


def generate_tracking_token() -> str:
    return "".join(secrets.choice(TRACKING_TOKEN_ALPHABET) for _ in range(TRACKING_TOKEN_LENGTH))


def is_valid_tracking_number(tracking_number: str) -> bool:
    return len((tracking_number or "").strip()) >= MIN_TRACKING_NUMBER_LENGTH
