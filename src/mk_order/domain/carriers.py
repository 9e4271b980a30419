"""Carrier codes accepted on tracking submissions and their display labels."""

CARRIER_LABELS: dict[str, str] = {
    "royal_mail": "Royal Mail",
    "dhl": "DHL",
    "ups": "UPS",
    "fedex": "FedEx",
    "hermes": "Evri (Hermes)",
    "dpd": "DPD",
    "yodel": "Yodel",
    "fan_courier": "FAN Courier",
    "cargus": "Cargus",
    "sameday": "Sameday",
    "gls": "GLS",
    "other": "Other",
}


def normalize_carrier(value: str) -> str:
    """Trim and lower-case known codes; free-text carriers are kept verbatim."""
    stripped = value.strip()
    code = stripped.lower()
    return code if code in CARRIER_LABELS else stripped


def carrier_label(code: str | None) -> str | None:
    if code is None:
        return None
    return CARRIER_LABELS.get(code, code)
