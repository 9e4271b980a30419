"""Integer money arithmetic.

All prices, fees and balances are int minor units (cents / bani). No float, no Decimal.
Percentages are basis points: 100 bps == 1%.
"""

from src.mk_common.errors import InvalidAmountError

BPS_DENOMINATOR = 10_000


def percent_of(amount: int, bps: int) -> int:
    """Percentage fee with ceiling division (platform never under-collects).

    fee = ceil(amount * bps / 10000)
    Using integer ceiling: (a + b - 1) // b
    """
    if amount <= 0 or bps <= 0:
        return 0
    return (amount * bps + BPS_DENOMINATOR - 1) // BPS_DENOMINATOR


def cents_to_display(cents: int, currency: str = "RON") -> str:
    """Convert cents to display string: 11599 -> '115.99 RON', -8000 -> '-80.00 RON'."""
    sign = "-" if cents < 0 else ""
    abs_cents = abs(cents)
    return f"{sign}{abs_cents // 100:,}.{abs_cents % 100:02d} {currency}"


def validate_amount(amount: int) -> None:
    """Reject non-positive amounts."""
    if amount <= 0:
        raise InvalidAmountError(amount)
