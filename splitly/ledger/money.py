"""
Money helpers.

Amounts cross the model boundary as two-place Decimals and are summed inside
the engine as integer minor units (cents), so tolerance checks are exact.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

CENT = Decimal("0.01")
MINOR_UNITS_PER_UNIT = 100

# Balances and transfers within one minor unit of zero count as settled.
SETTLE_TOLERANCE = 1

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "INR": "₹",
    "JPY": "¥",
    "CAD": "C$",
    "AUD": "A$",
}

Number = Union[Decimal, int, float, str]


def quantize(value: Number) -> Decimal:
    """Round a value to two decimal places (half up)."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def safe_quantize(value) -> Optional[Decimal]:
    """Like quantize() but returns None for missing or unparseable input."""
    if value is None or value == "":
        return None
    try:
        return quantize(value)
    except (InvalidOperation, TypeError, ValueError):
        return None


def to_minor_units(value: Number) -> int:
    """Convert an amount to integer minor units."""
    return int(quantize(value) * MINOR_UNITS_PER_UNIT)


def from_minor_units(value: int) -> Decimal:
    """Convert integer minor units back to a two-place Decimal."""
    return (Decimal(value) / MINOR_UNITS_PER_UNIT).quantize(CENT)


def format_amount(amount: Number, currency: str) -> str:
    """Display form used in notifications: symbol plus absolute amount."""
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), f"{currency.upper()} ")
    return f"{symbol}{abs(quantize(amount)):.2f}"
