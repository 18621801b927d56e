"""
Currency rounding helpers.

All money amounts are whole currency units. Halves round up, so that
3157.5 becomes 3158.
"""
import math
from decimal import Decimal, ROUND_HALF_UP

from .exceptions import InvalidJobAttributes


def round_currency(amount: float) -> int:
    """Round an amount to the nearest whole unit, halves rounding up."""
    if not math.isfinite(amount):
        raise InvalidJobAttributes(f"Amount must be finite, got {amount}")
    return int(Decimal(amount).to_integral_value(rounding=ROUND_HALF_UP))


def format_currency(amount: float, currency: str = "ARS") -> str:
    """
    Format an amount for display, es-AR style.

    Thousands are grouped with dots and no decimals are shown:
    10525 → "$ 10.525".
    """
    rounded = round_currency(abs(amount))
    grouped = f"{rounded:,}".replace(",", ".")
    sign = "-" if amount < 0 and rounded else ""
    symbol = "$" if currency in ("ARS", "USD") else currency
    return f"{sign}{symbol} {grouped}"
