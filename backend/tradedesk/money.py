from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

# Quantities carry up to 3 decimal places (kg, litres, hours).
QUANTITY_QUANT = Decimal("0.001")

# Ceiling for any stored money amount: 9,999,999,999,999.99. Fits BIGINT.
MAX_AMOUNT_CENTS = 999_999_999_999_999


def to_quantity(value) -> Decimal:
    """Normalize a DB or user value to a 3dp Decimal."""
    if value is None:
        return Decimal("0.000")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(QUANTITY_QUANT, rounding=ROUND_HALF_UP)


def line_total_cents(quantity: Decimal, unit_price_cents: int) -> int:
    """quantity x unit price, rounded to the nearest cent (half-up)."""
    total = to_quantity(quantity) * Decimal(unit_price_cents)
    return int(total.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_quantity(value) -> Optional[str]:
    if value is None:
        return None
    return str(to_quantity(value))


def format_cents(cents: Optional[int]) -> Optional[str]:
    """2000 -> '20.00'"""
    if cents is None:
        return None
    return str((Decimal(cents) / 100).quantize(Decimal("0.01")))
