"""Money / rounding helpers.

Rounding happens only at presentation: aggregation code sums unrounded floats
and hands the final figure to these helpers.
"""

from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP

# Display precision; anything not listed shows two decimals
_ZERO_DECIMAL_CURRENCIES = frozenset({"JPY", "KRW", "VND", "KHR", "LAK", "IDR"})


def round2(value: float) -> float:
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def display_precision(currency: str) -> int:
    return 0 if currency.upper() in _ZERO_DECIMAL_CURRENCIES else 2


def round_for_display(value: float, currency: str) -> float:
    places = display_precision(currency)
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def format_money(value: float, currency: str) -> str:
    places = display_precision(currency)
    return f"{round_for_display(value, currency):,.{places}f} {currency.upper()}"
