from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from spendlog.models.ledger import Expense
from spendlog.services.money import round_for_display

from .base import SupportsConvert

"""Aggregation helpers on top of the currency engine.

Sums are accumulated unrounded; ``display`` fields are the only rounded
values and are computed once, at the end.
"""


@dataclass(frozen=True)
class ConversionResult:
    original_amount: float
    from_currency: str
    to_currency: str
    rate: float
    converted: float
    display: float


def compute_equivalent(
    amount: float, from_currency: str, to_currency: str, engine: SupportsConvert
) -> ConversionResult:
    from_currency = from_currency.upper()
    to_currency = to_currency.upper()
    converted = engine.convert(amount, from_currency, to_currency)
    rate = engine.convert(1.0, from_currency, to_currency)
    return ConversionResult(
        original_amount=amount,
        from_currency=from_currency,
        to_currency=to_currency,
        rate=rate,
        converted=converted,
        display=round_for_display(converted, to_currency),
    )


def total_in_currency(
    expenses: Iterable[Expense], target_currency: str, engine: SupportsConvert
) -> float:
    return sum(
        (engine.convert(e.amount, e.currency, target_currency) for e in expenses), 0.0
    )
