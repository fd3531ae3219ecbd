"""Domain-level expense validation.

Pydantic already enforces field-level rules (amount > 0, non-blank category,
currency code shape). The checks here need ledger context: the currency must
be one of the trip's preferred currencies and the category must name an
existing Category. They run before any snapshot is built, so a rejection
leaves the ledger untouched.
"""

from __future__ import annotations

from typing import Iterable

from spendlog.core.errors import LedgerValidationError
from spendlog.models.ledger import Trip


def validate_expense_domain(
    currency: str, category: str, trip: Trip, category_names: Iterable[str]
) -> None:
    code = currency.upper()
    if code not in trip.preferred_currencies:
        allowed = ", ".join(trip.preferred_currencies)
        raise LedgerValidationError(
            f"currency '{code}' is not allowed for trip '{trip.name}' (allowed: {allowed})"
        )
    if category not in set(category_names):
        raise LedgerValidationError(f"unknown category '{category}'")
