"""Free-text quick expense.

Text inference is an external collaborator; this module only enforces the
contract around it: the returned currency and category must come from the
vocabularies we supplied, otherwise nothing is added to the ledger.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Protocol, Sequence

from spendlog.core.errors import ExternalCollaboratorError, LedgerValidationError
from spendlog.models.inputs import ExpenseIn
from spendlog.models.ledger import Expense
from spendlog.services.ledger_store import LedgerStore
from spendlog.services.notifications import Notifier

logger = logging.getLogger("spendlog.quick_expense")


@dataclass(frozen=True)
class InferredExpense:
    amount: float
    currency: str
    category: str


class ExpenseInference(Protocol):
    async def infer(
        self, prompt: str, currencies: Sequence[str], categories: Sequence[str]
    ) -> InferredExpense: ...


async def create_quick_expense(
    store: LedgerStore,
    trip_id: str,
    prompt: str,
    inference: ExpenseInference,
    notifier: Notifier,
    today: Optional[date] = None,
) -> Expense:
    if not prompt or not prompt.strip():
        raise LedgerValidationError("prompt cannot be empty")
    ledger = store.get_snapshot()
    trip = ledger.get_trip(trip_id) if ledger else None
    if ledger is None or trip is None:
        raise LedgerValidationError(f"trip '{trip_id}' is not available")
    categories = ledger.category_names()
    currencies = trip.preferred_currencies
    try:
        result = await inference.infer(prompt.strip(), currencies, categories)
    except ExternalCollaboratorError as e:
        notifier.notify(f"Impossibile aggiungere: {e}", "error")
        raise
    except (ValueError, KeyError, TypeError, OSError) as e:
        notifier.notify("Impossibile aggiungere: Riprova.", "error")
        raise ExternalCollaboratorError(f"inference failed: {e}") from e

    currency = (result.currency or "").upper()
    problem = None
    if not result.amount or result.amount <= 0 or not result.category or not currency:
        problem = "incomplete or invalid expense data from inference"
    elif currency not in currencies:
        problem = f"currency '{currency}' not allowed for this trip ({', '.join(currencies)})"
    elif result.category not in categories:
        problem = f"category '{result.category}' not valid"
    if problem:
        logger.info("quick expense rejected: %s", problem, extra={"trip_id": trip_id, "currency": currency})
        notifier.notify(f"Impossibile aggiungere: {problem}", "error")
        raise LedgerValidationError(problem)

    return store.add_expense(
        trip_id,
        ExpenseIn(
            amount=result.amount,
            currency=currency,
            category=result.category,
            date=today or date.today(),
        ),
    )
