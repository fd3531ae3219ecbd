from __future__ import annotations

from datetime import date
from itertools import count

import pytest

from spendlog.db.memory_store import InMemoryBackend
from spendlog.models.ledger import Category, Ledger, Trip, default_categories
from spendlog.services.id_generator import IdGenerator
from spendlog.services.ledger_store import LedgerStore
from spendlog.services.notifications import RecordingNotifier
from spendlog.services.rates.engine import CurrencyEngine
from spendlog.services.rates.providers import StaticRateSource

USER = "u1"
TODAY = date(2024, 8, 10)
_ids = count(1)


def make_expense(amount, currency="EUR", category="Cibo", day=TODAY, country=None):
    return {
        "id": f"e{next(_ids)}",
        "amount": amount,
        "currency": currency,
        "category": category,
        "date": day.isoformat(),
        "country": country,
    }


def make_trip(trip_id, expenses=(), **extra):
    data = {
        "id": trip_id,
        "name": f"Trip {trip_id}",
        "startDate": "2024-08-01",
        "endDate": "2024-08-30",
        "totalBudget": 1000,
        "countries": ["Thailandia"],
        "mainCurrency": "EUR",
        "preferredCurrencies": ["EUR", "THB"],
        "expenses": list(expenses),
    }
    data.update(extra)
    return Trip.model_validate(data)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def ferry_ledger():
    """Two trips, three expenses in the custom 'Traghetti' category."""
    ferry = Category(id="custom-cat-1", name="Traghetti", icon="⛴️", color="#123456")
    trip_a = make_trip(
        "t-a",
        [
            make_expense(20, category="Traghetti"),
            make_expense(12, category="Cibo"),
            make_expense(300, "THB", category="Traghetti"),
        ],
        categoryBudgets=[
            {"categoryName": "Traghetti", "amount": 100},
            {"categoryName": "Cibo", "amount": 200},
        ],
        frequentExpenses=[
            {"id": "freq-1", "name": "Pranzo", "category": "Cibo", "amount": 10},
        ],
    )
    trip_b = make_trip("t-b", [make_expense(40, category="Traghetti")])
    return Ledger(
        name="Test",
        trips=(trip_a, trip_b),
        categories=default_categories() + (ferry,),
        default_trip_id="t-a",
    )


@pytest.fixture
def backend(ferry_ledger):
    return InMemoryBackend({USER: ferry_ledger})


@pytest.fixture
def store(backend, notifier, ferry_ledger):
    s = LedgerStore(USER, backend, notifier, id_generator=IdGenerator(), today=lambda: TODAY)
    s.replace(ferry_ledger)
    yield s
    s.close()


@pytest.fixture
def engine(notifier):
    return CurrencyEngine(StaticRateSource(), base_currency="EUR", notifier=notifier)
