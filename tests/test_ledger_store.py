from datetime import date

import pytest
from pydantic import ValidationError

from spendlog.core.errors import LedgerValidationError, NotFoundError
from spendlog.db.memory_store import InMemoryBackend
from spendlog.models.inputs import CategoryIn, ExpenseIn, TripIn
from spendlog.models.ledger import Expense, Ledger
from spendlog.services.ledger_store import LedgerStore, normalize_ledger

from .conftest import TODAY, USER

pytestmark = pytest.mark.asyncio


def _all_expenses(ledger):
    return [e for t in ledger.trips for e in t.expenses]


async def test_delete_category_reassigns_expenses_across_trips(store, backend):
    before = store.get_snapshot()
    assert sum(1 for e in _all_expenses(before) if e.category == "Traghetti") == 3

    store.delete_category("custom-cat-1")

    after = store.get_snapshot()
    names = after.category_names()
    assert "Traghetti" not in names
    assert sum(1 for e in _all_expenses(after) if e.category == "Varie") == 3
    assert all(e.category in names for e in _all_expenses(after))
    assert [b.category_name for b in after.get_trip("t-a").category_budgets] == ["Cibo"]

    await store.drain()
    assert backend.documents[USER] == after


async def test_rename_category_updates_expenses_in_same_snapshot(store):
    seen = []
    store.subscribe(seen.append)

    store.update_category("cat-1", CategoryIn(name="Ristorazione", icon="🍝", color="#FF9800"))

    assert len(seen) == 1
    snapshot = seen[0]
    assert "Cibo" not in snapshot.category_names()
    assert not any(e.category == "Cibo" for e in _all_expenses(snapshot))
    assert any(e.category == "Ristorazione" for e in _all_expenses(snapshot))
    trip = snapshot.get_trip("t-a")
    assert trip.frequent_expenses[0].category == "Ristorazione"
    assert "Ristorazione" in [b.category_name for b in trip.category_budgets]


async def test_protected_category_delete_is_rejected(store, notifier):
    before = store.get_snapshot()
    version = store.version

    with pytest.raises(LedgerValidationError):
        store.delete_category("cat-3")

    assert store.get_snapshot() is before
    assert store.version == version
    assert notifier.recent()[-1].level == "error"


async def test_duplicate_category_name_rejected(store):
    with pytest.raises(LedgerValidationError):
        store.add_category(CategoryIn(name="cibo"))


async def test_add_category_assigns_custom_id(store):
    category = store.add_category(CategoryIn(name="Musei", icon="🏛️"))
    assert category.id.startswith("custom-cat-")
    assert store.get_snapshot().get_category(category.id).name == "Musei"


async def test_add_expense_is_published_before_save_completes(store, backend):
    backend.save_delay = 0.05
    expense = store.add_expense("t-b", ExpenseIn(amount=9.5, currency="thb", category="Cibo"))

    assert store.get_snapshot().get_trip("t-b").get_expense(expense.id) == expense
    assert expense.currency == "THB"
    assert expense.country == "Thailandia"
    assert expense.date == TODAY
    assert backend.documents[USER].get_trip("t-b").get_expense(expense.id) is None

    await store.drain()
    assert backend.documents[USER].get_trip("t-b").get_expense(expense.id) == expense


async def test_expense_currency_must_be_preferred(store):
    before = store.get_snapshot()
    with pytest.raises(LedgerValidationError):
        store.add_expense("t-a", ExpenseIn(amount=5, currency="JPY", category="Cibo"))
    assert store.get_snapshot() is before


async def test_expense_category_must_exist(store):
    with pytest.raises(LedgerValidationError):
        store.add_expense("t-a", ExpenseIn(amount=5, currency="EUR", category="Nope"))


async def test_unknown_trip_raises_not_found(store):
    with pytest.raises(NotFoundError):
        store.add_expense("missing", ExpenseIn(amount=5, currency="EUR", category="Cibo"))


async def test_save_failure_reconciles_to_backend_state(store, backend, notifier):
    backend.fail_next_save()
    expense = store.add_expense("t-a", ExpenseIn(amount=99, currency="EUR", category="Cibo"))
    assert store.get_snapshot().get_trip("t-a").get_expense(expense.id) is not None

    await store.drain()

    assert store.get_snapshot().get_trip("t-a").get_expense(expense.id) is None
    assert store.get_snapshot() == backend.documents[USER]
    messages = [n.message for n in notifier.recent()]
    assert any(m.startswith("Errore di salvataggio") for m in messages)
    assert "Dati aggiornati con successo!" not in messages


async def test_update_and_delete_expense(store):
    trip = store.get_snapshot().get_trip("t-b")
    target = trip.expenses[0]

    updated = store.update_expense(
        "t-b", target.id, ExpenseIn(amount=41, currency="EUR", category="Alloggio", date=date(2024, 8, 3))
    )
    assert updated.id == target.id
    assert store.get_snapshot().get_trip("t-b").get_expense(target.id).amount == 41

    store.delete_expense("t-b", target.id)
    assert store.get_snapshot().get_trip("t-b").expenses == ()

    with pytest.raises(NotFoundError):
        store.delete_expense("t-b", target.id)


async def test_expense_from_template_uses_main_currency(store):
    expense = store.add_expense_from_template("t-a", "freq-1")
    assert (expense.amount, expense.currency, expense.category) == (10, "EUR", "Cibo")

    with pytest.raises(NotFoundError):
        store.add_expense_from_template("t-a", "freq-404")


def _trip_payload(**extra):
    data = dict(
        name="Giappone",
        start_date=date(2025, 4, 1),
        end_date=date(2025, 4, 15),
        total_budget=2500,
        countries=["Giappone"],
        main_currency="JPY",
        preferred_currencies=["EUR", "JPY"],
    )
    data.update(extra)
    return TripIn(**data)


async def test_trip_lifecycle(store):
    trip = store.add_trip(_trip_payload(frequent_expenses=[{"name": "Metro", "category": "Trasporti", "amount": 200}]))
    assert trip.preferred_currencies == ("JPY", "EUR")
    assert trip.frequent_expenses[0].id.startswith("freq-")
    assert trip.expenses == ()

    store.add_expense(trip.id, ExpenseIn(amount=1200, currency="JPY", category="Cibo"))
    renamed = store.update_trip(trip.id, _trip_payload(name="Giappone 2025"))
    assert renamed.name == "Giappone 2025"
    assert len(renamed.expenses) == 1

    store.set_default_trip(trip.id)
    assert store.get_snapshot().default_trip_id == trip.id
    store.delete_trip(trip.id)
    assert store.get_snapshot().get_trip(trip.id) is None
    assert store.get_snapshot().default_trip_id is None


async def test_trip_end_before_start_rejected(store):
    with pytest.raises(LedgerValidationError):
        store.add_trip(_trip_payload(end_date=date(2025, 3, 1)))


async def test_refetch_replaces_snapshot_and_notifies(store, backend, notifier):
    remote = backend.documents[USER].model_copy(update={"name": "Altrove"})
    backend.documents[USER] = remote

    assert await store.refetch() is True
    assert store.get_snapshot().name == "Altrove"
    assert notifier.recent()[-1].message == "Dati aggiornati con successo!"


async def test_refetch_failure_keeps_snapshot(store, backend):
    before = store.get_snapshot()
    backend.fail_fetches = 1
    assert await store.refetch() is False
    assert store.get_snapshot() is before


async def test_mutation_before_load_is_rejected(backend, notifier):
    from spendlog.services.ledger_store import LedgerStore

    empty = LedgerStore(USER, backend, notifier)
    with pytest.raises(LedgerValidationError):
        empty.add_category(CategoryIn(name="X"))


async def test_normalize_reinjects_default_categories():
    ledger = Ledger.model_validate({"categories": [{"id": "custom-cat-9", "name": "Birra"}]})
    normalized = normalize_ledger(ledger)
    ids = [c.id for c in normalized.categories]
    assert ids[:8] == [f"cat-{i}" for i in range(1, 9)]
    assert ids[-1] == "custom-cat-9"
    assert normalize_ledger(None) == Ledger()


class _StaggeredBackend(InMemoryBackend):
    """Each save sleeps for the next delay in line, so saves can overlap."""

    def __init__(self, documents, delays):
        super().__init__(documents)
        self._delays = list(delays)

    async def save(self, user_id, ledger):
        self.save_delay = self._delays.pop(0) if self._delays else 0.0
        await super().save(user_id, ledger)


async def test_overlapping_saves_land_in_mutation_order(ferry_ledger, notifier):
    backend = _StaggeredBackend({USER: ferry_ledger}, delays=[0.05, 0.0])
    store = LedgerStore(USER, backend, notifier, today=lambda: TODAY)
    store.replace(ferry_ledger)

    first = store.add_expense("t-a", ExpenseIn(amount=5, currency="EUR", category="Cibo"))
    second = store.add_expense("t-a", ExpenseIn(amount=6, currency="EUR", category="Cibo"))
    await store.drain()

    durable = backend.documents[USER]
    assert durable == store.get_snapshot()
    assert durable.get_trip("t-a").get_expense(first.id) is not None
    assert durable.get_trip("t-a").get_expense(second.id) is not None
    assert len(durable.get_trip("t-a").expenses) == 5


async def test_read_only_store_rejects_mutations_without_saving(store, backend, ferry_ledger):
    store.set_read_only(True)

    with pytest.raises(LedgerValidationError):
        store.add_category(CategoryIn(name="Nuova"))
    with pytest.raises(LedgerValidationError):
        store.delete_trip("t-a")
    await store.drain()
    assert backend.save_calls == 0
    assert backend.documents[USER] == ferry_ledger

    assert await store.refetch() is True
    assert store.read_only is False
    store.add_category(CategoryIn(name="Nuova"))


@pytest.mark.parametrize("value", [float("inf"), float("nan")])
async def test_non_finite_amounts_fail_validation(value):
    with pytest.raises(ValidationError):
        ExpenseIn(amount=value, currency="EUR", category="Cibo")
    with pytest.raises(ValidationError):
        _trip_payload(total_budget=value)
    with pytest.raises(ValidationError):
        Expense.model_validate(
            {"id": "e1", "amount": value, "currency": "EUR", "category": "Cibo", "date": "2024-08-01"}
        )
