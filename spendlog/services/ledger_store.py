"""Ledger aggregate and optimistic mutation pipeline.

The store is the only component allowed to produce a new Ledger snapshot.
Every mutation follows the same contract:

    1. validate synchronously; a LedgerValidationError / NotFoundError leaves
       the snapshot untouched,
    2. build a new immutable snapshot by structural copy,
    3. publish it to observers immediately (optimistic),
    4. persist it asynchronously through the injected backend, one save at a
       time in mutation order,
    5. on persistence failure notify and re-fetch, replacing the optimistic
       snapshot with whatever the backend actually holds.

Authoritative snapshots from the reconciliation listener arrive through
``replace()`` and always win over an earlier optimistic state (whole-document
last-writer-wins; there is no field-level merge or versioning).
While the store is read-only (a degraded stand-in after a sync failure)
every mutation is rejected, so the stand-in is never saved.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Set

from pydantic import ValidationError

from spendlog.core.errors import LedgerValidationError, NotFoundError, PersistenceError
from spendlog.db.backend import LedgerBackend
from spendlog.models.constants import (
    CURRENCY_TO_COUNTRY,
    DEFAULT_CATEGORY_IDS,
    FALLBACK_CATEGORY_ID,
)
from spendlog.models.inputs import CategoryIn, ExpenseIn, TripIn
from spendlog.models.ledger import (
    Category,
    Expense,
    Ledger,
    Trip,
    default_categories,
)
from spendlog.services.expense_validation import validate_expense_domain
from spendlog.services.id_generator import IdGenerator
from spendlog.services.notifications import Notifier

logger = logging.getLogger("spendlog.ledger")

SnapshotListener = Callable[[Ledger], None]


def normalize_ledger(ledger: Optional[Ledger]) -> Ledger:
    """Apply load-time defaults: missing document, missing default categories."""
    if ledger is None:
        return Ledger()
    if not ledger.categories:
        return ledger.model_copy(update={"categories": default_categories()})
    present = {c.id for c in ledger.categories}
    if not DEFAULT_CATEGORY_IDS.issubset(present):
        custom = tuple(c for c in ledger.categories if c.id not in DEFAULT_CATEGORY_IDS)
        return ledger.model_copy(update={"categories": default_categories() + custom})
    return ledger


def _build(model: Any, data: Dict[str, Any]) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise LedgerValidationError(str(e)) from e


class LedgerStore:
    def __init__(
        self,
        user_id: str,
        backend: LedgerBackend,
        notifier: Notifier,
        id_generator: Optional[IdGenerator] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.user_id = user_id
        self._backend = backend
        self._notifier = notifier
        self._ids = id_generator or IdGenerator()
        self._today = today or date.today
        self._snapshot: Optional[Ledger] = None
        self._version = 0
        self._listeners: List[SnapshotListener] = []
        self._pending: Set[asyncio.Task] = set()
        # Saves are whole documents; they must land in mutation order
        self._save_lock = asyncio.Lock()
        self._read_only = False
        self._closed = False

    # ------------------------------------------------------------------
    # Read side / observers
    def get_snapshot(self) -> Optional[Ledger]:
        return self._snapshot

    @property
    def version(self) -> int:
        """Number of snapshots published so far."""
        return self._version

    @property
    def loaded(self) -> bool:
        return self._snapshot is not None

    @property
    def read_only(self) -> bool:
        return self._read_only

    def set_read_only(self, read_only: bool) -> None:
        """Reject every mutation while the snapshot is a degraded stand-in."""
        if read_only != self._read_only:
            logger.warning(
                "ledger for %s is now %s", self.user_id, "read-only" if read_only else "writable"
            )
        self._read_only = read_only

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, ledger: Ledger) -> None:
        self._snapshot = ledger
        self._version += 1
        for listener in list(self._listeners):
            try:
                listener(ledger)
            except Exception:
                logger.exception("snapshot listener failed")

    def _require_snapshot(self) -> Ledger:
        if self._closed:
            raise RuntimeError("ledger store is closed")
        if self._snapshot is None:
            raise LedgerValidationError("ledger is not loaded yet")
        if self._read_only:
            raise LedgerValidationError("ledger is read-only until it is synced again")
        return self._snapshot

    def _require_trip(self, ledger: Ledger, trip_id: str) -> Trip:
        trip = ledger.get_trip(trip_id)
        if trip is None:
            raise NotFoundError("trip", trip_id)
        return trip

    # ------------------------------------------------------------------
    # Reconciliation entry points
    def replace(self, ledger: Optional[Ledger]) -> Ledger:
        """Adopt an authoritative snapshot wholesale (None -> default ledger)."""
        normalized = normalize_ledger(ledger)
        self._publish(normalized)
        return normalized

    async def refetch(self, notify_success: bool = True) -> bool:
        try:
            fetched = await self._backend.fetch(self.user_id)
        except PersistenceError as e:
            logger.warning("refetch failed for %s: %s", self.user_id, e)
            self._notifier.notify(
                "Impossibile caricare i dati. Controlla la connessione e riprova.", "error"
            )
            return False
        if self._closed:
            return False
        self.replace(fetched)
        self.set_read_only(False)
        if notify_success:
            self._notifier.notify("Dati aggiornati con successo!", "success")
        return True

    # ------------------------------------------------------------------
    # Commit / persistence
    def _commit(self, ledger: Ledger, success_message: Optional[str] = None) -> asyncio.Task:
        self._publish(ledger)
        task = asyncio.get_running_loop().create_task(self._persist(ledger, success_message))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _persist(self, ledger: Ledger, success_message: Optional[str]) -> bool:
        try:
            async with self._save_lock:
                await self._backend.save(self.user_id, ledger)
        except (PersistenceError, OSError) as e:
            logger.error("save failed for %s, reconciling: %s", self.user_id, e)
            self._notifier.notify(
                "Errore di salvataggio. Le modifiche potrebbero non essere state salvate.",
                "error",
            )
            await self.refetch(notify_success=False)
            return False
        if success_message:
            self._notifier.notify(success_message, "success")
        return True

    async def drain(self) -> None:
        """Wait for every outstanding persistence task (and its reconciliation)."""
        while True:
            pending = [t for t in self._pending if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def close(self) -> None:
        self._closed = True
        for task in list(self._pending):
            task.cancel()
        self._pending.clear()
        self._listeners.clear()

    # ------------------------------------------------------------------
    # Trips
    def _frequent_expenses(self, payload: TripIn, current: Optional[Trip]) -> List[Dict[str, Any]]:
        taken = {f.id for f in current.frequent_expenses} if current else set()
        out = []
        for item in payload.frequent_expenses:
            data = item.model_dump()
            if not data.get("id"):
                data["id"] = self._ids.new_id("freq-", taken)
            taken.add(data["id"])
            out.append(data)
        return out

    def add_trip(self, payload: TripIn) -> Trip:
        ledger = self._require_snapshot()
        data = payload.model_dump()
        data["id"] = self._ids.new_id(taken={t.id for t in ledger.trips})
        data["expenses"] = ()
        data["frequent_expenses"] = self._frequent_expenses(payload, None)
        trip = _build(Trip, data)
        self._commit(
            ledger.model_copy(update={"trips": ledger.trips + (trip,)}),
            "Viaggio creato con successo.",
        )
        return trip

    def update_trip(self, trip_id: str, payload: TripIn) -> Trip:
        ledger = self._require_snapshot()
        current = self._require_trip(ledger, trip_id)
        data = payload.model_dump()
        data["id"] = current.id
        data["expenses"] = current.expenses
        data["frequent_expenses"] = self._frequent_expenses(payload, current)
        trip = _build(Trip, data)
        trips = tuple(trip if t.id == trip_id else t for t in ledger.trips)
        self._commit(ledger.model_copy(update={"trips": trips}), "Viaggio aggiornato.")
        return trip

    def delete_trip(self, trip_id: str) -> None:
        ledger = self._require_snapshot()
        self._require_trip(ledger, trip_id)
        default_trip_id = None if ledger.default_trip_id == trip_id else ledger.default_trip_id
        self._commit(
            ledger.model_copy(
                update={
                    "trips": tuple(t for t in ledger.trips if t.id != trip_id),
                    "default_trip_id": default_trip_id,
                }
            ),
            "Viaggio eliminato.",
        )

    def set_default_trip(self, trip_id: Optional[str]) -> None:
        ledger = self._require_snapshot()
        if trip_id is not None:
            self._require_trip(ledger, trip_id)
        self._commit(
            ledger.model_copy(update={"default_trip_id": trip_id}),
            "Viaggio predefinito impostato.",
        )

    # ------------------------------------------------------------------
    # Expenses
    def _with_trip(self, ledger: Ledger, trip: Trip) -> Ledger:
        return ledger.model_copy(
            update={"trips": tuple(trip if t.id == trip.id else t for t in ledger.trips)}
        )

    def _expense_data(self, payload: ExpenseIn) -> Dict[str, Any]:
        currency = payload.currency.upper()
        return {
            "amount": payload.amount,
            "currency": currency,
            "category": payload.category,
            "date": payload.date or self._today(),
            "country": payload.country or CURRENCY_TO_COUNTRY.get(currency),
        }

    def add_expense(self, trip_id: str, payload: ExpenseIn) -> Expense:
        ledger = self._require_snapshot()
        trip = self._require_trip(ledger, trip_id)
        validate_expense_domain(payload.currency, payload.category, trip, ledger.category_names())
        data = self._expense_data(payload)
        data["id"] = self._ids.new_id(taken={e.id for e in trip.expenses})
        expense = _build(Expense, data)
        updated = trip.model_copy(update={"expenses": trip.expenses + (expense,)})
        self._commit(self._with_trip(ledger, updated), "Spesa aggiunta.")
        return expense

    def add_expense_from_template(
        self, trip_id: str, template_id: str, when: Optional[date] = None
    ) -> Expense:
        ledger = self._require_snapshot()
        trip = self._require_trip(ledger, trip_id)
        template = next((f for f in trip.frequent_expenses if f.id == template_id), None)
        if template is None:
            raise NotFoundError("frequent expense", template_id)
        return self.add_expense(
            trip_id,
            ExpenseIn(
                amount=template.amount,
                currency=trip.main_currency,
                category=template.category,
                date=when,
            ),
        )

    def update_expense(self, trip_id: str, expense_id: str, payload: ExpenseIn) -> Expense:
        ledger = self._require_snapshot()
        trip = self._require_trip(ledger, trip_id)
        if trip.get_expense(expense_id) is None:
            raise NotFoundError("expense", expense_id)
        validate_expense_domain(payload.currency, payload.category, trip, ledger.category_names())
        data = self._expense_data(payload)
        data["id"] = expense_id
        expense = _build(Expense, data)
        updated = trip.model_copy(
            update={"expenses": tuple(expense if e.id == expense_id else e for e in trip.expenses)}
        )
        self._commit(self._with_trip(ledger, updated), "Spesa aggiornata.")
        return expense

    def delete_expense(self, trip_id: str, expense_id: str) -> None:
        ledger = self._require_snapshot()
        trip = self._require_trip(ledger, trip_id)
        if trip.get_expense(expense_id) is None:
            raise NotFoundError("expense", expense_id)
        updated = trip.model_copy(
            update={"expenses": tuple(e for e in trip.expenses if e.id != expense_id)}
        )
        self._commit(self._with_trip(ledger, updated), "Spesa eliminata.")

    # ------------------------------------------------------------------
    # Categories
    @staticmethod
    def _rename_in_trip(trip: Trip, old: str, new: str) -> Trip:
        if not any(e.category == old for e in trip.expenses) and not any(
            f.category == old for f in trip.frequent_expenses
        ):
            return trip
        return trip.model_copy(
            update={
                "expenses": tuple(
                    e.model_copy(update={"category": new}) if e.category == old else e
                    for e in trip.expenses
                ),
                "frequent_expenses": tuple(
                    f.model_copy(update={"category": new}) if f.category == old else f
                    for f in trip.frequent_expenses
                ),
            }
        )

    def _check_unique_name(self, ledger: Ledger, name: str, exclude_id: Optional[str] = None) -> None:
        for c in ledger.categories:
            if c.id != exclude_id and c.name.casefold() == name.casefold():
                raise LedgerValidationError(f"category '{name}' already exists")

    def add_category(self, payload: CategoryIn) -> Category:
        ledger = self._require_snapshot()
        self._check_unique_name(ledger, payload.name)
        data = payload.model_dump()
        data["id"] = self._ids.new_id("custom-cat-", {c.id for c in ledger.categories})
        category = _build(Category, data)
        self._commit(
            ledger.model_copy(update={"categories": ledger.categories + (category,)}),
            "Categoria creata.",
        )
        return category

    def update_category(self, category_id: str, payload: CategoryIn) -> Category:
        ledger = self._require_snapshot()
        old = ledger.get_category(category_id)
        if old is None:
            raise NotFoundError("category", category_id)
        self._check_unique_name(ledger, payload.name, exclude_id=category_id)
        category = _build(Category, {**payload.model_dump(), "id": category_id})
        trips = ledger.trips
        if old.name != category.name:
            # Rename is atomic with the expense rewrite: one snapshot, no stale names
            trips = tuple(self._rename_in_trip(t, old.name, category.name) for t in trips)
            trips = tuple(
                t.model_copy(
                    update={
                        "category_budgets": tuple(
                            b.model_copy(update={"category_name": category.name})
                            if b.category_name == old.name
                            else b
                            for b in t.category_budgets
                        )
                    }
                )
                if any(b.category_name == old.name for b in t.category_budgets)
                else t
                for t in trips
            )
        self._commit(
            ledger.model_copy(
                update={
                    "trips": trips,
                    "categories": tuple(
                        category if c.id == category_id else c for c in ledger.categories
                    ),
                }
            ),
            "Categoria aggiornata.",
        )
        return category

    def delete_category(self, category_id: str) -> None:
        ledger = self._require_snapshot()
        if category_id in DEFAULT_CATEGORY_IDS:
            self._notifier.notify("Le categorie predefinite non possono essere eliminate.", "error")
            raise LedgerValidationError("default categories cannot be deleted")
        doomed = ledger.get_category(category_id)
        if doomed is None:
            raise NotFoundError("category", category_id)
        fallback = ledger.get_category(FALLBACK_CATEGORY_ID)
        if fallback is None:
            raise LedgerValidationError("fallback category is missing; cannot reassign expenses")
        trips = tuple(
            self._rename_in_trip(t, doomed.name, fallback.name).model_copy(
                update={
                    "category_budgets": tuple(
                        b for b in t.category_budgets if b.category_name != doomed.name
                    )
                }
            )
            for t in ledger.trips
        )
        self._commit(
            ledger.model_copy(
                update={
                    "trips": trips,
                    "categories": tuple(c for c in ledger.categories if c.id != category_id),
                }
            ),
            "Categoria eliminata.",
        )


__all__ = ["LedgerStore", "normalize_ledger"]
