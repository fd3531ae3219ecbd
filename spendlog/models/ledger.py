"""Immutable ledger document models.

A Ledger is one JSON document per user. Every model is frozen and every
collection is a tuple, so a new snapshot can only be produced by structural
copy (``model_copy(update=...)``); nested collections are never mutated in
place. Field aliases follow the persisted camelCase document shape.
"""

from __future__ import annotations

from datetime import date as date_type, datetime
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from .constants import DEFAULT_CATEGORY_ROWS, TRIP_CARD_COLORS


def _coerce_date(value: Any) -> Any:
    # Stored documents carry either 'YYYY-MM-DD' or full ISO timestamps
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10:
        return value[:10]
    return value


def _not_blank(value: str, field: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{field} cannot be empty")
    return value.strip()


def _currency_code(value: str) -> str:
    code = _not_blank(value, "currency").upper()
    if not code.isalpha():
        raise ValueError(f"invalid currency code '{value}'")
    return code


class _Document(BaseModel):
    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )


class Category(_Document):
    id: str
    name: str
    icon: str = "📝"
    color: str = "#9E9E9E"

    @field_validator("name")
    def _name_not_blank(cls, value: str) -> str:
        return _not_blank(value, "name")


class Expense(_Document):
    id: str
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    currency: str
    category: str
    date: date_type
    country: Optional[str] = None

    @field_validator("currency")
    def _valid_currency(cls, value: str) -> str:
        return _currency_code(value)

    @field_validator("category")
    def _category_not_blank(cls, value: str) -> str:
        return _not_blank(value, "category")

    @field_validator("date", mode="before")
    def _date_prefix(cls, value: Any) -> Any:
        return _coerce_date(value)


class CategoryBudget(_Document):
    category_name: str
    amount: float = Field(..., ge=0, allow_inf_nan=False)


class FrequentExpense(_Document):
    id: str
    name: str
    icon: str = "💸"
    category: str
    amount: float = Field(..., gt=0, allow_inf_nan=False)


class Trip(_Document):
    id: str
    name: str
    start_date: date_type
    end_date: date_type
    total_budget: float = Field(..., ge=0, allow_inf_nan=False)
    countries: Tuple[str, ...] = ()
    main_currency: str
    preferred_currencies: Tuple[str, ...] = ()
    expenses: Tuple[Expense, ...] = ()
    color: str = TRIP_CARD_COLORS[0]
    enable_category_budgets: bool = False
    category_budgets: Tuple[CategoryBudget, ...] = ()
    frequent_expenses: Tuple[FrequentExpense, ...] = ()

    @field_validator("name")
    def _name_not_blank(cls, value: str) -> str:
        return _not_blank(value, "name")

    @field_validator("start_date", "end_date", mode="before")
    def _date_prefix(cls, value: Any) -> Any:
        return _coerce_date(value)

    @field_validator("end_date")
    def _end_not_before_start(cls, end: date_type, info: ValidationInfo) -> date_type:
        start = info.data.get("start_date")
        if start and end < start:
            raise ValueError("end_date cannot be before start_date")
        return end

    @field_validator("main_currency")
    def _valid_main_currency(cls, value: str) -> str:
        return _currency_code(value)

    @field_validator("preferred_currencies")
    def _preferred_contains_main(
        cls, currencies: Tuple[str, ...], info: ValidationInfo
    ) -> Tuple[str, ...]:
        # Main currency first, then the rest de-duplicated in order
        main = info.data.get("main_currency")
        seen = set()
        unique = []
        for cur in ((main,) if main else ()) + tuple(currencies):
            code = _currency_code(cur)
            if code not in seen:
                seen.add(code)
                unique.append(code)
        return tuple(unique)

    def get_expense(self, expense_id: str) -> Optional[Expense]:
        return next((e for e in self.expenses if e.id == expense_id), None)

    def duration_days(self) -> int:
        return (self.end_date - self.start_date).days + 1


def default_categories() -> Tuple[Category, ...]:
    return tuple(
        Category(id=cid, name=name, icon=icon, color=color)
        for cid, name, icon, color in DEFAULT_CATEGORY_ROWS
    )


class Ledger(_Document):
    name: str = ""
    email: str = ""
    dataviaggio: str = ""
    trips: Tuple[Trip, ...] = ()
    categories: Tuple[Category, ...] = Field(default_factory=default_categories)
    default_trip_id: Optional[str] = None

    def get_trip(self, trip_id: str) -> Optional[Trip]:
        return next((t for t in self.trips if t.id == trip_id), None)

    def get_category(self, category_id: str) -> Optional[Category]:
        return next((c for c in self.categories if c.id == category_id), None)

    def category_names(self) -> Tuple[str, ...]:
        return tuple(c.name for c in self.categories)

    def to_document(self) -> Dict[str, Any]:
        """Persisted shape; ``defaultTripId`` is always present (null when unset)."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Ledger":
        return cls.model_validate(document)
