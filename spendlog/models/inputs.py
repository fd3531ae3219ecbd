"""Mutation input payloads (ids are assigned by the store)."""

from __future__ import annotations

from datetime import date as date_type
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .constants import TRIP_CARD_COLORS


class _Payload(BaseModel):
    # Accept both the document's camelCase and snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TripIn(_Payload):
    name: str
    start_date: date_type
    end_date: date_type
    total_budget: float = Field(..., gt=0, allow_inf_nan=False)
    countries: List[str] = Field(..., min_length=1)
    main_currency: str
    preferred_currencies: List[str] = []
    color: str = TRIP_CARD_COLORS[0]
    enable_category_budgets: bool = False
    category_budgets: List["CategoryBudgetIn"] = []
    frequent_expenses: List["FrequentExpenseIn"] = []

    @field_validator("name")
    def _name_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("name cannot be empty")
        return value.strip()


class CategoryBudgetIn(_Payload):
    category_name: str
    amount: float = Field(..., ge=0, allow_inf_nan=False)


class FrequentExpenseIn(_Payload):
    id: Optional[str] = None
    name: str
    icon: str = "💸"
    category: str
    amount: float = Field(..., gt=0, allow_inf_nan=False)


class ExpenseIn(_Payload):
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    currency: str
    category: str
    date: Optional[date_type] = None
    country: Optional[str] = None

    @field_validator("currency")
    def _upper(cls, value: str) -> str:
        return value.strip().upper()


class CategoryIn(_Payload):
    name: str
    icon: str = "📝"
    color: str = "#9E9E9E"

    @field_validator("name")
    def _name_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("name cannot be empty")
        return value.strip()


TripIn.model_rebuild()
