"""Pydantic domain models for the SpendLog ledger."""

from .constants import (
    ALL_CURRENCIES,
    CURRENCY_TO_COUNTRY,
    DEFAULT_CATEGORY_IDS,
    FALLBACK_CATEGORY_ID,
)  # re-export
from .inputs import CategoryBudgetIn, CategoryIn, ExpenseIn, FrequentExpenseIn, TripIn
from .ledger import (
    Category,
    CategoryBudget,
    Expense,
    FrequentExpense,
    Ledger,
    Trip,
    default_categories,
)

__all__ = [
    "ALL_CURRENCIES",
    "CURRENCY_TO_COUNTRY",
    "DEFAULT_CATEGORY_IDS",
    "FALLBACK_CATEGORY_ID",
    "Category",
    "CategoryBudget",
    "CategoryBudgetIn",
    "CategoryIn",
    "Expense",
    "ExpenseIn",
    "FrequentExpense",
    "FrequentExpenseIn",
    "Ledger",
    "Trip",
    "TripIn",
    "default_categories",
]
