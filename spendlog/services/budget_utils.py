"""Trip budget computations.

Every sum here is accumulated in unrounded floats in the trip's main currency;
callers round once at presentation (see ``money.round_for_display``).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Literal, Optional, Tuple

from spendlog.models.constants import UNKNOWN_COUNTRY
from spendlog.models.ledger import Expense, Trip
from spendlog.services.rates.base import SupportsConvert
from spendlog.services.rates.conversion import total_in_currency

WARN_PCT = 80
DANGER_PCT = 90

GroupBy = Literal["category", "country", "currency"]


@dataclass(frozen=True)
class TripBudgetSummary:
    currency: str
    total_spent: float
    budget: float
    remaining: float
    percent_used: float
    days_elapsed: int
    daily_average: float
    daily_budget: float
    today_spent: float


def _percent(part: float, whole: float) -> float:
    return (part / whole) * 100 if whole > 0 else 0.0


def days_elapsed(trip: Trip, today: date) -> int:
    if today < trip.start_date:
        return 1
    last = min(today, trip.end_date)
    return max(1, (last - trip.start_date).days + 1)


def trip_budget_summary(trip: Trip, engine: SupportsConvert, today: Optional[date] = None) -> TripBudgetSummary:
    today = today or date.today()
    main = trip.main_currency
    total = total_in_currency(trip.expenses, main, engine)
    elapsed = days_elapsed(trip, today)
    duration = trip.duration_days()
    return TripBudgetSummary(
        currency=main,
        total_spent=total,
        budget=trip.total_budget,
        remaining=trip.total_budget - total,
        percent_used=_percent(total, trip.total_budget),
        days_elapsed=elapsed,
        daily_average=total / elapsed,
        daily_budget=trip.total_budget / duration if duration > 0 else 0.0,
        today_spent=total_in_currency((e for e in trip.expenses if e.date == today), main, engine),
    )


@dataclass(frozen=True)
class CategoryBudgetStatus:
    category: str
    allocated: float
    spent: float
    remaining: float
    percent_used: float
    warn: bool
    danger: bool


def category_budget_statuses(
    trip: Trip, engine: SupportsConvert, warn_pct: int = WARN_PCT, danger_pct: int = DANGER_PCT
) -> List[CategoryBudgetStatus]:
    out = []
    for budget in trip.category_budgets:
        spent = total_in_currency(
            (e for e in trip.expenses if e.category == budget.category_name),
            trip.main_currency,
            engine,
        )
        pct = _percent(spent, budget.amount)
        out.append(
            CategoryBudgetStatus(
                category=budget.category_name,
                allocated=budget.amount,
                spent=spent,
                remaining=max(budget.amount - spent, 0.0),
                percent_used=pct,
                warn=budget.amount > 0 and pct >= warn_pct,
                danger=budget.amount > 0 and pct >= danger_pct,
            )
        )
    return out


@dataclass(frozen=True)
class ExpenseGroup:
    key: str
    amount: float
    count: int
    percentage: float


def _group_key(expense: Expense, by: GroupBy) -> str:
    if by == "category":
        return expense.category
    if by == "country":
        return expense.country or UNKNOWN_COUNTRY
    return expense.currency


def group_expenses(
    trip: Trip, engine: SupportsConvert, by: GroupBy = "category", since: Optional[date] = None
) -> Tuple[float, List[ExpenseGroup]]:
    expenses = [e for e in trip.expenses if since is None or e.date >= since]
    acc: Dict[str, Tuple[float, int]] = {}
    total = 0.0
    for e in expenses:
        amount = engine.convert(e.amount, e.currency, trip.main_currency)
        total += amount
        key = _group_key(e, by)
        prev_amount, prev_count = acc.get(key, (0.0, 0))
        acc[key] = (prev_amount + amount, prev_count + 1)
    groups = [
        ExpenseGroup(key=k, amount=a, count=c, percentage=_percent(a, total))
        for k, (a, c) in acc.items()
    ]
    groups.sort(key=lambda g: g.amount, reverse=True)
    return total, groups


@dataclass(frozen=True)
class DailyPoint:
    day: date
    spent: float
    cumulative: float
    ideal: float


def daily_spending(trip: Trip, engine: SupportsConvert, today: Optional[date] = None) -> List[DailyPoint]:
    """Actual cumulative spend vs ideal linear burn, from trip start to min(today, end)."""
    today = today or date.today()
    per_day: Dict[date, float] = {}
    for e in trip.expenses:
        per_day[e.date] = per_day.get(e.date, 0.0) + engine.convert(e.amount, e.currency, trip.main_currency)
    duration = trip.duration_days()
    daily_budget = trip.total_budget / duration if duration > 0 else 0.0
    last = min(today, trip.end_date)
    points: List[DailyPoint] = []
    cumulative = 0.0
    for offset in range(max(0, (last - trip.start_date).days + 1)):
        day = date.fromordinal(trip.start_date.toordinal() + offset)
        spent = per_day.get(day, 0.0)
        cumulative += spent
        points.append(DailyPoint(day=day, spent=spent, cumulative=cumulative, ideal=daily_budget * (offset + 1)))
    return points
