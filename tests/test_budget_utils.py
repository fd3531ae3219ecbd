from datetime import date

import pytest

from spendlog.services.budget_utils import (
    category_budget_statuses,
    daily_spending,
    days_elapsed,
    group_expenses,
    trip_budget_summary,
)
from spendlog.services.money import format_money, round2, round_for_display

from .conftest import make_expense, make_trip


@pytest.fixture
def trip():
    return make_trip(
        "t",
        [
            make_expense(100, "EUR", "Cibo", date(2024, 8, 1), country="Thailandia"),
            make_expense(3950, "THB", "Alloggio", date(2024, 8, 2), country="Thailandia"),
            make_expense(85, "EUR", "Cibo", date(2024, 8, 3)),
        ],
        totalBudget=600,
        endDate="2024-08-10",
        categoryBudgets=[{"categoryName": "Cibo", "amount": 200}, {"categoryName": "Alloggio", "amount": 500}],
    )


def test_summary_in_main_currency(trip, engine):
    summary = trip_budget_summary(trip, engine, today=date(2024, 8, 3))
    assert summary.currency == "EUR"
    assert summary.total_spent == pytest.approx(285.0)
    assert summary.remaining == pytest.approx(315.0)
    assert summary.percent_used == pytest.approx(47.5)
    assert summary.days_elapsed == 3
    assert summary.daily_average == pytest.approx(95.0)
    assert summary.daily_budget == pytest.approx(60.0)
    assert summary.today_spent == pytest.approx(85.0)


def test_days_elapsed_is_clamped_to_trip(trip):
    assert days_elapsed(trip, date(2024, 7, 1)) == 1
    assert days_elapsed(trip, date(2024, 12, 1)) == 10


def test_category_budget_thresholds(trip, engine):
    statuses = {s.category: s for s in category_budget_statuses(trip, engine)}
    food = statuses["Cibo"]
    assert food.spent == pytest.approx(185.0)
    assert food.warn and food.danger
    lodging = statuses["Alloggio"]
    assert lodging.percent_used == pytest.approx(20.0)
    assert not lodging.warn


def test_group_by_country_uses_unknown_placeholder(trip, engine):
    total, groups = group_expenses(trip, engine, by="country")
    assert total == pytest.approx(285.0)
    by_key = {g.key: g for g in groups}
    assert by_key["Thailandia"].count == 2
    assert by_key["Sconosciuto"].amount == pytest.approx(85.0)
    assert sum(g.percentage for g in groups) == pytest.approx(100.0)


def test_group_since_filters_older_expenses(trip, engine):
    total, groups = group_expenses(trip, engine, by="category", since=date(2024, 8, 2))
    assert total == pytest.approx(185.0)
    assert [g.key for g in groups] == ["Alloggio", "Cibo"]


def test_daily_spending_cumulative_and_ideal(trip, engine):
    points = daily_spending(trip, engine, today=date(2024, 8, 4))
    assert [p.day.day for p in points] == [1, 2, 3, 4]
    assert points[-1].cumulative == pytest.approx(285.0)
    assert points[-1].spent == 0
    assert points[1].ideal == pytest.approx(120.0)


def test_money_rounding():
    assert round2(2.675) == 2.68
    assert round_for_display(12345.6, "VND") == 12346.0
    assert format_money(1234.5, "eur") == "1,234.50 EUR"
