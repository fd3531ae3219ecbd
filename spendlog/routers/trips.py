from dataclasses import asdict
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from spendlog.models.inputs import TripIn
from spendlog.services.budget_utils import (
    GroupBy,
    category_budget_statuses,
    daily_spending,
    group_expenses,
    trip_budget_summary,
)
from spendlog.services.money import round_for_display
from spendlog.services.session import LedgerSession

from .deps import current_ledger, current_trip, get_session

router = APIRouter(prefix="/trips", tags=["trips"])


def _dump(model):
    return model.model_dump(mode="json", by_alias=True)


@router.get("", summary="List trips")
async def list_trips(session: LedgerSession = Depends(get_session)):
    return [_dump(t) for t in current_ledger(session).trips]


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create trip")
async def create_trip(payload: TripIn, session: LedgerSession = Depends(get_session)):
    return _dump(session.store.add_trip(payload))


@router.get("/{trip_id}", summary="Get trip details")
async def get_trip(trip_id: str, session: LedgerSession = Depends(get_session)):
    return _dump(current_trip(session, trip_id))


@router.put("/{trip_id}", summary="Replace trip metadata (expenses kept)")
async def update_trip(
    trip_id: str, payload: TripIn, session: LedgerSession = Depends(get_session)
):
    return _dump(session.store.update_trip(trip_id, payload))


@router.delete("/{trip_id}", status_code=204, summary="Delete trip")
async def delete_trip(trip_id: str, session: LedgerSession = Depends(get_session)):
    session.store.delete_trip(trip_id)
    return None


@router.get("/{trip_id}/summary", summary="Budget summary in the trip's main currency")
async def trip_summary(
    trip_id: str,
    as_of: Optional[date] = Query(None, description="Reference day (default today)"),
    session: LedgerSession = Depends(get_session),
):
    summary = trip_budget_summary(current_trip(session, trip_id), session.engine, as_of)
    out = asdict(summary)
    for key in ("total_spent", "budget", "remaining", "daily_average", "daily_budget", "today_spent"):
        out[key] = round_for_display(out[key], summary.currency)
    out["percent_used"] = round(summary.percent_used, 2)
    out["rates_refreshed_at"] = (
        session.engine.last_refreshed.isoformat() if session.engine.last_refreshed else None
    )
    return out


@router.get("/{trip_id}/groups", summary="Spending grouped by category, country or currency")
async def trip_groups(
    trip_id: str,
    by: GroupBy = Query("category"),
    since: Optional[date] = Query(None),
    session: LedgerSession = Depends(get_session),
):
    trip = current_trip(session, trip_id)
    total, groups = group_expenses(trip, session.engine, by=by, since=since)
    return {
        "currency": trip.main_currency,
        "total": round_for_display(total, trip.main_currency),
        "groups": [
            {
                "key": g.key,
                "amount": round_for_display(g.amount, trip.main_currency),
                "count": g.count,
                "percentage": round(g.percentage, 2),
            }
            for g in groups
        ],
    }


@router.get("/{trip_id}/category-budgets", summary="Per-category budget usage")
async def trip_category_budgets(trip_id: str, session: LedgerSession = Depends(get_session)):
    trip = current_trip(session, trip_id)
    cur = trip.main_currency
    return [
        {
            **asdict(s),
            "allocated": round_for_display(s.allocated, cur),
            "spent": round_for_display(s.spent, cur),
            "remaining": round_for_display(s.remaining, cur),
            "percent_used": round(s.percent_used, 2),
        }
        for s in category_budget_statuses(trip, session.engine)
    ]


@router.get("/{trip_id}/daily", summary="Cumulative spend vs ideal burn")
async def trip_daily(
    trip_id: str,
    as_of: Optional[date] = Query(None),
    session: LedgerSession = Depends(get_session),
):
    trip = current_trip(session, trip_id)
    cur = trip.main_currency
    return [
        {
            "day": p.day.isoformat(),
            "spent": round_for_display(p.spent, cur),
            "cumulative": round_for_display(p.cumulative, cur),
            "ideal": round_for_display(p.ideal, cur),
        }
        for p in daily_spending(trip, session.engine, as_of)
    ]
