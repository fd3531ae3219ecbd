from __future__ import annotations

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query

from spendlog.core.errors import UnsupportedCurrencyError
from spendlog.services.rates.conversion import compute_equivalent
from spendlog.services.session import LedgerSession

from .deps import get_session

"""Rates router.

    - GET  /rates          -> current table (optionally rebased), last refresh time
    - POST /rates/refresh  -> refresh (overlapping calls share one fetch)
    - GET  /rates/convert  -> convert an amount between two currencies
"""

router = APIRouter(prefix="/rates", tags=["rates"])


def _table_out(session: LedgerSession, base: Optional[str] = None):
    table = session.engine.table
    if base and base.upper() != table.base_currency:
        if not session.engine.supports(base):
            raise UnsupportedCurrencyError(base.upper())
        table = table.rebased(base)
    return {
        "base_currency": table.base_currency,
        "rates": table.rates,
        "refreshed_at": table.refreshed_at.isoformat() if table.refreshed_at else None,
        "is_refreshing": session.engine.is_refreshing,
    }


@router.get("", summary="Current rate table")
async def get_rates(
    base: Optional[str] = Query(None, description="Express rates relative to this currency"),
    session: LedgerSession = Depends(get_session),
):
    return _table_out(session, base)


@router.post("/refresh", summary="Replace the rate table from the configured source")
async def refresh_rates(session: LedgerSession = Depends(get_session)):
    await session.engine.refresh()
    return _table_out(session)


@router.get("/convert", summary="Convert an amount")
async def convert(
    amount: float = Query(..., ge=0),
    from_currency: str = Query(..., alias="from"),
    to_currency: str = Query(..., alias="to"),
    session: LedgerSession = Depends(get_session),
):
    return asdict(compute_equivalent(amount, from_currency, to_currency, session.engine))
