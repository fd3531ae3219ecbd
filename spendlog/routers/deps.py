"""Shared router dependencies."""

from fastapi import HTTPException, Request

from spendlog.core.errors import NotFoundError
from spendlog.models.ledger import Ledger, Trip
from spendlog.services.session import LedgerSession


def get_session(request: Request) -> LedgerSession:
    session = getattr(request.app.state, "session", None)
    if session is None:
        raise HTTPException(status_code=503, detail="ledger session not started")
    return session


def current_ledger(session: LedgerSession) -> Ledger:
    ledger = session.store.get_snapshot()
    if ledger is None:
        raise HTTPException(status_code=503, detail="ledger not loaded yet")
    return ledger


def current_trip(session: LedgerSession, trip_id: str) -> Trip:
    trip = current_ledger(session).get_trip(trip_id)
    if trip is None:
        raise NotFoundError("trip", trip_id)
    return trip
