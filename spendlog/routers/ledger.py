from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from spendlog.services.session import LedgerSession

from .deps import current_ledger, get_session

router = APIRouter(prefix="/ledger", tags=["ledger"])


class DefaultTripPayload(BaseModel):
    trip_id: Optional[str] = None


@router.get("", summary="Current ledger snapshot (persisted document shape)")
async def get_ledger(session: LedgerSession = Depends(get_session)):
    return current_ledger(session).to_document()


@router.get("/status", summary="Sync status")
async def get_status(session: LedgerSession = Depends(get_session)):
    listener = session.listener
    last_error = getattr(listener, "last_error", None)
    return {
        "mode": session.mode.value,
        "state": listener.state.value,
        "loaded": session.store.loaded,
        "version": session.store.version,
        "read_only": session.store.read_only,
        "last_error": str(last_error) if last_error else None,
    }


@router.post("/refetch", summary="Force a reconciliation re-fetch")
async def refetch(session: LedgerSession = Depends(get_session)):
    ok = await session.refetch()
    return {"refetched": ok, "version": session.store.version}


@router.put("/default-trip", summary="Set or clear the default trip")
async def set_default_trip(
    payload: DefaultTripPayload, session: LedgerSession = Depends(get_session)
):
    session.store.set_default_trip(payload.trip_id)
    return {"default_trip_id": current_ledger(session).default_trip_id}


@router.get("/notifications", summary="Recent user notifications")
async def notifications(session: LedgerSession = Depends(get_session)):
    recent = getattr(session.notifier, "recent", None)
    items = recent() if recent else []
    return [
        {"message": n.message, "level": n.level, "created_at": n.created_at.isoformat()}
        for n in items
    ]
