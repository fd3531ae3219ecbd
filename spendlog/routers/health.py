from fastapi import APIRouter, Depends

from spendlog.services.session import LedgerSession

from .deps import get_session

router = APIRouter(tags=["health"])


@router.get("/health", summary="Liveness and sync state")
async def health(session: LedgerSession = Depends(get_session)):
    return {
        "status": "ok",
        "mode": session.mode.value,
        "listener": session.listener.state.value,
    }
