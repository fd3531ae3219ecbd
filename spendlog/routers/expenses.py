from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel

from spendlog.models.inputs import ExpenseIn
from spendlog.services.quick_expense import create_quick_expense
from spendlog.services.session import LedgerSession
from spendlog.services.virtual_list import compute_window, materialize, newest_first

from .deps import current_trip, get_session

router = APIRouter(prefix="/trips/{trip_id}/expenses", tags=["expenses"])


class QuickExpensePayload(BaseModel):
    prompt: str


def _dump(model):
    return model.model_dump(mode="json", by_alias=True)


@router.post("", status_code=status.HTTP_201_CREATED, summary="Add an expense")
async def add_expense(
    trip_id: str, payload: ExpenseIn, session: LedgerSession = Depends(get_session)
):
    return _dump(session.store.add_expense(trip_id, payload))


@router.post(
    "/from-template/{template_id}",
    status_code=status.HTTP_201_CREATED,
    summary="Add an expense from a frequent-expense template",
)
async def add_from_template(
    trip_id: str, template_id: str, session: LedgerSession = Depends(get_session)
):
    return _dump(session.store.add_expense_from_template(trip_id, template_id))


@router.post("/quick", status_code=status.HTTP_201_CREATED, summary="Add an expense from free text")
async def quick_expense(
    trip_id: str,
    payload: QuickExpensePayload,
    request: Request,
    session: LedgerSession = Depends(get_session),
):
    inference = getattr(request.app.state, "inference", None)
    if inference is None:
        raise HTTPException(status_code=503, detail="text inference not configured")
    expense = await create_quick_expense(
        session.store, trip_id, payload.prompt, inference, session.notifier
    )
    return _dump(expense)


@router.get("/window", summary="Newest-first virtual window over the trip's expenses")
async def expense_window(
    trip_id: str,
    request: Request,
    scroll_top: float = Query(0, ge=0),
    viewport_height: float = Query(600, ge=0),
    container_top: float = Query(0),
    item_height: Optional[int] = Query(None, gt=0),
    overscan: Optional[int] = Query(None, ge=0),
    session: LedgerSession = Depends(get_session),
):
    settings = request.app.state.settings
    expenses = current_trip(session, trip_id).expenses
    window = compute_window(
        len(expenses),
        item_height or settings.list_item_height,
        scroll_top,
        viewport_height,
        container_top=container_top,
        overscan=settings.list_overscan if overscan is None else overscan,
    )
    return {
        "start": window.start,
        "end": window.end,
        "total_height": window.total_height,
        "items": [
            {"index": item.index, "offset": item.offset, "expense": _dump(expense)}
            for item, expense in materialize(window, newest_first(expenses))
        ],
    }


@router.put("/{expense_id}", summary="Replace an expense")
async def update_expense(
    trip_id: str,
    expense_id: str,
    payload: ExpenseIn,
    session: LedgerSession = Depends(get_session),
):
    return _dump(session.store.update_expense(trip_id, expense_id, payload))


@router.delete("/{expense_id}", status_code=204, summary="Delete an expense")
async def delete_expense(
    trip_id: str, expense_id: str, session: LedgerSession = Depends(get_session)
):
    session.store.delete_expense(trip_id, expense_id)
    return None
