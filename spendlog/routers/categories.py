from fastapi import APIRouter, Depends, status

from spendlog.models.constants import DEFAULT_CATEGORY_IDS
from spendlog.models.inputs import CategoryIn
from spendlog.services.session import LedgerSession

from .deps import current_ledger, get_session

router = APIRouter(prefix="/categories", tags=["categories"])


def _dump(category):
    out = category.model_dump(mode="json", by_alias=True)
    out["protected"] = category.id in DEFAULT_CATEGORY_IDS
    return out


@router.get("", summary="List categories")
async def list_categories(session: LedgerSession = Depends(get_session)):
    return [_dump(c) for c in current_ledger(session).categories]


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create category")
async def create_category(payload: CategoryIn, session: LedgerSession = Depends(get_session)):
    return _dump(session.store.add_category(payload))


@router.put("/{category_id}", summary="Update category (renames cascade to expenses)")
async def update_category(
    category_id: str, payload: CategoryIn, session: LedgerSession = Depends(get_session)
):
    return _dump(session.store.update_category(category_id, payload))


@router.delete("/{category_id}", status_code=204, summary="Delete category (expenses move to 'Varie')")
async def delete_category(category_id: str, session: LedgerSession = Depends(get_session)):
    session.store.delete_category(category_id)
    return None
