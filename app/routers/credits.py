from fastapi import APIRouter, Depends, Query

from app.deps import SessionUser, get_current_user
from app.services import credits as credits_service
from app.storage.base import BalanceStore, get_balance_store

router = APIRouter()


@router.get("/balance")
async def credits_balance(
    user: SessionUser = Depends(get_current_user),
    store: BalanceStore = Depends(get_balance_store),
):
    """Return current credit balance."""
    balance = await credits_service.get_balance(user.user_id, store)
    return {"balance": balance}


@router.get("/ledger")
async def credits_ledger(
    user: SessionUser = Depends(get_current_user),
    store: BalanceStore = Depends(get_balance_store),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    """Return ledger entries for current user (newest first)."""
    entries = await credits_service.list_ledger(user.user_id, store, limit=limit, offset=offset)
    out = [
        {
            "amount": e.amount,
            "balance_after": e.balance_after,
            "reason": e.reason,
            "reference_type": e.reference_type,
            "reference_id": e.reference_id,
            "created_at": e.created_at.isoformat(),
        }
        for e in entries
    ]
    return {"entries": out, "limit": limit, "offset": offset}


@router.get("/packs")
async def credit_packs():
    """Purchasable credit packs for the pricing page."""
    return {"packs": credits_service.list_packs()}
