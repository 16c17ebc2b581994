from fastapi import APIRouter, Depends, Header, Request
from pydantic import BaseModel

from app.deps import SessionUser, get_current_user
from app.services import payments as payments_service
from app.storage.base import BalanceStore, get_balance_store

router = APIRouter()


class CreateCheckoutRequest(BaseModel):
    price_id: str  # must be one of the configured credit packs


@router.post("/checkout")
async def create_checkout(
    body: CreateCheckoutRequest,
    user: SessionUser = Depends(get_current_user),
):
    """Create a Stripe Checkout session; the frontend redirects to the returned url."""
    return payments_service.create_checkout_session(user.user_id, body.price_id, email=user.email)


@router.post("/portal")
async def create_portal(
    user: SessionUser = Depends(get_current_user),
    store: BalanceStore = Depends(get_balance_store),
):
    """Stripe billing portal for receipts and payment methods."""
    return await payments_service.create_portal_session(user.user_id, user.email, store)


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(None, alias="Stripe-Signature"),
    store: BalanceStore = Depends(get_balance_store),
):
    """Stripe webhook: checkout.session.completed -> add credits to the buyer's balance."""
    body = await request.body()
    return await payments_service.handle_webhook(body, stripe_signature, store)
