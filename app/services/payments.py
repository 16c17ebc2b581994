"""Stripe checkout, billing portal, and webhook fulfillment of credit purchases."""

import json
from typing import Any

import stripe

from app.core.config import Settings, get_settings
from app.core.exceptions import (
    BadRequestError,
    MalformedEventError,
    PaymentProviderError,
    ServiceUnavailableError,
    StoreUnavailableError,
    UnknownPriceIdError,
)
from app.core.logging import bind_stripe_event, get_logger
from app.core.security import verify_stripe_signature
from app.services import credits as credits_service
from app.storage.base import BalanceStore

log = get_logger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


def _request_options(settings: Settings) -> dict[str, str]:
    if not settings.stripe_configured:
        raise ServiceUnavailableError("Payments not configured")
    return {"api_key": settings.stripe_secret_key, "stripe_version": settings.stripe_api_version}


def create_checkout_session(user_id: str, price_id: str, email: str | None = None) -> dict:
    """Create a one-off Stripe Checkout session for a credit pack; return its redirect URL."""
    settings = get_settings()
    if not credits_service.is_known_price(price_id):
        raise BadRequestError(f"Unknown credit pack: {price_id}", details={"price_id": price_id})
    options = _request_options(settings)
    params: dict[str, Any] = {
        "mode": "payment",
        "line_items": [{"price": price_id, "quantity": 1}],
        "client_reference_id": user_id,
        "metadata": {"userId": user_id, "priceId": price_id},
        "success_url": f"{settings.app_url}/account?checkout=success",
        "cancel_url": f"{settings.app_url}/pricing",
    }
    if email:
        params["customer_email"] = email
    try:
        session = stripe.checkout.Session.create(**params, **options)
    except stripe.StripeError as e:
        log.error("checkout_session_failed", user_id=user_id, price_id=price_id, error=str(e))
        raise PaymentProviderError("Failed to create checkout session") from e
    log.info("checkout_session_created", user_id=user_id, price_id=price_id, session_id=session.id)
    return {"url": session.url, "session_id": session.id}


async def create_portal_session(user_id: str, email: str | None, store: BalanceStore) -> dict:
    """Create a Stripe billing portal session, creating the Stripe customer on first use."""
    settings = get_settings()
    options = _request_options(settings)
    customer_id = await store.get_customer_id(user_id)
    try:
        if not customer_id:
            customer = stripe.Customer.create(
                email=email or None,
                metadata={"userId": user_id},
                **options,
            )
            customer_id = customer.id
            await store.set_customer_id(user_id, customer_id)
            log.info("stripe_customer_created", user_id=user_id, customer_id=customer_id)
        portal = stripe.billing_portal.Session.create(
            customer=customer_id,
            return_url=f"{settings.app_url}/account",
            **options,
        )
    except stripe.StripeError as e:
        log.error("portal_session_failed", user_id=user_id, error=str(e))
        raise PaymentProviderError("Failed to create Stripe portal session") from e
    return {"url": portal.url}


def _parse_event(payload: bytes) -> dict[str, Any]:
    try:
        event = json.loads(payload)
    except ValueError as e:
        raise MalformedEventError("Webhook body is not valid JSON") from e
    if not isinstance(event, dict):
        raise MalformedEventError("Webhook body is not a JSON object")
    return event


def extract_purchase(session: Any) -> tuple[str, str]:
    """Return (user_id, price_id) from a checkout session object.

    The expanded line item's price wins; metadata.priceId covers webhooks where
    Stripe did not include line_items.
    """
    if not isinstance(session, dict):
        raise MalformedEventError("Event has no session object")
    metadata = session.get("metadata") or {}
    user_id = metadata.get("userId") if isinstance(metadata, dict) else None
    if not isinstance(user_id, str) or not user_id:
        raise MalformedEventError("No userId in session metadata")

    price_id = None
    line_items = session.get("line_items") or {}
    items = line_items.get("data") if isinstance(line_items, dict) else None
    if isinstance(items, list) and items and isinstance(items[0], dict):
        price = items[0].get("price") or {}
        if isinstance(price, dict):
            price_id = price.get("id")
    if not price_id and isinstance(metadata, dict):
        price_id = metadata.get("priceId")
    if not isinstance(price_id, str) or not price_id:
        raise MalformedEventError("No price id found in session")
    return user_id, price_id


async def handle_webhook(payload: bytes, signature: str | None, store: BalanceStore) -> dict:
    """Verify a Stripe webhook and credit the buyer for checkout.session.completed.

    Raises InvalidSignatureError, MalformedEventError or UnknownPriceIdError for
    deliveries that should not be retried, and StoreUnavailableError when the
    balance could not be updated.
    """
    settings = get_settings()
    if not settings.stripe_webhook_secret:
        log.error("stripe_webhook_secret_missing")
        raise ServiceUnavailableError("Webhook secret not configured")
    verify_stripe_signature(payload, signature, settings.stripe_webhook_secret)

    event = _parse_event(payload)
    event_id = event.get("id")
    event_type = event.get("type")
    bind_stripe_event(event_id, event_type)
    if event_type != CHECKOUT_COMPLETED:
        log.info("stripe_event_ignored")
        return {"received": True}

    data = event.get("data")
    session = data.get("object") if isinstance(data, dict) else None
    user_id, price_id = extract_purchase(session)
    try:
        credits = credits_service.resolve_credits(price_id)
    except UnknownPriceIdError:
        # A paying customer got nothing; operators must fix CREDIT_PACKS and credit by hand.
        log.error("unknown_price_id", price_id=price_id, user_id=user_id)
        raise

    claimed = False
    if settings.stripe_dedupe_events:
        if not isinstance(event_id, str) or not event_id:
            raise MalformedEventError("Event has no id")
        if not await store.claim_event(event_id, event_type):
            log.info("stripe_event_duplicate", user_id=user_id)
            return {"received": True, "duplicate": True}
        claimed = True

    try:
        balance_after = await credits_service.award_credits(
            user_id,
            credits,
            "purchase",
            store,
            reference_type="stripe_event",
            reference_id=event_id,
            metadata={"price_id": price_id, "checkout_session_id": session.get("id")},
        )
    except StoreUnavailableError:
        log.error("credits_award_failed", user_id=user_id, credits=credits)
        if claimed:
            try:
                await store.release_event(event_id)
            except StoreUnavailableError:
                log.exception("stripe_event_release_failed")
        raise

    log.info("credits_awarded", user_id=user_id, credits=credits, price_id=price_id, balance_after=balance_after)
    return {"received": True}
