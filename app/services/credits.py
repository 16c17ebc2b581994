"""Credit packs, balance reads, and credit awards against the balance store."""

from typing import Any

from app.core.config import get_settings
from app.core.exceptions import BadRequestError, StoreUnavailableError, UnknownPriceIdError
from app.core.logging import get_logger
from app.core.pagination import paginate
from app.storage.base import BalanceStore, LedgerRecord

log = get_logger(__name__)

REASONS = ("purchase",)

# Display copy for the pricing page; credit amounts always come from settings.
PACK_DETAILS: dict[str, dict[str, str]] = {
    "price_1RlSDORragUkhvY8W5M9kAHI": {
        "name": "The Erikson Expedition",
        "description": "Perfect for crafting detailed scenes and exploring unique visual styles with precision.",
    },
    "price_1RlSQRragUkhvY8QneFCSGJ": {
        "name": "The Polo Passage",
        "description": "For ambitious storytellers looking to build intricate narratives and bring grander visions to life. (approx. 16% Extra)",
    },
    "price_1RlSFragUkhvY8umWtkb81": {
        "name": "The Magellan Voyage",
        "description": "The ultimate toolkit for the visionary. Ample credits for large-scale productions and extensive AI exploration. (30% Extra)",
    },
}


def resolve_credits(price_id: str) -> int:
    """Credits awarded for one purchase of price_id."""
    credits = get_settings().credits_per_price.get(price_id)
    if not credits:
        raise UnknownPriceIdError(price_id)
    return credits


def is_known_price(price_id: str) -> bool:
    return price_id in get_settings().credits_per_price


def list_packs() -> list[dict[str, Any]]:
    packs = []
    for price_id, credits in get_settings().credits_per_price.items():
        details = PACK_DETAILS.get(price_id, {})
        packs.append(
            {
                "price_id": price_id,
                "name": details.get("name") or f"{credits:,} Credits",
                "credits": credits,
                "description": details.get("description", ""),
            }
        )
    return sorted(packs, key=lambda p: p["credits"])


async def get_balance(user_id: str, store: BalanceStore) -> int:
    """Return current balance for user (0 if no record)."""
    return await store.get_balance(user_id)


async def award_credits(
    user_id: str,
    amount: int,
    reason: str,
    store: BalanceStore,
    reference_type: str | None = None,
    reference_id: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> int:
    """
    Atomically add credits to the user's balance, then record a ledger entry.
    Returns the balance after the increment.
    StoreUnavailableError from the increment propagates; nothing has been applied in that case.
    A ledger failure after a successful increment is logged, not raised, because the credits are already granted.
    """
    if reason not in REASONS:
        raise BadRequestError(f"Invalid reason: {reason}")
    if amount <= 0:
        raise BadRequestError("Credit award must be positive")

    balance_after = await store.increment(user_id, amount)

    record = LedgerRecord(
        user_id=user_id,
        amount=amount,
        balance_after=balance_after,
        reason=reason,
        reference_type=reference_type,
        reference_id=reference_id,
        metadata=metadata or {},
    )
    try:
        await store.append_ledger(record)
    except StoreUnavailableError:
        log.exception(
            "ledger_append_failed",
            user_id=user_id,
            amount=amount,
            reference_type=reference_type,
            reference_id=reference_id,
        )
    return balance_after


async def list_ledger(user_id: str, store: BalanceStore, limit: int = 50, offset: int = 0) -> list[LedgerRecord]:
    limit, offset = paginate(limit, offset)
    return await store.list_ledger(user_id, limit, offset)
