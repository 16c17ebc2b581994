import hashlib
import hmac
import json
import os
import time
from typing import Any, AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# In-memory store and test Stripe secrets; must be set before app.main is imported
os.environ.setdefault("BALANCE_STORE_BACKEND", "memory")
os.environ.setdefault("SECRET_KEY", "test-secret-key-min-32-characters-long")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("APP_URL", "https://genscout.test")

WEBHOOK_SECRET = os.environ["STRIPE_WEBHOOK_SECRET"]
KNOWN_PRICE_ID = "price_1RlSDORragUkhvY8W5M9kAHI"


def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Stripe-Signature header value for payload, as Stripe computes it."""
    ts = int(time.time()) if timestamp is None else timestamp
    signed = f"{ts}.".encode() + payload
    sig = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={sig}"


def make_event(
    event_type: str = "checkout.session.completed",
    user_id: str | None = "uid123",
    price_id: str | None = KNOWN_PRICE_ID,
    event_id: str = "evt_test_1",
    line_items: bool = True,
) -> dict[str, Any]:
    metadata: dict[str, Any] = {}
    if user_id is not None:
        metadata["userId"] = user_id
    session: dict[str, Any] = {"id": "cs_test_1", "object": "checkout.session", "metadata": metadata}
    if price_id is not None:
        if line_items:
            session["line_items"] = {"object": "list", "data": [{"price": {"id": price_id}}]}
        else:
            metadata["priceId"] = price_id
    return {"id": event_id, "object": "event", "type": event_type, "data": {"object": session}}


def encode_event(event: dict[str, Any]) -> bytes:
    return json.dumps(event).encode()


class RecordingLogger:
    """Stand-in for a structlog logger that keeps (level, event, kwargs)."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, dict[str, Any]]] = []

    def __getattr__(self, level: str):
        def _log(event: str, **kw: Any) -> None:
            self.calls.append((level, event, kw))
        return _log

    def events(self, level: str) -> list[str]:
        return [event for lvl, event, _ in self.calls if lvl == level]


@pytest.fixture
def store():
    from app.storage.memory import MemoryBalanceStore
    return MemoryBalanceStore()


@pytest_asyncio.fixture
async def client(store) -> AsyncGenerator[AsyncClient, None]:
    from app.main import app
    from app.storage.base import get_balance_store
    app.dependency_overrides[get_balance_store] = lambda: store
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def session_cookie():
    from app.core.security import create_session_cookie

    def _make(user_id: str = "uid123", email: str | None = "scout@example.com") -> str:
        return create_session_cookie({"user_id": user_id, "email": email})
    return _make
