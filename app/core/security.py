import hashlib
from typing import Any

import stripe
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from app.core.config import get_settings
from app.core.exceptions import InvalidSignatureError

SESSION_MAX_AGE_SECONDS = 7 * 24 * 3600
WEBHOOK_TOLERANCE_SECONDS = 300  # Stripe default; older signed timestamps are rejected


def get_session_serializer() -> URLSafeTimedSerializer:
    settings = get_settings()
    return URLSafeTimedSerializer(
        settings.secret_key,
        salt="genscout-session",
        signer_kwargs={"key_derivation": "hmac", "digest_method": hashlib.sha256},
    )


def create_session_cookie(payload: dict[str, Any]) -> str:
    """Sign a session payload. Issued by the sign-in service; used here by tests and tooling."""
    serializer = get_session_serializer()
    return serializer.dumps(payload)


def load_session_cookie(cookie_value: str) -> dict[str, Any] | None:
    serializer = get_session_serializer()
    try:
        return serializer.loads(cookie_value, max_age=SESSION_MAX_AGE_SECONDS)
    except (BadSignature, SignatureExpired):
        return None


def verify_stripe_signature(payload: bytes, signature: str | None, secret: str) -> None:
    """Check the Stripe-Signature header against the raw body.

    Only the header and the HMAC are inspected; the body is not decoded as JSON here.
    """
    if not signature:
        raise InvalidSignatureError("Missing Stripe-Signature header")
    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidSignatureError("Webhook body is not valid UTF-8") from e
    try:
        stripe.WebhookSignature.verify_header(text, signature, secret, tolerance=WEBHOOK_TOLERANCE_SECONDS)
    except stripe.SignatureVerificationError as e:
        raise InvalidSignatureError(f"Invalid webhook signature: {e.user_message or e}") from e
