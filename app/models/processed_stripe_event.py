from datetime import datetime

from beanie import Document, Indexed
from pydantic import Field


class ProcessedStripeEvent(Document):
    """Stripe event ids already fulfilled; the unique index makes the claim atomic."""
    event_id: Indexed(str, unique=True)
    event_type: str
    processed_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "processed_stripe_events"
