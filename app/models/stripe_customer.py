from datetime import datetime

from beanie import Document, Indexed
from pydantic import Field


class StripeCustomer(Document):
    """GenScout user id -> Stripe customer id for the billing portal."""
    user_id: Indexed(str, unique=True)
    customer_id: str
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "stripe_customers"
