from datetime import datetime

from beanie import Document
from pydantic import Field


class CreditLedgerEntry(Document):
    user_id: str
    amount: int  # positive = credit, negative = debit
    balance_after: int
    reason: str  # purchase
    reference_type: str | None = None  # stripe_event, stripe_checkout_session
    reference_id: str | None = None
    metadata: dict = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "credit_ledger"
        indexes = [
            [("user_id", 1), ("created_at", -1)],
            [("reference_type", 1), ("reference_id", 1)],
        ]
