from datetime import datetime

from beanie import Document, Indexed
from pydantic import Field


class CreditBalance(Document):
    """Current balance per user; only ever changed with $inc."""
    user_id: Indexed(str, unique=True)
    balance: int = 0
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "credit_balances"
