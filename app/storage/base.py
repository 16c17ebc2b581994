from abc import ABC, abstractmethod
from datetime import datetime
from functools import lru_cache
from typing import Any

from pydantic import BaseModel, Field

from app.core.config import get_settings


class LedgerRecord(BaseModel):
    """One credit movement as returned by any backend."""
    user_id: str
    amount: int
    balance_after: int
    reason: str
    reference_type: str | None = None
    reference_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class BalanceStore(ABC):
    """User credit balances and the records that go with them.

    Backends raise StoreUnavailableError for infrastructure failures.
    """

    @abstractmethod
    async def increment(self, user_id: str, amount: int) -> int:
        """Atomically add amount to the user's balance (creating it at 0); return the new balance."""
        ...

    @abstractmethod
    async def get_balance(self, user_id: str) -> int:
        """Current balance, 0 if the user has none."""
        ...

    @abstractmethod
    async def append_ledger(self, record: LedgerRecord) -> None:
        ...

    @abstractmethod
    async def list_ledger(self, user_id: str, limit: int, offset: int) -> list[LedgerRecord]:
        """Ledger for a user, newest first."""
        ...

    @abstractmethod
    async def claim_event(self, event_id: str, event_type: str) -> bool:
        """Record an event id as processed; False if it already was."""
        ...

    @abstractmethod
    async def release_event(self, event_id: str) -> None:
        """Undo claim_event so a redelivery can be processed."""
        ...

    @abstractmethod
    async def get_customer_id(self, user_id: str) -> str | None:
        ...

    @abstractmethod
    async def set_customer_id(self, user_id: str, customer_id: str) -> None:
        ...


@lru_cache
def get_balance_store() -> BalanceStore:
    settings = get_settings()
    if settings.balance_store_backend == "memory":
        from app.storage.memory import MemoryBalanceStore
        return MemoryBalanceStore()
    from app.storage.mongo import MongoBalanceStore
    return MongoBalanceStore()
