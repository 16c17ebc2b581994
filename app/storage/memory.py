"""In-process balance store for local development and tests.

Every method finishes without awaiting, so on one event loop each call is atomic.
"""

from app.storage.base import BalanceStore, LedgerRecord


class MemoryBalanceStore(BalanceStore):
    def __init__(self) -> None:
        self.balances: dict[str, int] = {}
        self.ledger: list[LedgerRecord] = []
        self.processed_events: dict[str, str] = {}
        self.customers: dict[str, str] = {}

    async def increment(self, user_id: str, amount: int) -> int:
        self.balances[user_id] = self.balances.get(user_id, 0) + amount
        return self.balances[user_id]

    async def get_balance(self, user_id: str) -> int:
        return self.balances.get(user_id, 0)

    async def append_ledger(self, record: LedgerRecord) -> None:
        self.ledger.append(record)

    async def list_ledger(self, user_id: str, limit: int, offset: int) -> list[LedgerRecord]:
        entries = [r for r in reversed(self.ledger) if r.user_id == user_id]
        return entries[offset:offset + limit]

    async def claim_event(self, event_id: str, event_type: str) -> bool:
        if event_id in self.processed_events:
            return False
        self.processed_events[event_id] = event_type
        return True

    async def release_event(self, event_id: str) -> None:
        self.processed_events.pop(event_id, None)

    async def get_customer_id(self, user_id: str) -> str | None:
        return self.customers.get(user_id)

    async def set_customer_id(self, user_id: str, customer_id: str) -> None:
        self.customers[user_id] = customer_id
