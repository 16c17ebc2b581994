from datetime import datetime

from beanie import UpdateResponse
from beanie.operators import Inc, Set
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.core.exceptions import StoreUnavailableError
from app.core.logging import get_logger
from app.models.credit_balance import CreditBalance
from app.models.credit_ledger import CreditLedgerEntry
from app.models.processed_stripe_event import ProcessedStripeEvent
from app.models.stripe_customer import StripeCustomer
from app.storage.base import BalanceStore, LedgerRecord

log = get_logger(__name__)


class MongoBalanceStore(BalanceStore):
    """Beanie-backed store. Balances change only via a single-document $inc upsert."""

    async def increment(self, user_id: str, amount: int) -> int:
        try:
            doc = await CreditBalance.find_one(CreditBalance.user_id == user_id).update(
                Inc({CreditBalance.balance: amount}),
                Set({CreditBalance.updated_at: datetime.utcnow()}),
                upsert=True,
                response_type=UpdateResponse.NEW_DOCUMENT,
            )
        except PyMongoError as e:
            log.warning("balance_increment_failed", user_id=user_id, amount=amount, error=str(e))
            raise StoreUnavailableError() from e
        return doc.balance

    async def get_balance(self, user_id: str) -> int:
        try:
            bal = await CreditBalance.find_one(CreditBalance.user_id == user_id)
        except PyMongoError as e:
            raise StoreUnavailableError() from e
        return bal.balance if bal else 0

    async def append_ledger(self, record: LedgerRecord) -> None:
        try:
            await CreditLedgerEntry(**record.model_dump()).insert()
        except PyMongoError as e:
            raise StoreUnavailableError() from e

    async def list_ledger(self, user_id: str, limit: int, offset: int) -> list[LedgerRecord]:
        try:
            entries = (
                await CreditLedgerEntry.find(CreditLedgerEntry.user_id == user_id)
                .sort(-CreditLedgerEntry.created_at)
                .skip(offset)
                .limit(limit)
                .to_list()
            )
        except PyMongoError as e:
            raise StoreUnavailableError() from e
        return [LedgerRecord(**e.model_dump(exclude={"id", "revision_id"})) for e in entries]

    async def claim_event(self, event_id: str, event_type: str) -> bool:
        try:
            await ProcessedStripeEvent(event_id=event_id, event_type=event_type).insert()
        except DuplicateKeyError:
            return False
        except PyMongoError as e:
            raise StoreUnavailableError() from e
        return True

    async def release_event(self, event_id: str) -> None:
        try:
            await ProcessedStripeEvent.find_one(ProcessedStripeEvent.event_id == event_id).delete()
        except PyMongoError as e:
            raise StoreUnavailableError() from e

    async def get_customer_id(self, user_id: str) -> str | None:
        try:
            doc = await StripeCustomer.find_one(StripeCustomer.user_id == user_id)
        except PyMongoError as e:
            raise StoreUnavailableError() from e
        return doc.customer_id if doc else None

    async def set_customer_id(self, user_id: str, customer_id: str) -> None:
        try:
            await StripeCustomer.find_one(StripeCustomer.user_id == user_id).upsert(
                Set({StripeCustomer.customer_id: customer_id}),
                on_insert=StripeCustomer(user_id=user_id, customer_id=customer_id),
            )
        except PyMongoError as e:
            raise StoreUnavailableError() from e
