from app.models.credit_balance import CreditBalance
from app.models.credit_ledger import CreditLedgerEntry
from app.models.processed_stripe_event import ProcessedStripeEvent
from app.models.stripe_customer import StripeCustomer

__all__ = [
    "CreditBalance",
    "CreditLedgerEntry",
    "ProcessedStripeEvent",
    "StripeCustomer",
]
