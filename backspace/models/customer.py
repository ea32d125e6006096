from enum import Enum
from typing import Optional

from backspace.models.base import DocumentModel, UTCDateTime

VISITOR = "visitor"


class Customer(DocumentModel):
    """
    A customer of the space.

    `balance` is a cache of AccountBalance.compute_balance over the customer's
    invoices and adjustments; it is never the source of truth.
    """
    name: str
    phone: str = ""
    customer_type: str = VISITOR  # visitor | weekly | half-monthly | monthly
    balance: int = 0  # signed minor units: negative owes, positive credit
    active_subscription_id: Optional[str] = None


class AdjustmentKind(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class BalanceAdjustment(DocumentModel):
    """A manual change to a customer's balance, outside any invoice."""
    customer_id: str
    amount: int  # signed minor units
    kind: AdjustmentKind
    reason: str = ""
    created_at: UTCDateTime
