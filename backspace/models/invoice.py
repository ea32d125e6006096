"""
Invoice model - a customer-facing bill composed of line items.

Design principles:
- All amounts in integer minor units (piasters)
- total is fixed at creation; only paid_amount and status move afterwards
- Payments are appended, never edited

Invariants:
- total == sum(line_items.amount)
- 0 <= paid_amount <= total
- status = paid iff paid_amount == total
- status = unpaid whenever paid_amount < total and not cancelled
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from backspace.models.base import DocumentModel, UTCDateTime


class InvoiceStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    TRANSFER = "transfer"


class LineItem(BaseModel):
    description: str
    quantity: int = 1
    rate: int = 0    # minor units per unit
    amount: int      # minor units


class Payment(BaseModel):
    """A payment as applied to one invoice."""
    invoice_id: str
    amount: int = Field(..., gt=0)
    method: PaymentMethod = PaymentMethod.CASH
    date: UTCDateTime
    notes: str = ""


class Invoice(DocumentModel):
    customer_id: str
    invoice_number: str
    session_id: Optional[str] = None
    subscription_id: Optional[str] = None

    line_items: List[LineItem] = []
    total: int = Field(..., ge=0)
    paid_amount: int = Field(default=0, ge=0)
    status: InvoiceStatus = InvoiceStatus.UNPAID

    due_date: UTCDateTime
    created_at: UTCDateTime
    paid_at: Optional[UTCDateTime] = None
    cancelled_at: Optional[UTCDateTime] = None
    payments: List[Payment] = []

    def outstanding(self) -> int:
        """How much remains unpaid."""
        return self.total - self.paid_amount

    def is_open(self) -> bool:
        """Check if payments can still be applied."""
        return self.status == InvoiceStatus.UNPAID and self.outstanding() > 0
