from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from backspace.models.invoice import Invoice, LineItem, PaymentMethod
from backspace.schemas.money import MoneyInput


class InvoiceCreate(BaseModel):
    """Standalone charge, outside any session."""
    customer_id: str
    line_items: List[LineItem]
    due_date: Optional[datetime] = None


class PaymentCreate(MoneyInput):
    method: PaymentMethod = PaymentMethod.CASH
    date: Optional[datetime] = None
    notes: str = ""


class BulkPaymentCreate(MoneyInput):
    customer_id: str
    invoice_ids: Optional[List[str]] = None  # default: every unpaid invoice of the customer
    method: PaymentMethod = PaymentMethod.CASH
    date: Optional[datetime] = None
    notes: str = ""


class BulkPaymentResponse(BaseModel):
    invoices: List[Invoice]
    allocated: int
    unallocated: int
