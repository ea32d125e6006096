from typing import Optional

from pydantic import BaseModel

from backspace.models.invoice import Invoice
from backspace.services.session_accrual import InvoiceDraft


class SessionStart(BaseModel):
    customer_id: str
    resource_id: str


class ConsumptionCreate(BaseModel):
    item_id: str
    quantity: int


class ConsumptionUpdate(BaseModel):
    quantity: int  # zero or less removes the consumption


class SessionCostResponse(BaseModel):
    """Live cost of an open session at the moment of the request."""
    session_id: str
    elapsed_minutes: int
    is_subscription_covered: bool
    time_cost: int
    inventory_cost: int
    total: int


class SessionEndResponse(BaseModel):
    session_id: str
    draft: InvoiceDraft
    invoice: Optional[Invoice] = None  # None when nothing was billable
