"""
Session model - an open occupation of a resource by a customer.

Design principles:
- Rate, cap and subscription coverage are snapshotted at start
- Inventory consumptions carry the unit price at the time they were added
- A session only lives while open; closing turns it into invoice line items
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from backspace.models.base import DocumentModel, UTCDateTime, new_id


class SessionStatus(str, Enum):
    ACTIVE = "active"
    ENDED = "ended"


class InventoryConsumption(BaseModel):
    consumption_id: str = Field(default_factory=new_id)
    item_id: str
    item_name: str
    quantity: int = Field(..., gt=0)
    unit_price: int = Field(..., ge=0)  # minor units, price when added
    added_at: Optional[UTCDateTime] = None

    @property
    def amount(self) -> int:
        return self.quantity * self.unit_price


class Session(DocumentModel):
    customer_id: str
    resource_id: str
    resource_name: str = ""
    started_at: UTCDateTime
    resource_rate_at_start: int = Field(..., ge=0)
    resource_max_price_at_start: Optional[int] = Field(default=None, ge=0)
    is_subscription_covered: bool = False
    subscription_id: Optional[str] = None
    inventory_consumptions: List[InventoryConsumption] = []
    status: SessionStatus = SessionStatus.ACTIVE
    ended_at: Optional[UTCDateTime] = None

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.ACTIVE
