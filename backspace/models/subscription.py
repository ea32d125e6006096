import math
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from pydantic import Field

from backspace.models.base import DocumentModel, UTCDateTime, ensure_utc


class PlanType(str, Enum):
    WEEKLY = "weekly"
    HALF_MONTHLY = "half-monthly"
    MONTHLY = "monthly"


PLAN_DURATION_DAYS = {
    PlanType.WEEKLY: 7,
    PlanType.HALF_MONTHLY: 15,
    PlanType.MONTHLY: 30,
}


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"  # explicitly deactivated / cancelled


class Subscription(DocumentModel):
    """
    A prepaid plan that offsets session time cost.

    Whether a subscription is active is a function of time:
    - active iff start_date <= now <= end_date and not deactivated
    - expiry is never stored, it is derived
    """
    customer_id: str
    plan_type: PlanType
    price: int = Field(..., ge=0)  # minor units
    start_date: UTCDateTime
    end_date: UTCDateTime
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    invoice_id: Optional[str] = None

    def is_active(self, now: datetime) -> bool:
        if self.status != SubscriptionStatus.ACTIVE:
            return False
        return self.start_date <= ensure_utc(now) <= self.end_date

    def days_remaining(self, now: datetime) -> int:
        remaining = self.end_date - ensure_utc(now)
        if remaining <= timedelta(0):
            return 0
        return math.ceil(remaining / timedelta(days=1))
