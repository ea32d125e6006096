from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from backspace.models.subscription import PlanType, Subscription


class SubscriptionCreate(BaseModel):
    customer_id: str
    plan_type: PlanType
    price: int  # minor units
    start_date: Optional[datetime] = None


class SubscriptionResponse(BaseModel):
    """Subscription with the time-derived fields evaluated at request time."""
    subscription: Subscription
    is_active: bool
    days_remaining: int

    @classmethod
    def at(cls, subscription: Subscription, now: datetime) -> "SubscriptionResponse":
        return cls(
            subscription=subscription,
            is_active=subscription.is_active(now),
            days_remaining=subscription.days_remaining(now),
        )
