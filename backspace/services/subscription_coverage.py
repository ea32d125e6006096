import logging
from datetime import datetime
from typing import Iterable, List, Optional

from pydantic import BaseModel

from backspace.models.base import ensure_utc
from backspace.models.customer import VISITOR
from backspace.models.subscription import Subscription

logger = logging.getLogger(__name__)


class Coverage(BaseModel):
    is_covered: bool
    subscription_id: Optional[str] = None


class SubscriptionCoverage:
    @staticmethod
    def active_subscriptions(
        subscriptions: Iterable[Subscription],
        now: datetime,
        customer_id: Optional[str] = None,
    ) -> List[Subscription]:
        """
        Active subscriptions at `now`, in tie-break order.

        Order: earliest end_date first, then earliest start_date, then id,
        so the pick never depends on how the data layer listed them.
        """
        now = ensure_utc(now)
        active = [
            sub for sub in subscriptions
            if sub.is_active(now) and (customer_id is None or sub.customer_id == customer_id)
        ]
        active.sort(key=lambda sub: (sub.end_date, sub.start_date, sub.id))
        return active

    @staticmethod
    def resolve(
        subscriptions: Iterable[Subscription],
        now: datetime,
        customer_id: Optional[str] = None,
    ) -> Coverage:
        """Decide whether a session starting at `now` is covered."""
        active = SubscriptionCoverage.active_subscriptions(subscriptions, now, customer_id)
        if not active:
            return Coverage(is_covered=False)

        if len(active) > 1:
            logger.info(
                "Customer %s has %d active subscriptions; using %s (ends %s)",
                active[0].customer_id, len(active), active[0].id, active[0].end_date.isoformat()
            )
        return Coverage(is_covered=True, subscription_id=active[0].id)

    @staticmethod
    def customer_type_for(subscriptions: Iterable[Subscription], now: datetime) -> str:
        active = SubscriptionCoverage.active_subscriptions(subscriptions, now)
        if not active:
            return VISITOR
        return active[0].plan_type.value
