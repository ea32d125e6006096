import logging
from datetime import datetime, timedelta
from typing import Iterable, List

from pydantic import BaseModel

from backspace.core import money
from backspace.core.config import settings
from backspace.models.base import ensure_utc
from backspace.models.invoice import Invoice, LineItem
from backspace.models.subscription import (
    PLAN_DURATION_DAYS,
    PlanType,
    Subscription,
    SubscriptionStatus,
)
from backspace.services.invoice_ledger import SUBSCRIPTION_PREFIX, InvoiceLedger
from backspace.utils.billing_validation import InvalidAmount, InvalidState, validate_positive_amount

logger = logging.getLogger(__name__)


class SubscriptionPurchase(BaseModel):
    subscription: Subscription
    invoice: Invoice
    deactivated: List[Subscription]


class SubscriptionService:
    @staticmethod
    def purchase(
        customer_id: str,
        plan_type: str,
        price: int,
        start_date: datetime,
        now: datetime,
        existing: Iterable[Subscription] = (),
    ) -> SubscriptionPurchase:
        """
        Sell a plan: deactivate the customer's current plans, create the new
        subscription and issue its invoice.
        """
        start_date = ensure_utc(start_date)
        now = ensure_utc(now)
        try:
            plan = PlanType(plan_type)
        except ValueError:
            raise InvalidAmount(
                f"Invalid plan type: {plan_type} (must be weekly, half-monthly, or monthly)"
            )
        validate_positive_amount(price, "Subscription price")

        deactivated = [
            sub.model_copy(update={"status": SubscriptionStatus.INACTIVE})
            for sub in existing
            if sub.customer_id == customer_id and sub.status == SubscriptionStatus.ACTIVE
        ]

        subscription = Subscription(
            customer_id=customer_id,
            plan_type=plan,
            price=price,
            start_date=start_date,
            end_date=start_date + timedelta(days=PLAN_DURATION_DAYS[plan]),
            status=SubscriptionStatus.ACTIVE,
        )
        invoice = InvoiceLedger.create(
            customer_id,
            [LineItem(description=f"Subscription: {plan.value} plan", quantity=1, rate=price, amount=price)],
            due_date=now + timedelta(days=settings.SUBSCRIPTION_INVOICE_DUE_DAYS),
            now=now,
            prefix=SUBSCRIPTION_PREFIX,
            subscription_id=subscription.id,
        )
        subscription = subscription.model_copy(update={"invoice_id": invoice.id})

        logger.info(
            "Customer %s bought %s plan for %s (%s deactivated)",
            customer_id, plan.value, money.format_major(price), len(deactivated)
        )
        return SubscriptionPurchase(subscription=subscription, invoice=invoice, deactivated=deactivated)

    @staticmethod
    def cancel(subscription: Subscription) -> Subscription:
        if subscription.status == SubscriptionStatus.INACTIVE:
            raise InvalidState(f"Subscription {subscription.id} is already inactive")
        logger.info("Subscription %s deactivated", subscription.id)
        return subscription.model_copy(update={"status": SubscriptionStatus.INACTIVE})

    @staticmethod
    def reactivate(subscription: Subscription, now: datetime) -> Subscription:
        now = ensure_utc(now)
        if subscription.status == SubscriptionStatus.ACTIVE:
            raise InvalidState(f"Subscription {subscription.id} is already active")
        if now > subscription.end_date:
            raise InvalidState(f"Subscription {subscription.id} ended on {subscription.end_date.date()}")
        logger.info("Subscription %s reactivated", subscription.id)
        return subscription.model_copy(update={"status": SubscriptionStatus.ACTIVE})
