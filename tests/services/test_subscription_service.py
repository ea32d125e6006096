from datetime import timedelta

import pytest

from backspace.models.subscription import PlanType, SubscriptionStatus
from backspace.services.subscription_service import SubscriptionService
from backspace.utils.billing_validation import InvalidAmount, InvalidState


@pytest.mark.parametrize("plan, days", [("weekly", 7), ("half-monthly", 15), ("monthly", 30)])
def test_purchase_sets_window(now, plan, days):
    purchase = SubscriptionService.purchase("cust-1", plan, 40000, now, now)

    sub = purchase.subscription
    assert sub.plan_type == PlanType(plan)
    assert sub.status == SubscriptionStatus.ACTIVE
    assert sub.end_date - sub.start_date == timedelta(days=days)
    assert sub.is_active(now)
    assert sub.days_remaining(now) == days


def test_purchase_issues_subscription_invoice(now):
    purchase = SubscriptionService.purchase("cust-1", "monthly", 60000, now, now)

    invoice = purchase.invoice
    assert invoice.invoice_number.startswith("SUB-20261019-")
    assert invoice.total == 60000
    assert invoice.line_items[0].description == "Subscription: monthly plan"
    assert invoice.subscription_id == purchase.subscription.id
    assert purchase.subscription.invoice_id == invoice.id
    assert invoice.due_date == now


def test_purchase_deactivates_current_plans(now):
    first = SubscriptionService.purchase("cust-1", "weekly", 15000, now, now).subscription
    someone_else = SubscriptionService.purchase("cust-2", "weekly", 15000, now, now).subscription

    purchase = SubscriptionService.purchase(
        "cust-1", "monthly", 60000, now, now, existing=[first, someone_else]
    )

    assert [sub.id for sub in purchase.deactivated] == [first.id]
    assert purchase.deactivated[0].status == SubscriptionStatus.INACTIVE
    assert first.status == SubscriptionStatus.ACTIVE


def test_purchase_rejects_unknown_plan_and_price(now):
    with pytest.raises(InvalidAmount):
        SubscriptionService.purchase("cust-1", "yearly", 60000, now, now)
    with pytest.raises(InvalidAmount):
        SubscriptionService.purchase("cust-1", "monthly", 0, now, now)


def test_cancel_and_reactivate(now):
    sub = SubscriptionService.purchase("cust-1", "monthly", 60000, now, now).subscription

    cancelled = SubscriptionService.cancel(sub)
    assert cancelled.status == SubscriptionStatus.INACTIVE
    assert not cancelled.is_active(now)
    with pytest.raises(InvalidState):
        SubscriptionService.cancel(cancelled)

    reactivated = SubscriptionService.reactivate(cancelled, now + timedelta(days=3))
    assert reactivated.is_active(now + timedelta(days=3))
    with pytest.raises(InvalidState):
        SubscriptionService.reactivate(reactivated, now)


def test_reactivate_after_window(now):
    sub = SubscriptionService.purchase("cust-1", "weekly", 15000, now, now).subscription
    cancelled = SubscriptionService.cancel(sub)

    with pytest.raises(InvalidState):
        SubscriptionService.reactivate(cancelled, now + timedelta(days=8))


def test_days_remaining_rounds_up(now):
    sub = SubscriptionService.purchase("cust-1", "weekly", 15000, now, now).subscription

    assert sub.days_remaining(now + timedelta(days=6, hours=1)) == 1
    assert sub.days_remaining(now + timedelta(days=7)) == 0
    assert sub.days_remaining(now + timedelta(days=30)) == 0
