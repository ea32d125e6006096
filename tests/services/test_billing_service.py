from datetime import datetime, timedelta

import pytest

from backspace.core import money
from backspace.models.invoice import InvoiceStatus, LineItem, PaymentMethod
from backspace.models.resource import Resource
from backspace.models.subscription import PlanType, Subscription
from backspace.services.billing_service import BillingService
from backspace.services.invoice_ledger import InvoiceLedger
from backspace.services.session_accrual import SessionAccrual
from backspace.services.subscription_coverage import SubscriptionCoverage
from backspace.services.subscription_service import SubscriptionService


def test_visitor_session_end_to_end(resource, coffee, now):
    session, occupied = BillingService.start_session("cust-1", resource, [], now)
    session, _ = SessionAccrual.add_consumption(session, coffee, 1, now)
    end = now + timedelta(minutes=90)

    assert BillingService.get_current_cost(session, end) == 3000

    closure = BillingService.end_session(session, occupied, end)
    invoice = BillingService.invoice_for_closure(closure, end)

    assert invoice.total == 4500
    assert invoice.session_id == session.id
    assert invoice.due_date == end + timedelta(days=7)
    assert closure.resource.is_available is True

    invoice = BillingService.record_payment(
        invoice, money.to_minor("20.00"), PaymentMethod.CASH, end
    )

    assert invoice.paid_amount == 2000
    assert invoice.status == InvoiceStatus.UNPAID
    assert invoice.outstanding() == 2500
    assert BillingService.get_balance([invoice]) == -2500


def test_create_invoice_due_dates(now):
    items = [LineItem(description="Printing", quantity=10, rate=50, amount=500)]

    default_due = BillingService.create_invoice("cust-1", items, now)
    explicit_due = BillingService.create_invoice("cust-1", items, now, due_date=now + timedelta(days=1))

    assert default_due.due_date == now + timedelta(days=7)
    assert explicit_due.due_date == now + timedelta(days=1)


def test_record_bulk_payment(make_invoice, now):
    invoices = [make_invoice(1000), make_invoice(1000)]
    updated = BillingService.record_bulk_payment(invoices, 1500, PaymentMethod.TRANSFER, now)

    assert sum(inv.paid_amount for inv in updated) == 1500
    assert BillingService.get_balance(updated) == -500


@pytest.fixture
def naive_now():
    return datetime(2026, 10, 19, 10, 0)


def test_naive_now_with_active_plan(naive_now, now):
    monthly = Subscription(
        customer_id="c",
        plan_type=PlanType.MONTHLY,
        price=60000,
        start_date=now - timedelta(days=2),
        end_date=now + timedelta(days=28),
    )

    session, occupied = BillingService.start_session(
        "c", Resource(name="Desk 2", rate_per_hour=2000), [monthly], naive_now
    )

    assert session.is_subscription_covered is True
    assert session.started_at == now + timedelta(hours=1)
    assert BillingService.get_current_cost(session, naive_now + timedelta(hours=3)) == 0

    closure = BillingService.end_session(session, occupied, naive_now + timedelta(hours=3))
    assert closure.draft.time_cost == 0
    assert closure.draft.duration_minutes == 180


def test_naive_dates_on_invoices_and_payments(make_invoice, naive_now, now):
    items = [LineItem(description="Printing", quantity=10, rate=50, amount=500)]
    invoice = BillingService.create_invoice("cust-1", items, naive_now, due_date=datetime(2026, 10, 20))
    assert invoice.due_date.tzinfo is not None
    assert invoice.due_date > invoice.created_at

    invoice = BillingService.record_payment(invoice, 200, PaymentMethod.CASH, naive_now)
    assert invoice.payments[0].date == now + timedelta(hours=1)

    paid = BillingService.record_bulk_payment([make_invoice(300)], 300, PaymentMethod.CARD, naive_now)
    assert paid[0].status == InvoiceStatus.PAID

    cancelled = InvoiceLedger.cancel(make_invoice(100), naive_now)
    assert cancelled.cancelled_at == now + timedelta(hours=1)


def test_naive_dates_on_subscriptions(naive_now, now):
    purchase = SubscriptionService.purchase("cust-1", "weekly", 20000, naive_now, naive_now)
    subscription = purchase.subscription

    assert subscription.start_date == now + timedelta(hours=1)
    assert subscription.is_active(naive_now)
    assert subscription.days_remaining(naive_now) == 7
    assert SubscriptionCoverage.resolve([subscription], naive_now, "cust-1").is_covered

    cancelled = SubscriptionService.cancel(subscription)
    assert SubscriptionService.reactivate(cancelled, naive_now).is_active(naive_now)
