"""
BillingService - the functional interface the rest of the application calls.

All amounts in and out are integer minor units. `now` is always supplied by
the caller; nothing here reads the clock or touches storage.
"""

from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

from backspace.core.config import settings
from backspace.models.invoice import Invoice, LineItem, PaymentMethod
from backspace.models.resource import Resource
from backspace.models.session import Session
from backspace.models.subscription import Subscription
from backspace.services.account_balance import AccountBalance
from backspace.services.invoice_ledger import InvoiceLedger
from backspace.services.payment_allocator import PaymentAllocator
from backspace.services.session_accrual import SessionAccrual, SessionClosure


class BillingService:
    @staticmethod
    def default_due_date(now: datetime) -> datetime:
        return now + timedelta(days=settings.INVOICE_DUE_DAYS)

    @staticmethod
    def start_session(
        customer_id: str,
        resource: Resource,
        subscriptions: Iterable[Subscription],
        now: datetime,
    ) -> Tuple[Session, Resource]:
        return SessionAccrual.start(customer_id, resource, subscriptions, now)

    @staticmethod
    def get_current_cost(session: Session, now: datetime) -> int:
        return SessionAccrual.current_cost(session, now)

    @staticmethod
    def end_session(session: Session, resource: Resource, now: datetime) -> SessionClosure:
        return SessionAccrual.close(session, resource, now)

    @staticmethod
    def invoice_for_closure(closure: SessionClosure, now: datetime) -> Optional[Invoice]:
        return InvoiceLedger.invoice_from_draft(
            closure.session.customer_id,
            closure.draft,
            BillingService.default_due_date(now),
            now,
            session_id=closure.session.id,
        )

    @staticmethod
    def create_invoice(
        customer_id: str,
        line_items: Iterable[LineItem],
        now: datetime,
        due_date: Optional[datetime] = None,
    ) -> Invoice:
        if due_date is None:
            due_date = BillingService.default_due_date(now)
        return InvoiceLedger.create(customer_id, line_items, due_date, now)

    @staticmethod
    def record_payment(
        invoice: Invoice,
        amount: int,
        method: PaymentMethod,
        date: datetime,
        notes: str = "",
    ) -> Invoice:
        return PaymentAllocator.apply_payment(invoice, amount, method, date, notes)

    @staticmethod
    def record_bulk_payment(
        invoices: Sequence[Invoice],
        total_amount: int,
        method: PaymentMethod,
        date: datetime,
        notes: str = "",
    ) -> List[Invoice]:
        return PaymentAllocator.apply_bulk_payment(invoices, total_amount, method, date, notes)

    @staticmethod
    def get_balance(invoices: Iterable[Invoice], adjustments: Iterable = ()) -> int:
        return AccountBalance.compute_balance(invoices, adjustments)
