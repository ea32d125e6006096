import logging
from datetime import datetime
from typing import Iterable, Optional

from backspace.core import money
from backspace.models.base import ensure_utc, new_id
from backspace.models.invoice import Invoice, InvoiceStatus, LineItem
from backspace.services.session_accrual import InvoiceDraft
from backspace.utils.billing_validation import InvalidAmount, InvalidState, validate_line_items

logger = logging.getLogger(__name__)

SESSION_PREFIX = "INV"
SUBSCRIPTION_PREFIX = "SUB"

# ObjectId tail: per-process random bytes plus counter
NUMBER_ID_CHARS = 16


class InvoiceLedger:
    @staticmethod
    def invoice_number(invoice_id: str, now: datetime, prefix: str = SESSION_PREFIX) -> str:
        """e.g. INV-20261019-0F6A2C41B9D3E57A"""
        return f"{prefix}-{now:%Y%m%d}-{invoice_id[-NUMBER_ID_CHARS:].upper()}"

    @staticmethod
    def create(
        customer_id: str,
        line_items: Iterable[LineItem],
        due_date: datetime,
        now: datetime,
        prefix: str = SESSION_PREFIX,
        session_id: Optional[str] = None,
        subscription_id: Optional[str] = None,
    ) -> Invoice:
        """
        Issue a new unpaid invoice.

        Raises InvalidAmount for an empty bill, negative lines or a zero total.
        """
        now = ensure_utc(now)
        due_date = ensure_utc(due_date)
        items = [LineItem.model_validate(item, from_attributes=True) for item in line_items]
        validate_line_items(items)

        total = money.sum_minor(item.amount for item in items)
        if total <= 0:
            raise InvalidAmount("Invoice total must be positive")

        invoice_id = new_id()
        invoice = Invoice(
            id=invoice_id,
            customer_id=customer_id,
            invoice_number=InvoiceLedger.invoice_number(invoice_id, now, prefix),
            session_id=session_id,
            subscription_id=subscription_id,
            line_items=items,
            total=total,
            paid_amount=0,
            status=InvoiceStatus.UNPAID,
            due_date=due_date,
            created_at=now,
        )
        InvoiceLedger.check_invariants(invoice)

        logger.info(
            "Invoice %s issued to customer %s: total=%s due=%s",
            invoice.invoice_number, customer_id, money.format_major(total), due_date.date()
        )
        return invoice

    @staticmethod
    def invoice_from_draft(
        customer_id: str,
        draft: InvoiceDraft,
        due_date: datetime,
        now: datetime,
        session_id: Optional[str] = None,
    ) -> Optional[Invoice]:
        """Session invoice from a closed session; None when nothing is billable."""
        if draft.total <= 0:
            logger.info("Session %s closed with nothing to bill", session_id)
            return None
        billable = [item for item in draft.line_items if item.amount > 0]
        return InvoiceLedger.create(
            customer_id,
            billable,
            due_date,
            now,
            prefix=SESSION_PREFIX,
            session_id=session_id,
        )

    @staticmethod
    def cancel(invoice: Invoice, now: datetime) -> Invoice:
        """Cancel an invoice nobody has paid anything against yet."""
        now = ensure_utc(now)
        if invoice.status != InvoiceStatus.UNPAID or invoice.paid_amount != 0:
            raise InvalidState(
                f"Invoice {invoice.invoice_number} cannot be cancelled "
                f"(status={invoice.status.value}, paid={invoice.paid_amount})"
            )

        cancelled = invoice.model_copy(
            update={"status": InvoiceStatus.CANCELLED, "cancelled_at": now}
        )
        InvoiceLedger.check_invariants(cancelled)
        logger.info("Invoice %s cancelled", invoice.invoice_number)
        return cancelled

    @staticmethod
    def status_for(invoice: Invoice, paid_amount: int) -> InvoiceStatus:
        if invoice.status == InvoiceStatus.CANCELLED:
            return InvoiceStatus.CANCELLED
        return InvoiceStatus.PAID if paid_amount == invoice.total else InvoiceStatus.UNPAID

    @staticmethod
    def check_invariants(invoice: Invoice) -> None:
        """Raise InvalidState if the invoice breaks any ledger invariant."""
        line_total = money.sum_minor(item.amount for item in invoice.line_items)
        if invoice.total != line_total:
            raise InvalidState(
                f"Invoice {invoice.invoice_number}: total {invoice.total} != line items {line_total}"
            )
        if not 0 <= invoice.paid_amount <= invoice.total:
            raise InvalidState(
                f"Invoice {invoice.invoice_number}: paid {invoice.paid_amount} outside 0..{invoice.total}"
            )
        if invoice.status == InvoiceStatus.CANCELLED:
            return
        expected = InvoiceStatus.PAID if invoice.paid_amount == invoice.total else InvoiceStatus.UNPAID
        if invoice.status != expected:
            raise InvalidState(
                f"Invoice {invoice.invoice_number}: status {invoice.status.value} "
                f"inconsistent with paid {invoice.paid_amount}/{invoice.total}"
            )
