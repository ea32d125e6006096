import logging
from datetime import datetime
from typing import Dict, List, Sequence

from backspace.core import money
from backspace.core.config import settings
from backspace.models.base import ensure_utc
from backspace.models.invoice import Invoice, InvoiceStatus, Payment, PaymentMethod
from backspace.services.invoice_ledger import InvoiceLedger
from backspace.utils.billing_validation import (
    AmountExceedsBalance,
    InvalidState,
    validate_positive_amount,
)

logger = logging.getLogger(__name__)


class PaymentAllocator:
    @staticmethod
    def apply_payment(
        invoice: Invoice,
        amount: int,
        method: PaymentMethod,
        date: datetime,
        notes: str = "",
        tolerance: int | None = None,
    ) -> Invoice:
        """
        Apply a payment to one invoice.

        - amount must be positive
        - amount may exceed the outstanding balance by at most `tolerance`
          minor units; the excess is absorbed, never recorded as paid
        - paid_amount, status and payment history change together
        """
        validate_positive_amount(amount, "Payment amount")
        date = ensure_utc(date)
        if tolerance is None:
            tolerance = settings.PAYMENT_TOLERANCE_MINOR

        if invoice.status == InvoiceStatus.CANCELLED:
            raise InvalidState(f"Invoice {invoice.invoice_number} is cancelled")
        outstanding = invoice.outstanding()
        if outstanding <= 0:
            raise InvalidState(f"Invoice {invoice.invoice_number} is already fully paid")
        if amount > outstanding + tolerance:
            raise AmountExceedsBalance(
                f"Payment amount ({amount}) exceeds remaining balance ({outstanding})"
            )

        return PaymentAllocator._settle(invoice, min(amount, outstanding), method, date, notes)

    @staticmethod
    def apply_bulk_payment(
        invoices: Sequence[Invoice],
        total_amount: int,
        method: PaymentMethod,
        date: datetime,
        notes: str = "",
    ) -> List[Invoice]:
        """
        Spread one payment over a customer's invoices, oldest obligation first.

        Order: due_date asc, then created_at asc. Each open invoice takes
        min(remaining, outstanding). Whatever is left once every invoice is
        paid is not allocated. Returns invoices in the order they were given.
        """
        validate_positive_amount(total_amount, "Payment amount")
        date = ensure_utc(date)

        customer_ids = {invoice.customer_id for invoice in invoices}
        if len(customer_ids) > 1:
            raise InvalidState("Bulk payment invoices must belong to a single customer")

        ordered = sorted(invoices, key=lambda inv: (inv.due_date, inv.created_at, inv.id))
        updated: Dict[str, Invoice] = {}
        remaining = total_amount

        for invoice in ordered:
            if remaining <= 0:
                break
            if not invoice.is_open():
                continue

            portion = min(remaining, invoice.outstanding())
            updated[invoice.id] = PaymentAllocator._settle(invoice, portion, method, date, notes)
            remaining = money.subtract(remaining, portion)

        if remaining > 0:
            logger.warning(
                "Bulk payment of %s left %s unallocated",
                money.format_major(total_amount), money.format_major(remaining)
            )

        return [updated.get(invoice.id, invoice) for invoice in invoices]

    # ===== PRIVATE HELPERS =====

    @staticmethod
    def _settle(
        invoice: Invoice,
        amount: int,
        method: PaymentMethod,
        date: datetime,
        notes: str,
    ) -> Invoice:
        new_paid = money.add(invoice.paid_amount, amount)
        new_status = InvoiceLedger.status_for(invoice, new_paid)
        payment = Payment(
            invoice_id=invoice.id,
            amount=amount,
            method=method,
            date=date,
            notes=notes,
        )

        updated = invoice.model_copy(update={
            "paid_amount": new_paid,
            "status": new_status,
            "paid_at": date if new_status == InvoiceStatus.PAID else invoice.paid_at,
            "payments": [*invoice.payments, payment],
        })
        InvoiceLedger.check_invariants(updated)

        logger.info(
            "Invoice %s: paid %s (%s/%s) -> %s",
            invoice.invoice_number, money.format_major(amount),
            money.format_major(new_paid), money.format_major(invoice.total), new_status.value
        )
        return updated
