from datetime import timedelta

import pytest

from backspace.models.invoice import InvoiceStatus, PaymentMethod
from backspace.services.invoice_ledger import InvoiceLedger
from backspace.services.payment_allocator import PaymentAllocator
from backspace.utils.billing_validation import AmountExceedsBalance, InvalidAmount, InvalidState


class TestApplyPayment:
    def test_partial_payment(self, make_invoice, now):
        invoice = make_invoice(4500)

        paid = PaymentAllocator.apply_payment(invoice, 2000, PaymentMethod.CASH, now, "front desk")

        assert paid.paid_amount == 2000
        assert paid.status == InvoiceStatus.UNPAID
        assert paid.outstanding() == 2500
        assert paid.paid_at is None
        assert paid.payments[0].amount == 2000
        assert paid.payments[0].notes == "front desk"
        assert invoice.paid_amount == 0

    def test_exact_payment_marks_paid(self, make_invoice, now):
        paid = PaymentAllocator.apply_payment(make_invoice(4500), 4500, PaymentMethod.CARD, now)
        assert paid.status == InvoiceStatus.PAID
        assert paid.paid_at == now

    def test_rounding_tolerance_is_absorbed(self, make_invoice, now):
        paid = PaymentAllocator.apply_payment(make_invoice(4500), 4501, PaymentMethod.CASH, now)
        assert paid.paid_amount == 4500
        assert paid.status == InvoiceStatus.PAID
        assert paid.payments[0].amount == 4500

    def test_overpayment_rejected(self, make_invoice, now):
        with pytest.raises(AmountExceedsBalance):
            PaymentAllocator.apply_payment(make_invoice(4500), 4502, PaymentMethod.CASH, now)
        with pytest.raises(AmountExceedsBalance):
            PaymentAllocator.apply_payment(make_invoice(4500), 4501, PaymentMethod.CASH, now, tolerance=0)

    @pytest.mark.parametrize("amount", [0, -100])
    def test_non_positive_amount(self, make_invoice, now, amount):
        with pytest.raises(InvalidAmount):
            PaymentAllocator.apply_payment(make_invoice(4500), amount, PaymentMethod.CASH, now)

    def test_cancelled_invoice(self, make_invoice, now):
        cancelled = InvoiceLedger.cancel(make_invoice(4500), now)
        with pytest.raises(InvalidState):
            PaymentAllocator.apply_payment(cancelled, 100, PaymentMethod.CASH, now)


class TestBulkPayment:
    def test_oldest_due_first(self, make_invoice, now):
        invoices = [
            make_invoice(100, due_date=now + timedelta(days=1)),
            make_invoice(50, due_date=now + timedelta(days=2)),
            make_invoice(30, due_date=now + timedelta(days=3)),
        ]

        updated = PaymentAllocator.apply_bulk_payment(invoices, 120, PaymentMethod.CASH, now)

        assert [inv.paid_amount for inv in updated] == [100, 20, 0]
        assert [inv.status for inv in updated] == [
            InvoiceStatus.PAID, InvoiceStatus.UNPAID, InvoiceStatus.UNPAID
        ]

    def test_result_keeps_input_order(self, make_invoice, now):
        first = make_invoice(100, due_date=now + timedelta(days=1))
        second = make_invoice(50, due_date=now + timedelta(days=2))
        third = make_invoice(30, due_date=now + timedelta(days=3))

        updated = PaymentAllocator.apply_bulk_payment([third, first, second], 120, PaymentMethod.CASH, now)

        assert [inv.id for inv in updated] == [third.id, first.id, second.id]
        assert [inv.paid_amount for inv in updated] == [0, 100, 20]

    def test_same_due_date_uses_creation_time(self, make_invoice, now):
        due = now + timedelta(days=7)
        newer = make_invoice(100, due_date=due, created_at=now)
        older = make_invoice(100, due_date=due, created_at=now - timedelta(days=1))

        updated = PaymentAllocator.apply_bulk_payment([newer, older], 100, PaymentMethod.CASH, now)

        assert [inv.paid_amount for inv in updated] == [0, 100]

    def test_skips_closed_invoices(self, make_invoice, now):
        cancelled = InvoiceLedger.cancel(make_invoice(100, due_date=now), now)
        settled = PaymentAllocator.apply_payment(make_invoice(100, due_date=now), 100, PaymentMethod.CASH, now)
        open_invoice = make_invoice(100, due_date=now + timedelta(days=1))

        updated = PaymentAllocator.apply_bulk_payment(
            [cancelled, settled, open_invoice], 60, PaymentMethod.CASH, now
        )

        assert updated[0] is cancelled
        assert updated[1] is settled
        assert updated[2].paid_amount == 60

    def test_leftover_is_not_allocated(self, make_invoice, now):
        invoices = [make_invoice(100), make_invoice(50)]
        updated = PaymentAllocator.apply_bulk_payment(invoices, 500, PaymentMethod.CASH, now)

        assert all(inv.status == InvoiceStatus.PAID for inv in updated)
        assert sum(inv.paid_amount for inv in updated) == 150

    def test_mixed_customers_rejected(self, make_invoice, now):
        invoices = [make_invoice(100, customer_id="cust-1"), make_invoice(100, customer_id="cust-2")]
        with pytest.raises(InvalidState):
            PaymentAllocator.apply_bulk_payment(invoices, 100, PaymentMethod.CASH, now)

    def test_non_positive_total(self, make_invoice, now):
        with pytest.raises(InvalidAmount):
            PaymentAllocator.apply_bulk_payment([make_invoice(100)], 0, PaymentMethod.CASH, now)
