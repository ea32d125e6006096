from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from backspace.api.v1.common import as_utc, get_or_404, sync_customer, utcnow
from backspace.core.locks import customer_locks
from backspace.db.mongo import get_db, transaction
from backspace.models.invoice import Invoice, InvoiceStatus
from backspace.repositories.customer_repo import CustomerRepository
from backspace.repositories.invoice_repo import InvoiceRepository
from backspace.schemas.invoice import (
    BulkPaymentCreate,
    BulkPaymentResponse,
    InvoiceCreate,
    PaymentCreate,
)
from backspace.services.billing_service import BillingService
from backspace.services.invoice_ledger import InvoiceLedger

router = APIRouter()


@router.post("", response_model=Invoice)
async def create_invoice(payload: InvoiceCreate, db = Depends(get_db)):
    """Issue a standalone invoice to a customer."""
    now = utcnow()
    customer = await get_or_404(CustomerRepository(db), payload.customer_id, "Customer")

    async with customer_locks.hold(customer.id):
        invoice = BillingService.create_invoice(
            customer.id,
            payload.line_items,
            now,
            due_date=as_utc(payload.due_date, None),
        )
        async with transaction(db) as db_session:
            await InvoiceRepository(db).save(invoice, db_session=db_session)
            await sync_customer(db, customer.id, now, db_session=db_session)

    return invoice


@router.get("", response_model=List[Invoice])
async def list_invoices(
    customer_id: str,
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    db = Depends(get_db)
):
    """List a customer's invoices, oldest obligation first"""
    return await InvoiceRepository(db).list_for_customer(
        customer_id,
        status=status_filter.value if status_filter else None
    )


@router.get("/{invoice_id}", response_model=Invoice)
async def get_invoice(invoice_id: str, db = Depends(get_db)):
    return await get_or_404(InvoiceRepository(db), invoice_id, "Invoice")


@router.post("/{invoice_id}/payments", response_model=Invoice)
async def record_payment(invoice_id: str, payload: PaymentCreate, db = Depends(get_db)):
    """Record a payment against one invoice."""
    now = utcnow()
    invoice_repo = InvoiceRepository(db)
    invoice = await get_or_404(invoice_repo, invoice_id, "Invoice")

    async with customer_locks.hold(invoice.customer_id):
        # re-read under the lock: paid_amount may have moved
        invoice = await get_or_404(invoice_repo, invoice_id, "Invoice")
        updated = BillingService.record_payment(
            invoice,
            payload.minor_amount(),
            payload.method,
            as_utc(payload.date, now),
            payload.notes,
        )
        async with transaction(db) as db_session:
            await invoice_repo.save(updated, db_session=db_session)
            await sync_customer(db, updated.customer_id, now, db_session=db_session)

    return updated


@router.post("/bulk-payments", response_model=BulkPaymentResponse)
async def record_bulk_payment(payload: BulkPaymentCreate, db = Depends(get_db)):
    """
    Spread one payment over a customer's invoices.

    Without `invoice_ids` every unpaid invoice of the customer takes part.
    """
    now = utcnow()
    invoice_repo = InvoiceRepository(db)
    customer = await get_or_404(CustomerRepository(db), payload.customer_id, "Customer")
    amount = payload.minor_amount()

    async with customer_locks.hold(customer.id):
        if payload.invoice_ids is None:
            invoices = await invoice_repo.list_for_customer(customer.id, status=InvoiceStatus.UNPAID.value)
        else:
            invoice_ids = list(dict.fromkeys(payload.invoice_ids))
            invoices = await invoice_repo.get_many(invoice_ids)
            if len(invoices) != len(invoice_ids):
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="One or more invoices not found"
                )
            if any(invoice.customer_id != customer.id for invoice in invoices):
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Invoices must belong to the paying customer"
                )

        updated = BillingService.record_bulk_payment(
            invoices,
            amount,
            payload.method,
            as_utc(payload.date, now),
            payload.notes,
        )
        changed = [new for old, new in zip(invoices, updated) if new.paid_amount != old.paid_amount]
        allocated = sum(new.paid_amount - old.paid_amount for old, new in zip(invoices, updated))

        async with transaction(db) as db_session:
            for invoice in changed:
                await invoice_repo.save(invoice, db_session=db_session)
            await sync_customer(db, customer.id, now, db_session=db_session)

    return BulkPaymentResponse(invoices=updated, allocated=allocated, unallocated=amount - allocated)


@router.post("/{invoice_id}/cancel", response_model=Invoice)
async def cancel_invoice(invoice_id: str, db = Depends(get_db)):
    """Cancel an invoice with nothing paid against it."""
    now = utcnow()
    invoice_repo = InvoiceRepository(db)
    invoice = await get_or_404(invoice_repo, invoice_id, "Invoice")

    async with customer_locks.hold(invoice.customer_id):
        invoice = await get_or_404(invoice_repo, invoice_id, "Invoice")
        cancelled = InvoiceLedger.cancel(invoice, now)
        async with transaction(db) as db_session:
            await invoice_repo.save(cancelled, db_session=db_session)
            await sync_customer(db, cancelled.customer_id, now, db_session=db_session)

    return cancelled
