from fastapi import APIRouter, Depends

from backspace.api.v1.common import get_or_404, sync_customer, utcnow
from backspace.core import money
from backspace.core.locks import customer_locks
from backspace.db.mongo import get_db, transaction
from backspace.models.customer import BalanceAdjustment
from backspace.repositories.customer_repo import AdjustmentRepository, CustomerRepository
from backspace.repositories.invoice_repo import InvoiceRepository
from backspace.schemas.customer import AdjustmentCreate, BalanceResponse
from backspace.services.account_balance import AccountBalance

router = APIRouter()


@router.get("/{customer_id}/balance", response_model=BalanceResponse)
async def get_balance(customer_id: str, db = Depends(get_db)):
    """Balance derived from the customer's invoices and adjustments."""
    customer = await get_or_404(CustomerRepository(db), customer_id, "Customer")
    invoices = await InvoiceRepository(db).list_for_customer(customer.id)
    adjustments = await AdjustmentRepository(db).list_for_customer(customer.id)

    summary = AccountBalance.summarize(invoices, adjustments)
    return BalanceResponse(
        customer_id=customer.id,
        owes=summary.owes,
        credit=summary.credit,
        net=summary.net,
        net_major=money.format_major(summary.net),
    )


@router.post("/{customer_id}/deposits", response_model=BalanceAdjustment)
async def deposit(customer_id: str, payload: AdjustmentCreate, db = Depends(get_db)):
    now = utcnow()
    customer = await get_or_404(CustomerRepository(db), customer_id, "Customer")

    async with customer_locks.hold(customer.id):
        adjustment = AccountBalance.deposit(customer.id, payload.minor_amount(), now, payload.reason)
        async with transaction(db) as db_session:
            await AdjustmentRepository(db).save(adjustment, db_session=db_session)
            await sync_customer(db, customer.id, now, db_session=db_session)

    return adjustment


@router.post("/{customer_id}/withdrawals", response_model=BalanceAdjustment)
async def withdraw(customer_id: str, payload: AdjustmentCreate, db = Depends(get_db)):
    """Pay stored credit back out; the balance cannot go below zero."""
    now = utcnow()
    customer = await get_or_404(CustomerRepository(db), customer_id, "Customer")

    async with customer_locks.hold(customer.id):
        invoices = await InvoiceRepository(db).list_for_customer(customer.id)
        adjustments = await AdjustmentRepository(db).list_for_customer(customer.id)
        balance = AccountBalance.compute_balance(invoices, adjustments)

        adjustment = AccountBalance.withdraw(
            customer.id, payload.minor_amount(), balance, now, payload.reason
        )
        async with transaction(db) as db_session:
            await AdjustmentRepository(db).save(adjustment, db_session=db_session)
            await sync_customer(db, customer.id, now, db_session=db_session)

    return adjustment
