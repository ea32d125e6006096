import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from backspace.api.v1.common import get_or_404, sync_customer, utcnow
from backspace.core.locks import inventory_locks, resource_locks
from backspace.db.mongo import get_db, transaction
from backspace.models.session import Session
from backspace.repositories.customer_repo import CustomerRepository
from backspace.repositories.inventory_repo import InventoryRepository
from backspace.repositories.invoice_repo import InvoiceRepository
from backspace.repositories.resource_repo import ResourceRepository
from backspace.repositories.session_repo import SessionRepository
from backspace.repositories.subscription_repo import SubscriptionRepository
from backspace.schemas.session import (
    ConsumptionCreate,
    ConsumptionUpdate,
    SessionCostResponse,
    SessionEndResponse,
    SessionStart,
)
from backspace.services.billing_service import BillingService
from backspace.services.session_accrual import SessionAccrual
from backspace.utils.billing_validation import ResourceUnavailable

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=Session)
async def start_session(payload: SessionStart, db = Depends(get_db)):
    """Occupy a resource for a customer."""
    now = utcnow()
    resource_repo = ResourceRepository(db)

    async with resource_locks.hold(payload.resource_id):
        resource = await get_or_404(resource_repo, payload.resource_id, "Resource")
        customer = await get_or_404(CustomerRepository(db), payload.customer_id, "Customer")
        subscriptions = await SubscriptionRepository(db).list_for_customer(customer.id)

        session, occupied = BillingService.start_session(customer.id, resource, subscriptions, now)

        async with transaction(db) as db_session:
            if await resource_repo.set_availability(occupied, db_session=db_session) is None:
                raise ResourceUnavailable(f"Resource '{resource.name}' is already occupied")
            await SessionRepository(db).save(session, db_session=db_session)

    return session


@router.get("/active", response_model=List[Session])
async def list_active_sessions(db = Depends(get_db)):
    """List open sessions"""
    return await SessionRepository(db).list_active()


@router.get("/{session_id}/cost", response_model=SessionCostResponse)
async def get_session_cost(session_id: str, db = Depends(get_db)):
    """Live cost of an open session"""
    now = utcnow()
    session = await get_or_404(SessionRepository(db), session_id, "Session")

    time_cost = BillingService.get_current_cost(session, now)
    inventory_cost = SessionAccrual.inventory_cost(session)
    return SessionCostResponse(
        session_id=session.id,
        elapsed_minutes=SessionAccrual.elapsed_minutes(session, now),
        is_subscription_covered=session.is_subscription_covered,
        time_cost=time_cost,
        inventory_cost=inventory_cost,
        total=time_cost + inventory_cost,
    )


@router.post("/{session_id}/inventory", response_model=Session)
async def add_session_inventory(
    session_id: str,
    payload: ConsumptionCreate,
    db = Depends(get_db)
):
    """Attach inventory to a session and deduct it from stock"""
    now = utcnow()
    session_repo = SessionRepository(db)
    inventory_repo = InventoryRepository(db)
    session = await get_or_404(session_repo, session_id, "Session")

    async with resource_locks.hold(session.resource_id), inventory_locks.hold(payload.item_id):
        session = await get_or_404(session_repo, session_id, "Session")
        item = await get_or_404(inventory_repo, payload.item_id, "Inventory item")

        updated, stock = SessionAccrual.add_consumption(session, item, payload.quantity, now)

        async with transaction(db) as db_session:
            await inventory_repo.set_quantity(stock, db_session=db_session)
            await session_repo.save(updated, db_session=db_session)

    return updated


@router.patch("/{session_id}/inventory/{consumption_id}", response_model=Session)
async def update_session_inventory(
    session_id: str,
    consumption_id: str,
    payload: ConsumptionUpdate,
    db = Depends(get_db)
):
    """Change the quantity of a consumption; zero removes it"""
    return await _change_consumption(db, session_id, consumption_id, payload.quantity)


@router.delete("/{session_id}/inventory/{consumption_id}", response_model=Session)
async def remove_session_inventory(
    session_id: str,
    consumption_id: str,
    db = Depends(get_db)
):
    """Remove a consumption and restore its stock"""
    return await _change_consumption(db, session_id, consumption_id, 0)


@router.post("/{session_id}/end", response_model=SessionEndResponse)
async def end_session(session_id: str, db = Depends(get_db)):
    """
    Close a session.

    Issues the invoice (when there is anything to bill), frees the resource,
    drops the session and refreshes the customer's balance in one transaction.
    """
    now = utcnow()
    session_repo = SessionRepository(db)
    resource_repo = ResourceRepository(db)
    session = await get_or_404(session_repo, session_id, "Session")

    async with resource_locks.hold(session.resource_id):
        session = await get_or_404(session_repo, session_id, "Session")
        resource = await get_or_404(resource_repo, session.resource_id, "Resource")

        closure = BillingService.end_session(session, resource, now)
        invoice = BillingService.invoice_for_closure(closure, now)

        async with transaction(db) as db_session:
            if invoice is not None:
                await InvoiceRepository(db).save(invoice, db_session=db_session)
            if await resource_repo.set_availability(closure.resource, db_session=db_session) is None:
                logger.warning("Resource %s was already marked available", resource.id)
            await session_repo.delete(session.id, db_session=db_session)
            await sync_customer(db, session.customer_id, now, db_session=db_session)

    return SessionEndResponse(session_id=session.id, draft=closure.draft, invoice=invoice)


async def _change_consumption(db, session_id: str, consumption_id: str, quantity: int) -> Session:
    session_repo = SessionRepository(db)
    inventory_repo = InventoryRepository(db)
    session = await get_or_404(session_repo, session_id, "Session")
    consumption = next(
        (c for c in session.inventory_consumptions if c.consumption_id == consumption_id),
        None,
    )
    if consumption is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Consumption not found"
        )

    async with resource_locks.hold(session.resource_id), inventory_locks.hold(consumption.item_id):
        session = await get_or_404(session_repo, session_id, "Session")
        item = await get_or_404(inventory_repo, consumption.item_id, "Inventory item")

        updated, stock = SessionAccrual.update_consumption(session, item, consumption_id, quantity)

        async with transaction(db) as db_session:
            await inventory_repo.set_quantity(stock, db_session=db_session)
            await session_repo.save(updated, db_session=db_session)

    return updated
