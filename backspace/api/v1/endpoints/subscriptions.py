from typing import List

from fastapi import APIRouter, Depends

from backspace.api.v1.common import as_utc, get_or_404, sync_customer, utcnow
from backspace.core.locks import customer_locks
from backspace.db.mongo import get_db, transaction
from backspace.repositories.customer_repo import CustomerRepository
from backspace.repositories.invoice_repo import InvoiceRepository
from backspace.repositories.subscription_repo import SubscriptionRepository
from backspace.schemas.subscription import SubscriptionCreate, SubscriptionResponse
from backspace.services.subscription_service import SubscriptionService

router = APIRouter()


@router.post("", response_model=SubscriptionResponse)
async def purchase_subscription(payload: SubscriptionCreate, db = Depends(get_db)):
    """
    Sell a plan to a customer.

    Any plan the customer already holds is deactivated and the new plan's
    invoice is issued in the same transaction.
    """
    now = utcnow()
    sub_repo = SubscriptionRepository(db)
    customer = await get_or_404(CustomerRepository(db), payload.customer_id, "Customer")

    async with customer_locks.hold(customer.id):
        existing = await sub_repo.list_for_customer(customer.id)
        purchase = SubscriptionService.purchase(
            customer.id,
            payload.plan_type,
            payload.price,
            as_utc(payload.start_date, now),
            now,
            existing,
        )
        async with transaction(db) as db_session:
            for old in purchase.deactivated:
                await sub_repo.save(old, db_session=db_session)
            await sub_repo.save(purchase.subscription, db_session=db_session)
            await InvoiceRepository(db).save(purchase.invoice, db_session=db_session)
            await sync_customer(db, customer.id, now, db_session=db_session)

    return SubscriptionResponse.at(purchase.subscription, now)


@router.get("", response_model=List[SubscriptionResponse])
async def list_subscriptions(customer_id: str, db = Depends(get_db)):
    now = utcnow()
    subscriptions = await SubscriptionRepository(db).list_for_customer(customer_id)
    return [SubscriptionResponse.at(sub, now) for sub in subscriptions]


@router.post("/{subscription_id}/cancel", response_model=SubscriptionResponse)
async def cancel_subscription(subscription_id: str, db = Depends(get_db)):
    """Deactivate a subscription"""
    now = utcnow()
    sub_repo = SubscriptionRepository(db)
    subscription = await get_or_404(sub_repo, subscription_id, "Subscription")

    async with customer_locks.hold(subscription.customer_id):
        updated = SubscriptionService.cancel(subscription)
        async with transaction(db) as db_session:
            await sub_repo.save(updated, db_session=db_session)
            await sync_customer(db, updated.customer_id, now, db_session=db_session)

    return SubscriptionResponse.at(updated, now)


@router.post("/{subscription_id}/reactivate", response_model=SubscriptionResponse)
async def reactivate_subscription(subscription_id: str, db = Depends(get_db)):
    """Reactivate a subscription whose window has not ended"""
    now = utcnow()
    sub_repo = SubscriptionRepository(db)
    subscription = await get_or_404(sub_repo, subscription_id, "Subscription")

    async with customer_locks.hold(subscription.customer_id):
        updated = SubscriptionService.reactivate(subscription, now)
        async with transaction(db) as db_session:
            await sub_repo.save(updated, db_session=db_session)
            await sync_customer(db, updated.customer_id, now, db_session=db_session)

    return SubscriptionResponse.at(updated, now)
