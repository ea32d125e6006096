import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import HTTPException, status

from backspace.models.base import ensure_utc
from backspace.repositories.base_repo import DocumentRepository
from backspace.repositories.customer_repo import AdjustmentRepository, CustomerRepository
from backspace.repositories.invoice_repo import InvoiceRepository
from backspace.repositories.subscription_repo import SubscriptionRepository
from backspace.services.account_balance import AccountBalance
from backspace.services.subscription_coverage import SubscriptionCoverage

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """The request's notion of "now"; the billing core never reads the clock itself."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime], default: datetime) -> datetime:
    return ensure_utc(value) if value is not None else default


async def get_or_404(repo: DocumentRepository, doc_id: str, label: str, db_session: Any = None):
    instance = await repo.get(doc_id, db_session=db_session)
    if instance is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{label} not found"
        )
    return instance


async def sync_customer(db, customer_id: str, now: datetime, db_session: Any = None) -> int:
    """
    Recompute the customer's cached balance and plan from the ledger.

    Called after every invoice, payment, adjustment or subscription change.
    """
    invoices = await InvoiceRepository(db).list_for_customer(customer_id, db_session=db_session)
    adjustments = await AdjustmentRepository(db).list_for_customer(customer_id, db_session=db_session)
    subscriptions = await SubscriptionRepository(db).list_for_customer(customer_id, db_session=db_session)

    balance = AccountBalance.compute_balance(invoices, adjustments)
    coverage = SubscriptionCoverage.resolve(subscriptions, now, customer_id)
    customer_type = SubscriptionCoverage.customer_type_for(subscriptions, now)

    found = await CustomerRepository(db).update_billing_state(
        customer_id,
        balance,
        customer_type=customer_type,
        active_subscription_id=coverage.subscription_id,
        db_session=db_session
    )
    if not found:
        logger.warning("Balance sync skipped: customer %s not found", customer_id)
    return balance
