from typing import Any, List, Optional

from backspace.models.customer import BalanceAdjustment, Customer
from backspace.repositories.base_repo import DocumentRepository


class CustomerRepository(DocumentRepository[Customer]):
    """Customer database operations."""

    collection_name = "customers"
    model = Customer

    async def update_billing_state(
        self,
        customer_id: str,
        balance: int,
        customer_type: Optional[str] = None,
        active_subscription_id: Optional[str] = None,
        db_session: Any = None
    ) -> bool:
        """Write the cached balance (and optionally plan info) back to the customer."""
        updates: dict = {"balance": balance}
        if customer_type is not None:
            updates["customer_type"] = customer_type
            updates["active_subscription_id"] = active_subscription_id
        result = await self.collection.update_one(
            {"_id": customer_id},
            {"$set": updates},
            session=db_session
        )
        return result.matched_count > 0


class AdjustmentRepository(DocumentRepository[BalanceAdjustment]):
    """Manual balance adjustments (deposits and withdrawals)."""

    collection_name = "balance_adjustments"
    model = BalanceAdjustment

    async def list_for_customer(self, customer_id: str, db_session: Any = None) -> List[BalanceAdjustment]:
        return await self.find(
            {"customer_id": customer_id},
            sort=[("created_at", 1)],
            db_session=db_session
        )
