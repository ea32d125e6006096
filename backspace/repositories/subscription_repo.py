from typing import Any, List

from backspace.models.subscription import Subscription
from backspace.repositories.base_repo import DocumentRepository


class SubscriptionRepository(DocumentRepository[Subscription]):
    """Subscription database operations."""

    collection_name = "subscriptions"
    model = Subscription

    async def list_for_customer(self, customer_id: str, db_session: Any = None) -> List[Subscription]:
        return await self.find(
            {"customer_id": customer_id},
            sort=[("end_date", 1)],
            db_session=db_session
        )
