from typing import Any

from backspace.models.inventory import InventoryItem
from backspace.repositories.base_repo import DocumentRepository


class InventoryRepository(DocumentRepository[InventoryItem]):
    """Inventory item database operations."""

    collection_name = "inventory_items"
    model = InventoryItem

    async def set_quantity(self, item: InventoryItem, db_session: Any = None) -> InventoryItem:
        await self.collection.update_one(
            {"_id": item.id},
            {"$set": {"quantity": item.quantity}},
            session=db_session
        )
        return item
