from typing import Any, Optional

from backspace.models.resource import Resource
from backspace.repositories.base_repo import DocumentRepository


class ResourceRepository(DocumentRepository[Resource]):
    """Resource database operations."""

    collection_name = "resources"
    model = Resource

    async def set_availability(self, resource: Resource, db_session: Any = None) -> Optional[Resource]:
        """
        Persist an availability flip produced by the session lifecycle.

        The filter requires the opposite of the new value, so two concurrent
        starts cannot both occupy the same resource.
        """
        result = await self.collection.update_one(
            {"_id": resource.id, "is_available": not resource.is_available},
            {"$set": {"is_available": resource.is_available}},
            session=db_session
        )
        if result.modified_count == 0:
            return None
        return resource
