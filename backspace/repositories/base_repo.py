from typing import Any, Generic, List, Optional, Type, TypeVar

from motor.motor_asyncio import AsyncIOMotorDatabase

from backspace.models.base import DocumentModel

ModelT = TypeVar("ModelT", bound=DocumentModel)


class DocumentRepository(Generic[ModelT]):
    """Shared load/save for one collection of DocumentModel documents."""

    collection_name: str
    model: Type[ModelT]

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = db[self.collection_name]

    def to_document(self, instance: ModelT) -> dict:
        doc = instance.model_dump(mode="python")
        doc["_id"] = doc.pop("id")
        return doc

    def from_document(self, doc: dict) -> ModelT:
        doc = dict(doc)
        doc["id"] = str(doc.pop("_id"))
        return self.model(**doc)

    async def get(self, doc_id: str, db_session: Any = None) -> Optional[ModelT]:
        doc = await self.collection.find_one({"_id": doc_id}, session=db_session)
        if doc:
            return self.from_document(doc)
        return None

    async def find(self, query: dict, sort: Optional[list] = None, db_session: Any = None) -> List[ModelT]:
        cursor = self.collection.find(query, session=db_session)
        if sort:
            cursor = cursor.sort(sort)
        docs = await cursor.to_list(None)
        return [self.from_document(doc) for doc in docs]

    async def save(self, instance: ModelT, db_session: Any = None) -> ModelT:
        """Insert or fully replace the document."""
        await self.collection.replace_one(
            {"_id": instance.id},
            self.to_document(instance),
            upsert=True,
            session=db_session
        )
        return instance

    async def delete(self, doc_id: str, db_session: Any = None) -> bool:
        result = await self.collection.delete_one({"_id": doc_id}, session=db_session)
        return result.deleted_count > 0
