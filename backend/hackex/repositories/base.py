"""
Base Repository Pattern

Generic, typed base class shared by the scan and finding repositories.
"""

from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from motor.motor_asyncio import AsyncIOMotorCollection, AsyncIOMotorDatabase
from pydantic import BaseModel

T = TypeVar("T", bound=BaseModel)


class BaseRepository(Generic[T]):
    """
    Generic base repository providing common CRUD operations.

    Usage:
        class ScanRepository(BaseRepository[Scan]):
            collection_name = "scans"
            model_class = Scan
    """

    # Subclasses must define these
    collection_name: str
    model_class: Type[T]

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection: AsyncIOMotorCollection = db[self.collection_name]

    def _to_model(self, data: Optional[Dict[str, Any]]) -> Optional[T]:
        """Convert a raw document to a model instance."""
        if data is None:
            return None
        return self.model_class(**data)

    def _to_model_list(self, docs: List[Dict[str, Any]]) -> List[T]:
        return [self.model_class(**doc) for doc in docs]

    async def get_by_id(self, id: str) -> Optional[T]:
        """Get a document by ID and return as model instance."""
        data = await self.collection.find_one({"_id": id})
        return self._to_model(data)

    async def find_many(
        self,
        query: Dict[str, Any],
        skip: int = 0,
        limit: int = 100,
        sort_by: Optional[str] = None,
        sort_order: int = 1,
    ) -> List[T]:
        """Find multiple documents and return as model instances."""
        cursor = self.collection.find(query)
        if sort_by:
            cursor = cursor.sort(sort_by, sort_order)
        cursor = cursor.skip(skip).limit(limit)
        docs = await cursor.to_list(limit)
        return self._to_model_list(docs)

    async def count(self, query: Optional[Dict[str, Any]] = None) -> int:
        """Count documents matching query."""
        return await self.collection.count_documents(query or {})

    async def create(self, model: T) -> T:
        """Create a new document from a model instance."""
        await self.collection.insert_one(model.model_dump(by_alias=True))
        return model

    async def create_many(self, models: List[T]) -> int:
        """Create multiple documents from model instances."""
        if not models:
            return 0
        docs = [m.model_dump(by_alias=True) for m in models]
        result = await self.collection.insert_many(docs)
        return len(result.inserted_ids)

    async def update_raw(self, id: str, update_ops: Dict[str, Any]) -> int:
        """Update a document with raw MongoDB operations (e.g., $set, $inc)."""
        result = await self.collection.update_one({"_id": id}, update_ops)
        return result.modified_count

    async def delete_many(self, query: Dict[str, Any]) -> int:
        """Delete multiple documents matching query."""
        result = await self.collection.delete_many(query)
        return result.deleted_count

    async def aggregate(self, pipeline: List[Dict[str, Any]], limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Run an aggregation pipeline."""
        return await self.collection.aggregate(pipeline).to_list(limit)

    async def iterate(
        self,
        query: Optional[Dict[str, Any]] = None,
        projection: Optional[Dict[str, int]] = None,
    ):
        """Iterate over documents matching query (async generator)."""
        async for doc in self.collection.find(query or {}, projection):
            yield self._to_model(doc)
