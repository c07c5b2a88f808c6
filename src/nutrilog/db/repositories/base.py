"""Base repository class with common database operations."""

import uuid
from typing import Any, Generic, TypeVar

from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import BaseModel

from nutrilog.utils.dates import utc_now

T = TypeVar("T", bound=BaseModel)


def new_id() -> str:
    """Generate an opaque document id."""
    return uuid.uuid4().hex


class BaseRepository(Generic[T]):
    """
    Base repository providing common CRUD operations.

    Documents use opaque string ids in ``_id``. Subclasses set
    ``model_class`` to get documents back as Pydantic models.
    """

    model_class: type[T] | None = None

    def __init__(self, collection: AsyncIOMotorCollection):
        """
        Initialize repository with a MongoDB collection.

        Args:
            collection: Motor collection instance
        """
        self.collection = collection

    def _to_model(self, doc: dict[str, Any] | None) -> T | dict[str, Any] | None:
        """Convert MongoDB document to Pydantic model if model_class is set."""
        if doc is None:
            return None
        if self.model_class is not None:
            if "_id" in doc:
                doc["id"] = str(doc.pop("_id"))
            return self.model_class.model_validate(doc)
        return doc

    def _to_models(self, docs: list[dict[str, Any]]) -> list[T | dict[str, Any]]:
        """Convert list of MongoDB documents to models."""
        return [self._to_model(doc) for doc in docs if doc is not None]

    async def find_by_id(self, id: str) -> T | dict[str, Any] | None:
        """Find document by ID."""
        doc = await self.collection.find_one({"_id": id})
        return self._to_model(doc)

    async def find_many(
        self,
        filter: dict[str, Any] | None = None,
        sort: list[tuple[str, int]] | None = None,
        limit: int = 100,
        skip: int = 0,
    ) -> list[T | dict[str, Any]]:
        """
        Find multiple documents matching filter.

        Args:
            filter: MongoDB query filter
            sort: List of (field, direction) tuples
            limit: Maximum documents to return (0 = no limit)
            skip: Number of documents to skip
        """
        cursor = self.collection.find(filter or {})

        if sort:
            cursor = cursor.sort(sort)

        cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        docs = await cursor.to_list(length=limit or None)
        return self._to_models(docs)

    async def find_one(self, filter: dict[str, Any]) -> T | dict[str, Any] | None:
        """Find single document matching filter."""
        doc = await self.collection.find_one(filter)
        return self._to_model(doc)

    async def insert_one(self, document: dict[str, Any]) -> str:
        """
        Insert a single document.

        Assigns an ``_id`` and ``created_at`` when missing.

        Returns:
            Inserted document ID
        """
        document.setdefault("_id", new_id())
        document.setdefault("created_at", utc_now())

        result = await self.collection.insert_one(document)
        return str(result.inserted_id)

    async def delete_one(self, filter: dict[str, Any]) -> bool:
        """Delete a single document matching filter."""
        result = await self.collection.delete_one(filter)
        return result.deleted_count > 0

    async def count(self, filter: dict[str, Any] | None = None) -> int:
        """Count documents matching filter."""
        return await self.collection.count_documents(filter or {})

    async def aggregate(
        self,
        pipeline: list[dict[str, Any]],
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Execute aggregation pipeline."""
        cursor = self.collection.aggregate(pipeline)
        return await cursor.to_list(length=limit)
