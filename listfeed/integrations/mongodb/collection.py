"""MongoDB collection wrapper with index management and write helpers.

This module provides an IndexedCollection class that wraps a MongoDB
AsyncCollection with lazy index creation and the handful of operations the
checkpoint, post and retention backends need.
"""

from enum import IntEnum
from typing import Any

from pydantic import BaseModel
from pymongo import ASCENDING, UpdateOne
from pymongo.asynchronous.collection import AsyncCollection


class IndexDirection(IntEnum):
    """Sort direction for MongoDB index fields."""

    ASC = ASCENDING
    """Ascending order (1)."""


class IndexSpec(BaseModel):
    """Specification for a MongoDB index.

    Example:
        >>> IndexSpec(keys=[("author", IndexDirection.ASC)])
        >>> IndexSpec(keys=[("uri", IndexDirection.ASC)], unique=True)
    """

    model_config = {"arbitrary_types_allowed": True}

    keys: list[tuple[str, IndexDirection]]
    """(field_name, direction) tuples."""

    unique: bool = False
    """If True, enforce uniqueness."""

    async def apply(self, collection: AsyncCollection[dict[str, Any]]) -> None:
        """Apply this index specification to a collection."""
        kwargs: dict[str, Any] = {}
        if self.unique:
            kwargs["unique"] = True
        await collection.create_index(self.keys, **kwargs)


class IndexedCollection:
    """A MongoDB collection wrapper with automatic index management.

    Indexes are created on the first operation, so backends can be
    constructed synchronously and used straight away.

    Example:
        >>> collection = IndexedCollection(
        ...     config.posts,
        ...     indexes=[IndexSpec(keys=[("indexed_at", IndexDirection.ASC)])],
        ... )
        >>> await collection.delete_many({"indexed_at": {"$lt": cutoff}})
    """

    def __init__(
        self,
        collection: AsyncCollection[dict[str, Any]],
        indexes: list[IndexSpec] | None = None,
    ) -> None:
        self._collection = collection
        self._indexes = indexes or []
        self._indexes_created = False

    async def _ensure_indexes(self) -> None:
        """Create indexes if not already created."""
        if self._indexes_created:
            return

        for spec in self._indexes:
            await spec.apply(self._collection)

        self._indexes_created = True

    async def find_one(
        self,
        filter: dict[str, Any],
        projection: dict[str, Any] | None = None,
    ) -> dict[str, Any] | None:
        """Find a single document matching the filter."""
        await self._ensure_indexes()
        result: dict[str, Any] | None = await self._collection.find_one(
            filter, projection=projection
        )
        return result

    async def update_one(
        self,
        filter: dict[str, Any],
        update: dict[str, Any],
        upsert: bool = False,
    ) -> None:
        """Update a single document.

        Args:
            filter: MongoDB query filter.
            update: Update operations (e.g., {"$max": {...}}).
            upsert: If True, insert if no matching document exists.
        """
        await self._ensure_indexes()
        await self._collection.update_one(filter, update, upsert=upsert)

    async def upsert_many(self, key: str, documents: list[dict[str, Any]]) -> None:
        """Upsert documents matched on ``key``, in order, in one round trip."""
        await self._ensure_indexes()
        if not documents:
            return
        await self._collection.bulk_write(
            [
                UpdateOne({key: document[key]}, {"$set": document}, upsert=True)
                for document in documents
            ],
            ordered=True,
        )

    async def delete_many(self, filter: dict[str, Any]) -> int:
        """Delete every document matching the filter.

        Returns:
            Number of documents deleted.
        """
        await self._ensure_indexes()
        result = await self._collection.delete_many(filter)
        return result.deleted_count
