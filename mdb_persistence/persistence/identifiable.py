"""
MongoDB persistence for documents with unique identifiers.
"""

import logging
from collections.abc import Iterable
from typing import Any, Generic, Optional, TypeVar

from pymongo import ReturnDocument

from ..constants import STORAGE_ID_FIELD
from .base import MongoPersistence
from .mapping import DocumentMapper, IdGenerator

T = TypeVar("T")
K = TypeVar("K")


class IdentifiableMongoPersistence(MongoPersistence[T], Generic[T, K]):
    """
    Persistence for documents of type ``T`` identified by a unique ``K``.

    Not-found is reported as ``None``, never as an error. Items without an
    identifier get one from ``id_generator`` on ``create`` and ``set``.

    Example:
        class DummyMongoPersistence(IdentifiableMongoPersistence[dict, str]):
            def __init__(self):
                super().__init__("dummies")
                self.ensure_index({"key": 1})

        persistence = DummyMongoPersistence()
        persistence.configure(config)
        await persistence.open("123")

        item = await persistence.create("123", {"key": "ABC"})
        item = await persistence.get_one_by_id("123", item["id"])
        await persistence.delete_by_id("123", item["id"])
    """

    def __init__(
        self,
        collection: str,
        mapper: Optional[DocumentMapper[T]] = None,
        id_generator: Optional[IdGenerator] = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        """
        Initialize the persistence.

        Raises:
            ValueError: If ``collection`` is empty
        """
        if not collection:
            raise ValueError("Collection name could not be empty")
        super().__init__(collection, mapper=mapper, id_generator=id_generator, logger=logger)

    async def get_list_by_ids(self, correlation_id: Optional[str], ids: Iterable[K]) -> list[T]:
        """
        Get documents by their identifiers.

        Result order follows the engine's scan order, not the order of ``ids``.
        """
        return await self.get_list_by_filter(correlation_id, {STORAGE_ID_FIELD: {"$in": list(ids)}})

    async def get_one_by_id(self, correlation_id: Optional[str], id: K) -> Optional[T]:
        collection = self._check_open(correlation_id)

        document = await collection.find_one({STORAGE_ID_FIELD: id})
        if document is None:
            self._logger.trace(
                "Nothing found from %s with id = %s",
                self._collection_name,
                id,
                correlation_id=correlation_id,
            )
            return None

        self._logger.trace(
            "Retrieved from %s with id = %s", self._collection_name, id, correlation_id=correlation_id
        )
        return self.mapper.to_public(document)

    async def set(self, correlation_id: Optional[str], item: Optional[T]) -> Optional[T]:
        """
        Create or replace a document.

        Returns:
            The stored item, or None when ``item`` is None
        """
        if item is None:
            return None
        collection = self._check_open(correlation_id)

        new_item = self.mapper.clone(item)
        if self.mapper.get_id(new_item) is None:
            new_item = self.mapper.set_id(new_item, self.id_generator())
        document = self.mapper.to_storage(new_item)
        id = document[STORAGE_ID_FIELD]

        result = await collection.find_one_and_replace(
            {STORAGE_ID_FIELD: id},
            document,
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )

        self._logger.trace(
            "Set in %s with id = %s", self._collection_name, id, correlation_id=correlation_id
        )
        if result is None:
            return None
        return self.mapper.to_public(result)

    async def update(self, correlation_id: Optional[str], item: Optional[T]) -> Optional[T]:
        """
        Update every field of an existing document.

        Returns:
            The updated item, or None when ``item`` has no identifier or was not found
        """
        if item is None or self.mapper.get_id(item) is None:
            return None
        collection = self._check_open(correlation_id)

        document = self.mapper.to_storage(self.mapper.clone(item))
        id = document.pop(STORAGE_ID_FIELD)
        if not document:
            return await self.get_one_by_id(correlation_id, id)

        result = await collection.find_one_and_update(
            {STORAGE_ID_FIELD: id},
            {"$set": document},
            return_document=ReturnDocument.AFTER,
        )

        self._logger.trace(
            "Updated in %s with id = %s", self._collection_name, id, correlation_id=correlation_id
        )
        if result is None:
            return None
        return self.mapper.to_public(result)

    async def update_partially(
        self, correlation_id: Optional[str], id: Optional[K], data: Optional[dict[str, Any]]
    ) -> Optional[T]:
        """
        Update only the given fields of an existing document.

        Fields not present in ``data`` are left untouched.

        Returns:
            The updated item, or None when ``id`` or ``data`` is missing or nothing was found
        """
        if id is None or data is None:
            return None
        collection = self._check_open(correlation_id)

        partial = self.mapper.to_storage_partial(dict(data))
        partial.pop(STORAGE_ID_FIELD, None)
        if not partial:
            return await self.get_one_by_id(correlation_id, id)

        result = await collection.find_one_and_update(
            {STORAGE_ID_FIELD: id},
            {"$set": partial},
            return_document=ReturnDocument.AFTER,
        )

        self._logger.trace(
            "Updated partially in %s with id = %s",
            self._collection_name,
            id,
            correlation_id=correlation_id,
        )
        if result is None:
            return None
        return self.mapper.to_public(result)

    async def delete_by_id(self, correlation_id: Optional[str], id: K) -> Optional[T]:
        """
        Delete a document by its identifier.

        Returns:
            The deleted item, or None when nothing was found
        """
        collection = self._check_open(correlation_id)

        result = await collection.find_one_and_delete({STORAGE_ID_FIELD: id})

        self._logger.trace(
            "Deleted from %s with id = %s", self._collection_name, id, correlation_id=correlation_id
        )
        if result is None:
            return None
        return self.mapper.to_public(result)

    async def delete_by_ids(self, correlation_id: Optional[str], ids: Iterable[K]) -> None:
        await self.delete_by_filter(correlation_id, {STORAGE_ID_FIELD: {"$in": list(ids)}})
