"""
Abstract MongoDB persistence.

:class:`MongoPersistence` binds one collection through a
:class:`MongoConnection` (created and owned by the persistence, or shared
through references) and implements generic filtered, paged and counted reads,
inserts and deletes. Concrete persistences add their own query methods on top
of the protected primitives.

Configuration parameters:

- collection:                  (optional) collection name
- dependencies:
  - connection:                (optional) locator of a shared connection
                               (default: ``*:connection:mongodb:*:1.0``)
- connection(s), credential(s), options:
                               used when the persistence creates its own
                               connection, see :class:`MongoConnection`

References:

- *:connection:mongodb:*:1.0   (optional) shared connection
- *:discovery:*:*:*            (optional) discovery services
- *:credential-store:*:*:*     (optional) credential stores
"""

import enum
import logging
import random
from typing import Any, Generic, Optional, TypeVar

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo import IndexModel
from pymongo.errors import PyMongoError

from ..config import ConfigParams
from ..constants import DEFAULT_CONNECTION_DEPENDENCY, DEFAULT_MAX_PAGE_SIZE
from ..data import DataPage, PagingParams
from ..exceptions import (
    ConfigurationError,
    InvalidStateError,
    MongoConnectionError,
    MongoPersistenceError,
)
from ..observability import as_contextual_logger
from ..references import References
from .connection import MongoConnection
from .mapping import DocumentMapper, IdGenerator, MapDocumentMapper, uuid_id_generator

T = TypeVar("T")

Sort = Any
"""Sort specification: ``{"field": 1}`` or ``[("field", 1)]``."""


class ConnectionOwnership(enum.Enum):
    """Who opens and closes the connection a persistence is bound to."""

    OWNED = "owned"
    """Created by the persistence; opened and closed with it."""

    BORROWED = "borrowed"
    """Shared through references; opened and closed by its owner."""


def _as_index_keys(keys: Any) -> Any:
    if isinstance(keys, dict):
        return list(keys.items())
    return keys


class MongoPersistence(Generic[T]):
    """
    Abstract persistence that stores documents of type ``T`` in one collection.

    Every outbound document goes through ``mapper.to_storage`` and every
    inbound document through ``mapper.to_public`` exactly once.

    Example:
        class DummyMongoPersistence(MongoPersistence[dict]):
            def __init__(self):
                super().__init__("dummies")

            async def get_page_by_key(self, correlation_id, key, paging):
                return await self.get_page_by_filter(
                    correlation_id, {"key": key}, paging, sort={"key": 1}
                )

        persistence = DummyMongoPersistence()
        persistence.configure(ConfigParams.from_tuples(
            "connection.host", "localhost",
            "connection.port", 27017,
            "connection.database", "test",
        ))
        await persistence.open("123")
        await persistence.create("123", {"id": "1", "key": "ABC"})
        page = await persistence.get_page_by_key("123", "ABC", PagingParams(take=10))
    """

    def __init__(
        self,
        collection: Optional[str] = None,
        mapper: Optional[DocumentMapper[T]] = None,
        id_generator: Optional[IdGenerator] = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        """
        Initialize the persistence.

        Args:
            collection: (optional) collection name, may also come from configuration
            mapper: (optional) document mapper, defaults to dict documents
            id_generator: (optional) identifier generator, defaults to 32-char hex
            logger: (optional) logger, defaults to the package logger
        """
        self._collection_name = collection
        self.mapper: DocumentMapper[T] = mapper or MapDocumentMapper()
        self.id_generator: IdGenerator = id_generator or uuid_id_generator
        self._injected_logger = logger
        self._logger = as_contextual_logger(logger, __name__, collection=collection)

        self._config = ConfigParams()
        self._references: Optional[References] = None
        self._dependency = DEFAULT_CONNECTION_DEPENDENCY
        self._max_page_size = DEFAULT_MAX_PAGE_SIZE
        self._indexes: list[IndexModel] = []

        self._connection: Optional[MongoConnection] = None
        self._ownership = ConnectionOwnership.OWNED

        self._client: Optional[AsyncIOMotorClient] = None
        self._database: Optional[AsyncIOMotorDatabase] = None
        self._database_name: Optional[str] = None
        self._collection: Optional[AsyncIOMotorCollection] = None
        self._opened = False

    def configure(self, config: ConfigParams) -> None:
        """
        Configure the persistence.

        The configuration is kept and handed to the connection the
        persistence creates when no shared connection is referenced.
        """
        self._config = ConfigParams(config)
        self._collection_name = config.get_as_nullable_string("collection") or self._collection_name
        self._logger = as_contextual_logger(
            self._injected_logger, __name__, collection=self._collection_name
        )
        self._dependency = config.get_as_string(
            "dependencies.connection", DEFAULT_CONNECTION_DEPENDENCY
        )
        self._max_page_size = self._config.get_as_integer(
            "options.max_page_size", self._max_page_size
        )

    def set_references(self, references: Optional[References]) -> None:
        """
        Set references to dependent components.

        Uses a referenced connection when one matches ``dependencies.connection``;
        otherwise creates and owns a private connection.
        """
        self._references = references
        connection = references.get_one_optional(self._dependency) if references else None
        if connection is None:
            self._connection = self._create_connection()
            self._ownership = ConnectionOwnership.OWNED
        else:
            self._connection = connection
            self._ownership = ConnectionOwnership.BORROWED

    def unset_references(self) -> None:
        """Unset the connection reference."""
        self._connection = None

    def _create_connection(self) -> MongoConnection:
        connection = MongoConnection(logger=self._logger)
        connection.configure(self._config)
        connection.set_references(self._references)
        return connection

    def ensure_index(self, keys: Any, **options: Any) -> None:
        """
        Declare an index applied when the persistence is opened.

        Declarations are applied in order, once per open, and are not
        reconciled against indexes already present in the collection.

        Args:
            keys: Index keys, e.g. ``{"key": 1}`` or ``[("key", 1)]``
            **options: Index options, e.g. ``unique=True``, ``name="key_idx"``
        """
        if keys is None:
            return
        self._indexes.append(IndexModel(_as_index_keys(keys), **options))

    def is_open(self) -> bool:
        return self._opened

    def _reset_bindings(self) -> None:
        self._client = None
        self._database = None
        self._database_name = None
        self._collection = None

    async def open(self, correlation_id: Optional[str] = None) -> None:
        """
        Open the persistence.

        Opens the owned connection, binds the collection and applies the
        declared indexes. A failure at any step leaves the persistence closed.

        Raises:
            MongoConnectionError: CONNECT_FAILED or CREATE_IDX_FAILED
            ConfigurationError: If the owned connection is misconfigured
        """
        if self._opened:
            return

        if self._connection is None:
            self._connection = self._create_connection()
            self._ownership = ConnectionOwnership.OWNED

        connection = self._connection
        if self._ownership is ConnectionOwnership.OWNED:
            await connection.open(correlation_id)

        try:
            if not connection.is_open():
                raise MongoConnectionError(
                    "MongoDB connection is not opened",
                    code="CONNECT_FAILED",
                    correlation_id=correlation_id,
                )
            if not self._collection_name:
                raise MongoConnectionError(
                    "MongoDB collection is not available",
                    code="CONNECT_FAILED",
                    correlation_id=correlation_id,
                )

            self._client = connection.client
            self._database = connection.database
            self._database_name = connection.database_name
            self._collection = self._database[self._collection_name]

            if self._indexes:
                self._logger.debug(
                    "Creating %d index(es) on %s",
                    len(self._indexes),
                    self._collection_name,
                    correlation_id=correlation_id,
                )
                try:
                    await self._collection.create_indexes(self._indexes)
                except PyMongoError as e:
                    raise MongoConnectionError(
                        f"Failed to create indexes on {self._collection_name}: {e}",
                        code="CREATE_IDX_FAILED",
                        correlation_id=correlation_id,
                    ) from e
        except MongoPersistenceError as e:
            self._reset_bindings()
            self._logger.error(
                "Failed to open persistence for %s: %s",
                self._collection_name,
                e,
                correlation_id=correlation_id,
            )
            if self._ownership is ConnectionOwnership.OWNED:
                try:
                    await connection.close(correlation_id)
                except MongoConnectionError as close_error:
                    self._logger.debug(
                        "Failed to close connection after open failure: %s",
                        close_error,
                        correlation_id=correlation_id,
                    )
            raise

        self._opened = True
        self._logger.debug(
            "Connected to mongodb database %s, collection %s",
            self._database_name,
            self._collection_name,
            correlation_id=correlation_id,
        )

    async def close(self, correlation_id: Optional[str] = None) -> None:
        """
        Close the persistence and its owned connection.

        When closing the owned connection fails, the persistence stays open
        so the call can be retried.

        Raises:
            InvalidStateError: NO_CONNECTION if the connection reference was unset
            MongoConnectionError: DISCONNECT_FAILED
        """
        if not self._opened:
            return

        if self._connection is None:
            raise InvalidStateError(
                "MongoDB connection is missing",
                code="NO_CONNECTION",
                correlation_id=correlation_id,
            )

        if self._ownership is ConnectionOwnership.OWNED:
            await self._connection.close(correlation_id)

        self._opened = False
        self._reset_bindings()

    async def clear(self, correlation_id: Optional[str] = None) -> None:
        """
        Drop the bound collection.

        Raises:
            ConfigurationError: NO_COLLECTION if no collection name is configured
            InvalidStateError: NOT_OPENED if the persistence is not open
            MongoConnectionError: CLEAR_FAILED
        """
        if not self._collection_name:
            raise ConfigurationError(
                "Collection name is not defined",
                code="NO_COLLECTION",
                correlation_id=correlation_id,
                config_key="collection",
            )
        collection = self._check_open(correlation_id)

        try:
            await collection.drop()
        except PyMongoError as e:
            raise MongoConnectionError(
                f"Clear collection {self._collection_name} failed: {e}",
                code="CLEAR_FAILED",
                correlation_id=correlation_id,
            ) from e

    def _check_open(self, correlation_id: Optional[str]) -> AsyncIOMotorCollection:
        if not self._opened or self._collection is None:
            raise InvalidStateError(
                f"Persistence for {self._collection_name} is not opened",
                code="NOT_OPENED",
                correlation_id=correlation_id,
            )
        return self._collection

    def _find_options(
        self, sort: Optional[Sort], projection: Optional[Any]
    ) -> dict[str, Any]:
        options: dict[str, Any] = {}
        if sort:
            options["sort"] = _as_index_keys(sort)
        if projection:
            options["projection"] = projection
        return options

    async def _read_documents(self, correlation_id: Optional[str], cursor: Any) -> list[T]:
        items: list[T] = []
        async for document in cursor:
            try:
                items.append(self.mapper.to_public(document))
            except (TypeError, ValueError) as e:
                self._logger.trace(
                    "Skipped undecodable document in %s: %s",
                    self._collection_name,
                    e,
                    correlation_id=correlation_id,
                )
        return items

    async def create(self, correlation_id: Optional[str], item: Optional[T]) -> Optional[T]:
        """
        Create a document; assigns a new identifier when the item has none.

        Returns:
            Created item, or None when ``item`` is None
        """
        if item is None:
            return None
        collection = self._check_open(correlation_id)

        new_item = self.mapper.clone(item)
        if self.mapper.get_id(new_item) is None:
            new_item = self.mapper.set_id(new_item, self.id_generator())
        document = self.mapper.to_storage(new_item)

        await collection.insert_one(document)

        self._logger.trace(
            "Created in %s with id = %s",
            self._collection_name,
            document.get("_id"),
            correlation_id=correlation_id,
        )
        return self.mapper.to_public(document)

    async def get_page_by_filter(
        self,
        correlation_id: Optional[str],
        filter: Optional[dict[str, Any]],
        paging: Optional[PagingParams] = None,
        sort: Optional[Sort] = None,
        projection: Optional[Any] = None,
    ) -> DataPage[T]:
        """
        Get a page of documents matching a filter.

        This method shall be called by a public ``get_page_by_filter``
        method of a child class that composes the filter from its own
        filter parameters.

        Args:
            correlation_id: (optional) transaction id to trace execution through call chain
            filter: MongoDB query document
            paging: (optional) paging parameters; ``total`` requests a second counting pass
            sort: (optional) sort specification
            projection: (optional) projection document

        Returns:
            Page of items; ``total`` is 0 unless paging requested it
        """
        collection = self._check_open(correlation_id)
        filter = filter or {}
        paging = PagingParams.from_value(paging)

        options = self._find_options(sort, projection)
        skip = paging.get_skip(-1)
        if skip >= 0:
            options["skip"] = skip
        options["limit"] = paging.get_take(self._max_page_size)

        items = await self._read_documents(correlation_id, collection.find(filter, **options))

        self._logger.trace(
            "Retrieved %d from %s", len(items), self._collection_name, correlation_id=correlation_id
        )

        total = 0
        if paging.total:
            total = await collection.count_documents(filter)
        return DataPage(data=items, total=total)

    async def get_count_by_filter(
        self, correlation_id: Optional[str], filter: Optional[dict[str, Any]]
    ) -> int:
        collection = self._check_open(correlation_id)
        count = await collection.count_documents(filter or {})
        self._logger.trace(
            "Counted %d items in %s", count, self._collection_name, correlation_id=correlation_id
        )
        return count

    async def get_list_by_filter(
        self,
        correlation_id: Optional[str],
        filter: Optional[dict[str, Any]],
        sort: Optional[Sort] = None,
        projection: Optional[Any] = None,
    ) -> list[T]:
        """Get all documents matching a filter, in the engine's scan order unless sorted."""
        collection = self._check_open(correlation_id)
        cursor = collection.find(filter or {}, **self._find_options(sort, projection))
        items = await self._read_documents(correlation_id, cursor)

        self._logger.trace(
            "Retrieved %d from %s", len(items), self._collection_name, correlation_id=correlation_id
        )
        return items

    async def get_one_random(
        self, correlation_id: Optional[str], filter: Optional[dict[str, Any]]
    ) -> Optional[T]:
        """
        Get a random document matching a filter.

        Reads one document at a random offset, so the cost grows with the
        number of matching documents.

        Returns:
            Random item, or None when nothing matches
        """
        collection = self._check_open(correlation_id)
        filter = filter or {}

        count = await collection.count_documents(filter)
        offset = random.randrange(count) if count > 0 else 0

        async for document in collection.find(filter, skip=offset, limit=1):
            self._logger.trace(
                "Retrieved random item from %s", self._collection_name, correlation_id=correlation_id
            )
            return self.mapper.to_public(document)
        return None

    async def delete_by_filter(
        self, correlation_id: Optional[str], filter: Optional[dict[str, Any]]
    ) -> None:
        """Delete all documents matching a filter."""
        collection = self._check_open(correlation_id)
        result = await collection.delete_many(filter or {})
        self._logger.trace(
            "Deleted %d items from %s",
            result.deleted_count,
            self._collection_name,
            correlation_id=correlation_id,
        )

    @property
    def collection_name(self) -> Optional[str]:
        return self._collection_name

    @property
    def max_page_size(self) -> int:
        return self._max_page_size

    @property
    def connection(self) -> Optional[MongoConnection]:
        return self._connection

    @property
    def ownership(self) -> ConnectionOwnership:
        return self._ownership

    @property
    def client(self) -> Optional[AsyncIOMotorClient]:
        return self._client

    @property
    def database(self) -> Optional[AsyncIOMotorDatabase]:
        return self._database

    @property
    def database_name(self) -> Optional[str]:
        return self._database_name

    @property
    def collection(self) -> Optional[AsyncIOMotorCollection]:
        """Bound collection handle; re-acquired on every open."""
        return self._collection
