"""
MongoDB connection component.

Owns the lifecycle of a single motor client and database handle. A
connection can be shared by several persistence components through their
references to reduce the number of open database connections.

Configuration parameters:

- connection(s):
  - discovery_key:     (optional) key to retrieve the connection from a discovery service
  - host:              host name or IP address
  - port:              port number
  - database:          database name
  - uri:               full connection string with all parameters in it
- credential(s):
  - store_key:         (optional) key to retrieve the credential from a credential store
  - username:          (optional) user name
  - password:          (optional) user password
- options:
  - max_pool_size:     (optional) maximum connection pool size (default: 2)
  - keep_alive:        (optional) idle time in ms before a pooled connection is dropped,
                       0 keeps connections indefinitely (default: 0)
  - connect_timeout:   (optional) connection timeout in milliseconds (default: 5000)
  - socket_timeout:    (optional) socket timeout in milliseconds (default: 360000)
  - max_page_size:     (optional) maximum page size (default: 100)
  - replica_set:       (optional) name of replica set
  - ssl:               (optional) enable SSL connection (not applied in this version)
  - auth_source:       (optional) authentication source
  - auth_user:         (optional) authentication user name
  - auth_password:     (optional) authentication user password

References:

- *:discovery:*:*:*          (optional) discovery services
- *:credential-store:*:*:*   (optional) credential stores
"""

import asyncio
import logging
import time
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError
from pymongo.uri_parser import parse_uri

from ..config import ConfigParams, validate_options
from ..connect import ConnectionParams, MongoConnectionResolver
from ..constants import (
    DEFAULT_CONNECT_TIMEOUT_MS,
    DEFAULT_KEEP_ALIVE_MS,
    DEFAULT_MAX_PAGE_SIZE,
    DEFAULT_MAX_POOL_SIZE,
    DEFAULT_SOCKET_TIMEOUT_MS,
)
from ..exceptions import MongoConnectionError, MongoPersistenceError
from ..observability import as_contextual_logger, record_operation
from ..references import References


class MongoConnection:
    """
    Manages a MongoDB client connection.

    ``open`` and ``close`` are serialized by an internal lock and ``open`` on
    an already open connection is a no-op, so a connection shared by several
    owners is never connected twice.

    Example:
        connection = MongoConnection()
        connection.configure(ConfigParams.from_tuples(
            "connection.host", "localhost",
            "connection.port", 27017,
            "connection.database", "test",
        ))
        await connection.open("123")
        db = connection.database
        ...
        await connection.close("123")
    """

    _default_config = ConfigParams.from_tuples(
        "options.max_pool_size", DEFAULT_MAX_POOL_SIZE,
        "options.keep_alive", DEFAULT_KEEP_ALIVE_MS,
        "options.connect_timeout", DEFAULT_CONNECT_TIMEOUT_MS,
        "options.socket_timeout", DEFAULT_SOCKET_TIMEOUT_MS,
        "options.max_page_size", DEFAULT_MAX_PAGE_SIZE,
    )  # fmt: skip

    def __init__(self, logger: logging.Logger | logging.LoggerAdapter | None = None) -> None:
        """
        Initialize the connection.

        Args:
            logger: Optional logger; defaults to the package logger
        """
        self._logger = as_contextual_logger(logger, __name__)
        self.connection_resolver = MongoConnectionResolver(logger=self._logger)
        self.options = ConfigParams(self._default_config.get_section("options"))

        # Connection state
        self._client: AsyncIOMotorClient | None = None
        self._database: AsyncIOMotorDatabase | None = None
        self._database_name: str | None = None
        self._configured_database: str | None = None
        self._lock = asyncio.Lock()

    def configure(self, config: ConfigParams) -> None:
        """
        Configure the connection.

        Args:
            config: Configuration parameters; missing options take documented defaults

        Raises:
            ConfigurationError: If the options section has invalid values
        """
        config = ConfigParams(config).set_defaults(self._default_config)
        options = config.get_section("options")
        validate_options(options)

        self.connection_resolver.configure(config)
        self.options = self.options.override(options)

        connection = ConnectionParams.from_config(config)
        if connection is not None and connection.database:
            self._configured_database = connection.database

    def set_references(self, references: Optional[References]) -> None:
        self.connection_resolver.set_references(references)

    def is_open(self) -> bool:
        """Check if a client is connected."""
        return self._client is not None

    def _compose_settings(self) -> dict[str, Any]:
        """Build motor client keyword arguments from the configured options."""
        settings: dict[str, Any] = {
            "maxPoolSize": self.options.get_as_integer("max_pool_size", DEFAULT_MAX_POOL_SIZE),
            "connectTimeoutMS": self.options.get_as_integer(
                "connect_timeout", DEFAULT_CONNECT_TIMEOUT_MS
            ),
            "socketTimeoutMS": self.options.get_as_integer(
                "socket_timeout", DEFAULT_SOCKET_TIMEOUT_MS
            ),
        }

        keep_alive = self.options.get_as_integer("keep_alive", DEFAULT_KEEP_ALIVE_MS)
        if keep_alive > 0:
            settings["maxIdleTimeMS"] = keep_alive

        replica_set = self.options.get_as_nullable_string("replica_set")
        if replica_set:
            settings["replicaSet"] = replica_set

        # TODO: apply options.ssl once TLS certificate options are configurable
        auth_source = self.options.get_as_string("auth_source")
        auth_user = self.options.get_as_string("auth_user")
        auth_password = self.options.get_as_string("auth_password")
        if auth_source and auth_user and auth_password:
            settings["authSource"] = auth_source
            settings["username"] = auth_user
            settings["password"] = auth_password

        return settings

    def _parse_database_name(self, uri: str) -> str | None:
        try:
            return parse_uri(uri).get("database")
        except (PyMongoError, ValueError):
            return None

    async def open(self, correlation_id: Optional[str] = None) -> None:
        """
        Open the connection.

        Resolves the URI, creates the client and verifies it with a ping.

        Args:
            correlation_id: (optional) transaction id to trace execution through call chain

        Raises:
            MongoConnectionError: CONNECT_FAILED, chained to the underlying cause
        """
        async with self._lock:
            if self._client is not None:
                return

            start_time = time.time()
            client: AsyncIOMotorClient | None = None
            try:
                uri = await self.connection_resolver.resolve(correlation_id)

                self._logger.debug("Connecting to mongodb", correlation_id=correlation_id)
                client = AsyncIOMotorClient(uri, **self._compose_settings())
                await client.admin.command("ping")

                database_name = self._parse_database_name(uri) or self._configured_database
                if not database_name:
                    raise MongoConnectionError(
                        "Database name is not set in the connection",
                        code="CONNECT_FAILED",
                        correlation_id=correlation_id,
                    )
                database = client[database_name]
            except (
                MongoPersistenceError,
                PyMongoError,
                TypeError,
                ValueError,
                AttributeError,
                KeyError,
            ) as e:
                if client is not None:
                    client.close()
                duration_ms = (time.time() - start_time) * 1000
                record_operation(
                    "connection.open",
                    duration_ms,
                    success=False,
                    database=self._configured_database,
                    error_type=type(e).__name__,
                )
                self._logger.error(
                    "Connection to mongodb failed: %s",
                    e,
                    correlation_id=correlation_id,
                    extra={"error_type": type(e).__name__},
                )
                if isinstance(e, MongoConnectionError):
                    raise
                raise MongoConnectionError(
                    f"Connection to mongodb failed: {e}",
                    code="CONNECT_FAILED",
                    correlation_id=correlation_id,
                    context={"error_type": type(e).__name__},
                ) from e

            self._client = client
            self._database = database
            self._database_name = database_name

            duration_ms = (time.time() - start_time) * 1000
            record_operation("connection.open", duration_ms, success=True, database=database_name)
            self._logger.debug(
                "Connected to mongodb database %s",
                database_name,
                correlation_id=correlation_id,
                extra={"duration_ms": round(duration_ms, 2)},
            )

    async def close(self, correlation_id: Optional[str] = None) -> None:
        """
        Close the connection and free used resources.

        State is cleared even when closing the client fails.

        Raises:
            MongoConnectionError: DISCONNECT_FAILED, chained to the underlying cause
        """
        async with self._lock:
            if self._client is None:
                return

            start_time = time.time()
            client = self._client
            database_name = self._database_name
            try:
                client.close()
            except PyMongoError as e:
                record_operation(
                    "connection.close",
                    (time.time() - start_time) * 1000,
                    success=False,
                    database=database_name,
                    error_type=type(e).__name__,
                )
                raise MongoConnectionError(
                    f"Disconnect from mongodb failed: {e}",
                    code="DISCONNECT_FAILED",
                    correlation_id=correlation_id,
                ) from e
            finally:
                self._client = None
                self._database = None
                self._database_name = None

            record_operation(
                "connection.close", (time.time() - start_time) * 1000, success=True, database=database_name
            )
            self._logger.debug(
                "Disconnected from mongodb database %s", database_name, correlation_id=correlation_id
            )

    @property
    def client(self) -> AsyncIOMotorClient | None:
        """The motor client, or None when the connection is closed."""
        return self._client

    @property
    def database(self) -> AsyncIOMotorDatabase | None:
        """The database handle, or None when the connection is closed."""
        return self._database

    @property
    def database_name(self) -> str | None:
        """The database name, or None when the connection is closed."""
        return self._database_name

    def get_connection(self) -> AsyncIOMotorClient | None:
        return self._client

    def get_database(self) -> AsyncIOMotorDatabase | None:
        return self._database

    def get_database_name(self) -> str | None:
        return self._database_name
