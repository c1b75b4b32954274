"""
MongoDB connection URI resolution.

Turns connection fragments (possibly several cluster nodes, possibly behind
a discovery service) and one credential (possibly behind a credential
store) into a single ``mongodb://`` connection URI.

Configuration parameters:

- connection(s):
  - discovery_key:   (optional) key to retrieve the connection from a discovery service
  - host:            host name or IP address
  - port:            port number
  - database:        database name
  - uri:             full connection string, used verbatim when present
- credential(s):
  - store_key:       (optional) key to retrieve the credential from a credential store
  - username:        user name
  - password:        user password

References:

- *:discovery:*:*:*          (optional) discovery services
- *:credential-store:*:*:*   (optional) credential stores
"""

import asyncio
import logging
from typing import Optional

from ..config import ConfigParams
from ..constants import MONGO_URI_SCHEME, URI_RESERVED_KEYS
from ..exceptions import ConfigurationError
from ..observability import as_contextual_logger
from ..references import References
from .params import ConnectionParams, CredentialParams
from .resolvers import ConnectionResolver, CredentialResolver


class MongoConnectionResolver:
    """
    Resolves, validates and composes a MongoDB connection URI.

    Example:
        resolver = MongoConnectionResolver()
        resolver.configure(ConfigParams.from_tuples(
            "connection.host", "localhost",
            "connection.port", 27017,
            "connection.database", "test",
        ))
        uri = await resolver.resolve("123")  # mongodb://localhost:27017/test
    """

    def __init__(self, logger: logging.Logger | logging.LoggerAdapter | None = None) -> None:
        self._logger = as_contextual_logger(logger, __name__)
        self.connection_resolver = ConnectionResolver(logger=self._logger)
        self.credential_resolver = CredentialResolver(logger=self._logger)

    def configure(self, config: ConfigParams) -> None:
        self.connection_resolver.configure(config)
        self.credential_resolver.configure(config)

    def set_references(self, references: Optional[References]) -> None:
        self.connection_resolver.set_references(references)
        self.credential_resolver.set_references(references)

    def _validate_connection(
        self, correlation_id: Optional[str], connection: ConnectionParams
    ) -> None:
        if connection.uri:
            return

        if not connection.host:
            raise ConfigurationError(
                "Connection host is not set",
                code="NO_HOST",
                correlation_id=correlation_id,
                config_key="connection.host",
            )
        if connection.port == 0:
            raise ConfigurationError(
                "Connection port is not set",
                code="NO_PORT",
                correlation_id=correlation_id,
                config_key="connection.port",
            )
        if not connection.database:
            raise ConfigurationError(
                "Connection database is not set",
                code="NO_DATABASE",
                correlation_id=correlation_id,
                config_key="connection.database",
            )

    def _validate_connections(
        self, correlation_id: Optional[str], connections: list[ConnectionParams]
    ) -> None:
        if not connections:
            raise ConfigurationError(
                "Database connection is not set",
                code="NO_CONNECTION",
                correlation_id=correlation_id,
            )
        for connection in connections:
            self._validate_connection(correlation_id, connection)

    def _compose_uri(
        self, connections: list[ConnectionParams], credential: Optional[CredentialParams]
    ) -> str:
        for connection in connections:
            if connection.uri:
                return connection.uri

        hosts = ",".join(
            f"{connection.host}:{connection.port}" if connection.port else connection.host
            for connection in connections
        )

        database = next((c.database for c in connections if c.database), "")
        if database:
            database = f"/{database}"

        auth = ""
        if credential is not None and credential.username:
            if credential.password:
                auth = f"{credential.username}:{credential.password}@"
            else:
                auth = f"{credential.username}@"

        # Remaining keys become query parameters; later fragments override
        # values of earlier ones but keep the first-seen key order.
        options = ConfigParams()
        for connection in connections:
            options.update(connection)
        if credential is not None:
            options.update(credential)
        for key in URI_RESERVED_KEYS:
            options.pop(key, None)

        params = "&".join(
            f"{key}={value}" if options.get_as_string(key) else key for key, value in options.items()
        )
        if params:
            params = f"?{params}"

        return f"{MONGO_URI_SCHEME}{auth}{hosts}{database}{params}"

    async def _resolve_connections(self, correlation_id: Optional[str]) -> list[ConnectionParams]:
        connections = await self.connection_resolver.resolve_all(correlation_id)
        self._validate_connections(correlation_id, connections)
        return connections

    async def resolve(self, correlation_id: Optional[str]) -> str:
        """
        Resolve the MongoDB connection URI.

        Connections and credentials are looked up concurrently; both lookups
        must succeed before the URI is composed.

        Args:
            correlation_id: (optional) transaction id to trace execution through call chain

        Returns:
            Connection URI

        Raises:
            ConfigurationError: If connections are missing, invalid or unresolvable
        """
        connections, credential = await asyncio.gather(
            self._resolve_connections(correlation_id),
            self.credential_resolver.lookup(correlation_id),
            return_exceptions=True,
        )
        # Connection errors take precedence over credential errors
        if isinstance(connections, BaseException):
            self._logger.error(
                "Failed to resolve MongoDB connection: %s", connections, correlation_id=correlation_id
            )
            raise connections
        if isinstance(credential, BaseException):
            self._logger.error(
                "Failed to resolve MongoDB credential: %s", credential, correlation_id=correlation_id
            )
            raise credential

        return self._compose_uri(connections, credential)
