"""
Connection and credential resolvers.

Connection fragments may point to a discovery service (``discovery_key``)
and credentials to a credential store (``store_key``). The resolvers look
those services up in the component references and replace symbolic
fragments with concrete ones.
"""

import logging
from typing import Optional, Protocol, runtime_checkable

from ..config import ConfigParams
from ..constants import CREDENTIAL_STORE_LOCATOR, DISCOVERY_LOCATOR
from ..exceptions import ConfigurationError
from ..observability import as_contextual_logger
from ..references import References
from .params import ConnectionParams, CredentialParams


@runtime_checkable
class IDiscovery(Protocol):
    """Discovery service resolving symbolic names to connection fragments."""

    async def resolve_all(self, correlation_id: Optional[str], key: str) -> list[ConnectionParams]:
        ...


@runtime_checkable
class ICredentialStore(Protocol):
    """Credential store resolving symbolic names to credentials."""

    async def lookup(self, correlation_id: Optional[str], key: str) -> Optional[CredentialParams]:
        ...


class ConnectionResolver:
    """
    Resolves connection fragments, going through discovery services when a
    fragment carries a ``discovery_key``.
    """

    def __init__(
        self,
        config: Optional[ConfigParams] = None,
        references: Optional[References] = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        self._connections: list[ConnectionParams] = []
        self._references: Optional[References] = None
        self._logger = as_contextual_logger(logger, __name__)
        if config is not None:
            self.configure(config)
        if references is not None:
            self.set_references(references)

    def configure(self, config: ConfigParams) -> None:
        self._connections.extend(ConnectionParams.many_from_config(config))

    def set_references(self, references: Optional[References]) -> None:
        self._references = references

    def get_all(self) -> list[ConnectionParams]:
        """Get all configured (unresolved) connection fragments."""
        return list(self._connections)

    def add(self, connection: ConnectionParams) -> None:
        self._connections.append(connection)

    async def _resolve_in_discovery(
        self, correlation_id: Optional[str], connection: ConnectionParams
    ) -> list[ConnectionParams]:
        key = connection.discovery_key
        discoveries = self._references.get_optional(DISCOVERY_LOCATOR) if self._references else []
        if not discoveries:
            raise ConfigurationError(
                f"Discovery wasn't found to resolve connection with key {key}",
                code="CANNOT_RESOLVE",
                correlation_id=correlation_id,
                config_key="discovery_key",
            )

        for discovery in discoveries:
            resolved = await discovery.resolve_all(correlation_id, key)
            if resolved:
                self._logger.debug(
                    "Resolved %d connection(s) for discovery key %s",
                    len(resolved),
                    key,
                    correlation_id=correlation_id,
                )
                return [ConnectionParams(item) for item in resolved]

        raise ConfigurationError(
            f"Connection with discovery key {key} was not found",
            code="CANNOT_RESOLVE",
            correlation_id=correlation_id,
            config_key="discovery_key",
        )

    async def resolve_all(self, correlation_id: Optional[str]) -> list[ConnectionParams]:
        """
        Resolve all connection fragments.

        Fragments without a discovery key are returned unchanged; fragments
        with one are replaced by what the discovery service returns.

        Raises:
            ConfigurationError: If a discovery key cannot be resolved
        """
        resolved: list[ConnectionParams] = []
        for connection in self._connections:
            if connection.use_discovery():
                resolved.extend(await self._resolve_in_discovery(correlation_id, connection))
            else:
                resolved.append(connection)
        return resolved


class CredentialResolver:
    """
    Resolves a single credential, going through credential stores when a
    credential carries a ``store_key``.
    """

    def __init__(
        self,
        config: Optional[ConfigParams] = None,
        references: Optional[References] = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ) -> None:
        self._credentials: list[CredentialParams] = []
        self._references: Optional[References] = None
        self._logger = as_contextual_logger(logger, __name__)
        if config is not None:
            self.configure(config)
        if references is not None:
            self.set_references(references)

    def configure(self, config: ConfigParams) -> None:
        self._credentials.extend(CredentialParams.many_from_config(config))

    def set_references(self, references: Optional[References]) -> None:
        self._references = references

    def get_all(self) -> list[CredentialParams]:
        return list(self._credentials)

    def add(self, credential: CredentialParams) -> None:
        self._credentials.append(credential)

    async def _lookup_in_stores(
        self, correlation_id: Optional[str], credential: CredentialParams
    ) -> Optional[CredentialParams]:
        key = credential.store_key
        stores = self._references.get_optional(CREDENTIAL_STORE_LOCATOR) if self._references else []
        if not stores:
            raise ConfigurationError(
                f"Credential store wasn't found to resolve credential with key {key}",
                code="NO_CREDENTIAL_STORE",
                correlation_id=correlation_id,
                config_key="store_key",
            )

        for store in stores:
            found = await store.lookup(correlation_id, key)
            if found:
                return CredentialParams(found)
        return None

    async def lookup(self, correlation_id: Optional[str]) -> Optional[CredentialParams]:
        """
        Look up the first usable credential.

        Returns:
            Resolved credential, or None when no credential is configured
            or none of the store lookups succeeded

        Raises:
            ConfigurationError: If a store key is used and no store is registered
        """
        for credential in self._credentials:
            if not credential.use_credential_store():
                return credential
            found = await self._lookup_in_stores(correlation_id, credential)
            if found is not None:
                return found
            self._logger.debug(
                "Credential with store key %s was not found",
                credential.store_key,
                correlation_id=correlation_id,
            )
        return None


class MemoryDiscovery:
    """
    Discovery service keeping connection fragments in memory.

    Usage:
        discovery = MemoryDiscovery()
        discovery.register(None, "main", ConnectionParams(host="mongo1", port=27017))
    """

    def __init__(self, config: Optional[ConfigParams] = None) -> None:
        self._items: list[tuple[str, ConnectionParams]] = []
        if config is not None:
            self.configure(config)

    def configure(self, config: ConfigParams) -> None:
        """Read fragments from sections named by key: ``<key>.host=...``."""
        for key in config.get_section_names():
            self._items.append((key, ConnectionParams(config.get_section(key))))

    def register(self, correlation_id: Optional[str], key: str, connection: ConnectionParams) -> None:
        self._items.append((key, ConnectionParams(connection)))

    async def resolve_all(self, correlation_id: Optional[str], key: str) -> list[ConnectionParams]:
        return [ConnectionParams(item) for item_key, item in self._items if item_key == key]


class MemoryCredentialStore:
    """Credential store keeping credentials in memory."""

    def __init__(self, config: Optional[ConfigParams] = None) -> None:
        self._items: dict[str, CredentialParams] = {}
        if config is not None:
            self.configure(config)

    def configure(self, config: ConfigParams) -> None:
        """Read credentials from sections named by key: ``<key>.username=...``."""
        for key in config.get_section_names():
            self._items[key] = CredentialParams(config.get_section(key))

    def store(self, correlation_id: Optional[str], key: str, credential: Optional[CredentialParams]) -> None:
        if credential is None:
            self._items.pop(key, None)
        else:
            self._items[key] = CredentialParams(credential)

    async def lookup(self, correlation_id: Optional[str], key: str) -> Optional[CredentialParams]:
        return self._items.get(key)
