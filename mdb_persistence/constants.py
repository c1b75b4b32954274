"""
Constants for MDB_PERSISTENCE.

This module contains the shared defaults used by the connection and
persistence components so that magic numbers live in one place.
"""

from typing import Final

# ============================================================================
# CONNECTION DEFAULTS
# ============================================================================

DEFAULT_MAX_POOL_SIZE: Final[int] = 2
"""Default maximum MongoDB connection pool size."""

DEFAULT_KEEP_ALIVE_MS: Final[int] = 0
"""Default idle time before pooled connections are dropped (0 keeps them indefinitely)."""

DEFAULT_CONNECT_TIMEOUT_MS: Final[int] = 5000
"""Default connection timeout in milliseconds."""

DEFAULT_SOCKET_TIMEOUT_MS: Final[int] = 360000
"""Default socket timeout in milliseconds."""

DEFAULT_MONGO_PORT: Final[int] = 27017
"""Default MongoDB port used by environment based configuration."""

MONGO_URI_SCHEME: Final[str] = "mongodb://"
"""Scheme used when composing connection URIs."""

# Keys that map to structural URI parts and never end up in the query string
URI_RESERVED_KEYS: Final[tuple[str, ...]] = (
    "uri",
    "host",
    "port",
    "database",
    "username",
    "password",
)
"""Connection/credential keys consumed by URI composition."""

# ============================================================================
# PERSISTENCE DEFAULTS
# ============================================================================

DEFAULT_MAX_PAGE_SIZE: Final[int] = 100
"""Default maximum number of items returned in a single page."""

DEFAULT_CONNECTION_DEPENDENCY: Final[str] = "*:connection:mongodb:*:1.0"
"""Locator of the shared connection a persistence looks up in its references."""

DISCOVERY_LOCATOR: Final[str] = "*:discovery:*:*:*"
"""Locator of discovery services used to resolve connection fragments."""

CREDENTIAL_STORE_LOCATOR: Final[str] = "*:credential-store:*:*:*"
"""Locator of credential stores used to resolve credentials."""

STORAGE_ID_FIELD: Final[str] = "_id"
"""Identifier field name on the storage side."""

PUBLIC_ID_FIELD: Final[str] = "id"
"""Default identifier field name on the public side."""
