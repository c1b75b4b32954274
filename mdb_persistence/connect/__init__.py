"""
Connection resolution.

Resolves connection and credential fragments (directly configured or looked
up through discovery services and credential stores) into a MongoDB URI.
"""

from .connection_resolver import MongoConnectionResolver
from .params import ConnectionParams, CredentialParams
from .resolvers import (
    ConnectionResolver,
    CredentialResolver,
    ICredentialStore,
    IDiscovery,
    MemoryCredentialStore,
    MemoryDiscovery,
)

__all__ = [
    "MongoConnectionResolver",
    "ConnectionParams",
    "CredentialParams",
    "ConnectionResolver",
    "CredentialResolver",
    "IDiscovery",
    "ICredentialStore",
    "MemoryDiscovery",
    "MemoryCredentialStore",
]
