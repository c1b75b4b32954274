"""
MDB_PERSISTENCE - MongoDB Persistence

Reusable persistence components over motor: connection resolution,
connection lifecycle and generic CRUD, paging and identity management
for any document shape.
"""

import logging

# Configuration
from .config import ConfigParams, config_from_env, validate_options
# Connection resolution
from .connect import (ConnectionParams, CredentialParams, MemoryCredentialStore,
                      MemoryDiscovery, MongoConnectionResolver)
# Data types
from .data import DataPage, FilterParams, PagingParams
# Errors
from .exceptions import (ConfigurationError, InvalidStateError,
                         MongoConnectionError, MongoPersistenceError)
# Persistence
from .persistence import (ConnectionOwnership, IdentifiableMongoPersistence,
                          MapDocumentMapper, ModelDocumentMapper,
                          MongoConnection, MongoPersistence,
                          object_id_generator, uuid_id_generator)
# References
from .references import Descriptor, References

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Persistence
    "MongoConnection",
    "MongoPersistence",
    "IdentifiableMongoPersistence",
    "ConnectionOwnership",
    "MapDocumentMapper",
    "ModelDocumentMapper",
    "uuid_id_generator",
    "object_id_generator",
    # Connection resolution
    "MongoConnectionResolver",
    "ConnectionParams",
    "CredentialParams",
    "MemoryDiscovery",
    "MemoryCredentialStore",
    # Configuration
    "ConfigParams",
    "config_from_env",
    "validate_options",
    # References
    "Descriptor",
    "References",
    # Data
    "DataPage",
    "FilterParams",
    "PagingParams",
    # Errors
    "MongoPersistenceError",
    "ConfigurationError",
    "MongoConnectionError",
    "InvalidStateError",
]
