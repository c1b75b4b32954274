"""
MongoDB persistence components.

Provides the connection component, the generic and identifiable
persistences and the document mappers they use.
"""

from .base import ConnectionOwnership, MongoPersistence
from .connection import MongoConnection
from .identifiable import IdentifiableMongoPersistence
from .mapping import (
    DocumentMapper,
    Identifier,
    IdGenerator,
    MapDocumentMapper,
    ModelDocumentMapper,
    object_id_generator,
    uuid_id_generator,
)

__all__ = [
    # Connection
    "MongoConnection",
    # Persistence
    "MongoPersistence",
    "IdentifiableMongoPersistence",
    "ConnectionOwnership",
    # Mapping
    "DocumentMapper",
    "MapDocumentMapper",
    "ModelDocumentMapper",
    "Identifier",
    "IdGenerator",
    "uuid_id_generator",
    "object_id_generator",
]
