"""
Database module - document store connection, containers and provisioning.
"""
from docstore_identity.database.connections import (
    get_mongo_client,
    close_connections,
    get_database,
)
from docstore_identity.database.container import (
    DocumentContainer,
    FeedIterator,
    ItemResponse,
    PartitionKey,
)
from docstore_identity.database.databases import identity_db

__all__ = [
    "get_mongo_client",
    "close_connections",
    "get_database",
    "DocumentContainer",
    "FeedIterator",
    "ItemResponse",
    "PartitionKey",
    "identity_db",
]
