"""
Storage providers: generic CRUD and predicate queries over identity documents.
"""
from docstore_identity.storage.provider import (
    DocumentFeed,
    Query,
    StorageProvider,
    resolve_partition_key,
)
from docstore_identity.storage.shared import SharedContainerStorageProvider
from docstore_identity.storage.per_type import PerTypeStorageProvider
from docstore_identity.storage.factory import create_storage_provider

__all__ = [
    "DocumentFeed",
    "Query",
    "StorageProvider",
    "resolve_partition_key",
    "SharedContainerStorageProvider",
    "PerTypeStorageProvider",
    "create_storage_provider",
]
