"""Storage provider factory for settings-based strategy selection.

This factory provisions the containers and creates the provider matching
settings.storage_strategy:
- "shared": SharedContainerStorageProvider (one container, discriminator partitions)
- "per_type": PerTypeStorageProvider (one container per entity type)
"""
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient

from docstore_identity.config import Settings, get_settings
from docstore_identity.core.exceptions import ConfigurationError
from docstore_identity.database.connections import get_mongo_client
from docstore_identity.database.databases.identity_db import Collections
from docstore_identity.database.registry import (
    ensure_database_and_containers,
    per_type_container_id,
)
from docstore_identity.storage.per_type import PerTypeStorageProvider
from docstore_identity.storage.provider import StorageProvider
from docstore_identity.storage.shared import SharedContainerStorageProvider


async def create_storage_provider(
    settings: Optional[Settings] = None,
    client: Optional[AsyncIOMotorClient] = None,
) -> StorageProvider:
    """Create the storage provider selected by configuration.

    Args:
        settings: Identity store settings (default: get_settings())
        client: Document store client (default: shared cached client)

    Returns:
        StorageProvider: The configured provider, containers provisioned

    Raises:
        ConfigurationError: If the strategy is unknown or provisioning finds
            a conflicting partition-key path
    """
    settings = settings or get_settings()
    if client is None:
        client = await get_mongo_client(settings)

    containers = await ensure_database_and_containers(client, settings)

    if settings.storage_strategy == "shared":
        return SharedContainerStorageProvider(
            containers[settings.container_id], page_size=settings.page_size
        )

    elif settings.storage_strategy == "per_type":
        return PerTypeStorageProvider(
            {
                collection: containers[per_type_container_id(settings, collection)]
                for collection in Collections.PER_TYPE
            },
            page_size=settings.page_size,
        )

    else:
        raise ConfigurationError(
            f"Invalid storage strategy: {settings.storage_strategy}. "
            "Expected 'shared' or 'per_type'"
        )
