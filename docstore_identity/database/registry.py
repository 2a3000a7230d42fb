"""
Database and container provisioning.
Ensures the identity database and its containers exist with the expected
partition-key path on startup. Safe to run any number of times.
"""
import logging
from datetime import datetime, timezone

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import CollectionInvalid

from docstore_identity.config import Settings
from docstore_identity.core.exceptions import ConfigurationError
from docstore_identity.database.container import DocumentContainer
from docstore_identity.database.databases import identity_db
from docstore_identity.database.databases.identity_db import Collections

logger = logging.getLogger(__name__)

METADATA_ID = "db_metadata"


def per_type_container_id(settings: Settings, collection: str) -> str:
    """Container name for one entity type under the per-type strategy."""
    return f"{settings.container_id}_{collection}"


def container_ids(settings: Settings) -> list[str]:
    """All container names the configured strategy uses."""
    if settings.storage_strategy == "per_type":
        return [per_type_container_id(settings, c) for c in Collections.PER_TYPE]
    return [settings.container_id]


def _indexes_for(settings: Settings, container_id: str) -> list[dict]:
    if settings.storage_strategy == "per_type":
        for collection in Collections.PER_TYPE:
            if per_type_container_id(settings, collection) == container_id:
                return identity_db.INDEXES.get(collection, [])
        return []
    # The shared container holds every entity type
    return [index for indexes in identity_db.INDEXES.values() for index in indexes]


async def _check_partition_key_path(db: AsyncIOMotorDatabase, settings: Settings) -> None:
    """Refuse to reuse containers provisioned with another partition-key path."""
    metadata = await db[Collections.METADATA].find_one({"_id": METADATA_ID})
    if not metadata:
        return
    known = metadata.get("containers", {})
    for container_id in container_ids(settings):
        recorded = known.get(container_id)
        if recorded is not None and recorded != settings.partition_key_path:
            raise ConfigurationError(
                f"Container {container_id} already exists with partition key path "
                f"{recorded}, expected {settings.partition_key_path}."
            )


async def ensure_container(
    db: AsyncIOMotorDatabase, settings: Settings, container_id: str
) -> DocumentContainer:
    """Create one container (if missing) and its partition-key index."""
    existing = await db.list_collection_names()
    if container_id not in existing:
        try:
            await db.create_collection(container_id)
            logger.info(f"Created container {settings.database_id}/{container_id}")
        except CollectionInvalid:
            # Created concurrently by another instance
            pass

    collection = db[container_id]
    pk_field = settings.partition_key_field
    await collection.create_index([(pk_field, 1)])
    for index_def in _indexes_for(settings, container_id):
        keys = [(pk_field, 1), *index_def["keys"]]
        kwargs = {k: v for k, v in index_def.items() if k != "keys"}
        await collection.create_index(keys, **kwargs)

    return DocumentContainer(collection, pk_field)


async def ensure_database_and_containers(
    client: AsyncIOMotorClient, settings: Settings
) -> dict[str, DocumentContainer]:
    """
    Provision the identity database and every container of the configured
    storage strategy.

    Args:
        client: Document store client
        settings: Identity store settings

    Returns:
        Mapping of container id to DocumentContainer

    Raises:
        ConfigurationError: If a container was provisioned with a different
            partition-key path
    """
    db = client[settings.database_id]
    await _check_partition_key_path(db, settings)

    containers = {}
    for container_id in container_ids(settings):
        containers[container_id] = await ensure_container(db, settings, container_id)

    now = datetime.now(timezone.utc)
    await db[Collections.METADATA].update_one(
        {"_id": METADATA_ID},
        {
            "$set": {
                "db_name": settings.database_id,
                "storage_strategy": settings.storage_strategy,
                "manifest": identity_db.manifest(settings.database_id, list(containers)),
                "last_updated_at": now,
                **{
                    f"containers.{container_id}": settings.partition_key_path
                    for container_id in containers
                },
            },
            "$setOnInsert": {
                "created_at": now,
            },
        },
        upsert=True,
    )

    return containers
