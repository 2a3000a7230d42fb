"""
Provisioning entry point.

Creates the identity database and the containers of the configured storage
strategy. Safe to run on every deployment.

Usage:
    docstore-identity-bootstrap
    python -m docstore_identity.bootstrap
"""
import asyncio
import logging
import sys

from pydantic import ValidationError
from pymongo.errors import PyMongoError

from docstore_identity.config import get_settings
from docstore_identity.core.exceptions import IdentityStoreError
from docstore_identity.database.connections import close_connections, get_mongo_client
from docstore_identity.database.registry import ensure_database_and_containers

logger = logging.getLogger("docstore_identity.bootstrap")


async def provision() -> list[str]:
    """Provision database and containers, returning the container ids."""
    settings = get_settings()
    client = await get_mongo_client(settings)
    try:
        containers = await ensure_database_and_containers(client, settings)
    finally:
        await close_connections()
    return list(containers)


def main() -> int:
    """Console script entry point."""
    try:
        settings = get_settings()
    except ValidationError as e:
        logging.basicConfig(level=logging.ERROR, format="%(asctime)s | %(levelname)s | %(message)s")
        logger.error(f"Invalid settings: {e}")
        return 1

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("=" * 60)
    logger.info("Identity store provisioning")
    logger.info(f"Database: {settings.database_id}")
    logger.info(f"Storage strategy: {settings.storage_strategy}")
    logger.info(f"Partition key path: {settings.partition_key_path}")
    logger.info("=" * 60)

    try:
        container_ids = asyncio.run(provision())
    except (IdentityStoreError, PyMongoError) as e:
        logger.error(f"Provisioning failed: {e}")
        return 1

    for container_id in container_ids:
        logger.info(f"Container ready: {settings.database_id}/{container_id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
