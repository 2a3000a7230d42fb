"""
Document store connection management.
"""
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from docstore_identity.config import Settings, get_settings

# Global connection instance
_mongo_client: Optional[AsyncIOMotorClient] = None


async def get_mongo_client(settings: Optional[Settings] = None) -> AsyncIOMotorClient:
    """Get or create the document store client."""
    global _mongo_client
    if _mongo_client is None:
        settings = settings or get_settings()
        _mongo_client = AsyncIOMotorClient(settings.connection_string, tz_aware=True)
    return _mongo_client


async def close_connections():
    """Close the document store connection."""
    global _mongo_client

    if _mongo_client is not None:
        _mongo_client.close()
        _mongo_client = None


async def get_database(
    db_name: Optional[str] = None,
    client: Optional[AsyncIOMotorClient] = None,
) -> AsyncIOMotorDatabase:
    """Get the identity database (settings.database_id unless db_name is given)."""
    if client is None:
        client = await get_mongo_client()
    if db_name is None:
        db_name = get_settings().database_id
    return client[db_name]
