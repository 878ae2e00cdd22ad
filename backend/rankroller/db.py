"""MongoDB client lifecycle for the save store."""

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from .config import settings

logger = logging.getLogger(__name__)

_client: Optional[AsyncIOMotorClient] = None
_database: Optional[AsyncIOMotorDatabase] = None


async def connect_to_mongo(uri: Optional[str] = None, db_name: Optional[str] = None) -> bool:
    """Open the client and ping the save database.

    Returns False, leaving no client behind, when the server cannot be reached;
    the caller then keeps saves in memory instead.
    """

    global _client, _database

    if _client is not None:
        return True

    uri = uri or settings.mongodb_uri
    db_name = db_name or settings.mongodb_db_name
    client = AsyncIOMotorClient(uri, serverSelectionTimeoutMS=settings.mongodb_timeout_ms)
    try:
        database = client[db_name]
        await database.command("ping")
    except PyMongoError as exc:
        logger.warning("MongoDB at %s is unreachable: %s", uri, exc)
        client.close()
        return False

    _client, _database = client, database
    logger.info("Save store connected to MongoDB database '%s'", db_name)
    return True


async def close_mongo_connection() -> None:
    global _client, _database

    if _client is None:
        return
    _client.close()
    _client = None
    _database = None
    logger.info("MongoDB connection closed")


def get_database() -> AsyncIOMotorDatabase:
    if _database is None:
        raise RuntimeError("Database connection has not been initialised")
    return _database
