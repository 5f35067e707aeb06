"""
Database connection and Beanie ODM initialization.

Beanie is an async ODM for MongoDB built on Motor and Pydantic.
We initialize it once at startup and close at shutdown.
"""

import logging
from typing import List, Optional, Type

from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from gratias.config import get_settings
from gratias.models.site import Site
from gratias.models.user import User

logger = logging.getLogger(__name__)

_client: Optional[AsyncIOMotorClient] = None


async def connect_to_mongo() -> None:
    """
    Create Motor client and initialize Beanie with document models.
    Called once at application startup; also creates the indexes
    declared on the models (unique identity, unique owner+site name...).
    """
    global _client
    settings = get_settings()
    _client = AsyncIOMotorClient(
        settings.mongodb_url,
        serverSelectionTimeoutMS=settings.mongodb_server_selection_timeout_ms,
    )
    database = _client[settings.mongodb_database]

    document_models: List[Type] = [User, Site]

    await init_beanie(
        database=database,
        document_models=document_models,
    )
    logger.info("MongoDB connection established (database=%s); Beanie initialized.", settings.mongodb_database)


async def close_mongo_connection() -> None:
    global _client
    logger.info("Closing MongoDB connection.")
    if _client is not None:
        _client.close()
        _client = None


async def ping_database() -> bool:
    if _client is None:
        return False
    try:
        await _client.admin.command("ping")
    except Exception as e:
        logger.warning("MongoDB ping failed: %s", e)
        return False
    return True


async def drop_database() -> str:
    """Drop the configured database. Development/test environments only."""
    if _client is None:
        raise RuntimeError("MongoDB is not connected")
    name = get_settings().mongodb_database
    await _client.drop_database(name)
    logger.warning("MongoDB database %s dropped.", name)
    return name
