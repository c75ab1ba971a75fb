"""
DocGate — MongoDB Client Management
====================================

What:  Async pymongo client construction, connectivity check and disposal.
How:   `create_client()` builds an AsyncMongoClient (which connects lazily),
       `get_database()` resolves the database named in the URI, `ping()` is a
       cheap round trip used at startup and by /health.json.
Who:   Called by the application lifespan in main.py and by the health route.

Degraded availability:
    The client is created even when MongoDB is unreachable. Startup logs the
    failed ping and keeps going; requests then fail with 500 until the server
    becomes reachable, at which point the driver recovers on its own.
"""

import logging

from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from docgate.config import Settings

logger = logging.getLogger(__name__)


def create_client(settings: Settings) -> AsyncMongoClient:
    """
    Build the process-wide MongoDB client.

    tz_aware=True makes the driver return timezone-aware UTC datetimes, which
    the collection handle renders as ISO-8601 with a trailing Z.
    """
    return AsyncMongoClient(
        settings.mongodb_uri,
        serverSelectionTimeoutMS=settings.mongo_server_selection_timeout_ms,
        tz_aware=True,
    )


def get_database(client: AsyncMongoClient, settings: Settings) -> AsyncDatabase:
    """Database named in the URI path, or `settings.mongodb_database`."""
    return client.get_default_database(default=settings.mongodb_database)


async def ping(client: AsyncMongoClient) -> bool:
    """
    What:  Sends the `ping` admin command.
    Returns: True when the server answered, False on any driver error.
    """
    try:
        await client.admin.command("ping")
    except PyMongoError as e:
        logger.warning("MongoDB ping failed: %s", str(e))
        return False
    return True


async def dispose_client(client: AsyncMongoClient) -> None:
    """Closes all pooled connections; called during application shutdown."""
    await client.close()
    logger.info("MongoDB connection closed")
