"""
MongoDB connector used by the connection manager.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from pymongo import AsyncMongoClient

from catalog.config import Settings
from catalog.connection import ConnectionManager

logger = logging.getLogger(__name__)

# Sized for a small service; each try is bounded by the selection/connect timeouts.
CLIENT_OPTIONS = {
    "maxPoolSize": 10,
    "minPoolSize": 1,
    "socketTimeoutMS": 30000,
    "serverSelectionTimeoutMS": 5000,
    "connectTimeoutMS": 10000,
    "heartbeatFrequencyMS": 10000,
    "tz_aware": True,
}


def mongo_connector(uri: str) -> Callable[[], Awaitable[AsyncMongoClient]]:
    """Return a coroutine factory that opens and pings a new client."""

    async def connect() -> AsyncMongoClient:
        client: AsyncMongoClient = AsyncMongoClient(uri, **CLIENT_OPTIONS)
        try:
            await client.admin.command("ping")
        except BaseException:
            # Includes cancellation during shutdown; the client is ours to close.
            await client.close()
            raise
        return client

    return connect


async def close_client(client: AsyncMongoClient) -> None:
    logger.info("Closing MongoDB client")
    await client.close()


def create_connection_manager(
    settings: Settings,
) -> ConnectionManager[AsyncMongoClient]:
    return ConnectionManager(
        mongo_connector(settings.mongodb_uri),
        settings.retry_policy(),
        close=close_client,
    )
