"""
Dependency wiring for the FastAPI app.

The store (and the connection manager behind it) is built once by
``create_app`` and kept on ``app.state``; handlers receive it through
``Depends(get_item_store)``.
"""

from __future__ import annotations

import logging

from fastapi import Request

from catalog.config import Settings
from catalog.connection import ConnectionManager
from catalog.db import InMemoryItemStore, ItemStore, MongoItemStore
from catalog.mongo import create_connection_manager

logger = logging.getLogger(__name__)


def build_item_store(
    settings: Settings,
) -> tuple[ItemStore, ConnectionManager | None]:
    """
    Return the store selected by settings and the connection manager it owns,
    if any.
    """
    if settings.use_in_memory_backends:
        logger.info("Using in-memory item store")
        return InMemoryItemStore(), None

    connections = create_connection_manager(settings)
    return MongoItemStore(connections, settings.mongodb_database), connections


def get_item_store(request: Request) -> ItemStore:
    return request.app.state.item_store
