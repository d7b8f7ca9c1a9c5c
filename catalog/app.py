"""
FastAPI application entry point for the catalog service.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from catalog.config import Settings, get_settings
from catalog.connection import ConnectionManager
from catalog.db import ItemStore
from catalog.dependencies import build_item_store
from catalog.errors import CatalogError, ClientInputError
from catalog.routes import router

logger = logging.getLogger(__name__)


async def _catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(exc.as_payload(), status_code=exc.status_code)


async def _request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = {}
    for error in exc.errors():
        field = str(error["loc"][-1]) if error["loc"] else "request"
        errors.setdefault(field, error["msg"])
    return await _catalog_error_handler(
        request, ClientInputError("Validation failed", validation_errors=errors)
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"success": False, "error": str(exc)}, status_code=500)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[ItemStore] = None,
    connections: Optional[ConnectionManager] = None,
) -> FastAPI:
    """
    Build the application. ``store`` overrides the settings-selected backend
    (tests pass an ``InMemoryItemStore``); ``connections`` is closed on shutdown.
    """
    settings = settings or get_settings()
    if store is None:
        store, connections = build_item_store(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if connections is not None:
            await connections.close()

    app = FastAPI(title="Catalog Service", version="0.1.0", lifespan=lifespan)
    app.state.item_store = store
    app.state.connections = connections
    app.add_exception_handler(CatalogError, _catalog_error_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
    app.include_router(router, prefix=settings.api_prefix)
    return app


app = create_app()
