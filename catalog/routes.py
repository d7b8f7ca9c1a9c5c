"""
HTTP routes for the items API.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query
from pydantic import ValidationError

from catalog.db import ItemRecord, ItemStore, is_valid_item_id
from catalog.dependencies import get_item_store
from catalog.errors import ClientInputError, NotFoundError
from catalog.schemas import (
    DeleteResponse,
    ErrorResponse,
    ItemCreate,
    ItemListResponse,
    ItemOut,
    ItemResponse,
    ItemUpdate,
    Pagination,
    validation_errors,
)

logger = logging.getLogger(__name__)

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}

router = APIRouter(responses=ERROR_RESPONSES)


def _item_out(record: ItemRecord) -> ItemOut:
    return ItemOut.model_validate(record.as_dict())


def _check_item_id(item_id: str) -> None:
    # Rejected here so a malformed id never reaches the database.
    if not is_valid_item_id(item_id):
        raise ClientInputError("Invalid item ID format")


def _validate(model, payload: Dict[str, Any]):
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ClientInputError(
            "Validation failed", validation_errors=validation_errors(exc)
        ) from exc


@router.get("/items", response_model=ItemListResponse)
async def list_items(
    category: Optional[str] = Query(None),
    in_stock: Optional[str] = Query(None, alias="inStock"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    store: ItemStore = Depends(get_item_store),
):
    """
    Retrieve items with optional category/stock filtering and pagination.
    """
    stock_filter = None if in_stock is None else in_stock == "true"
    items, total = await store.list_items(
        category=category, in_stock=stock_filter, page=page, limit=limit
    )
    return ItemListResponse(
        data=[_item_out(item) for item in items],
        pagination=Pagination(
            total=total, page=page, limit=limit, pages=math.ceil(total / limit)
        ),
    )


@router.post("/items", response_model=ItemResponse, status_code=201)
async def create_item(
    payload: Dict[str, Any] = Body(...),
    store: ItemStore = Depends(get_item_store),
):
    item = _validate(ItemCreate, payload)
    record = await store.create_item(item)
    logger.info("Created item %s", record.item_id)
    return ItemResponse(data=_item_out(record))


@router.get("/items/{item_id}", response_model=ItemResponse)
async def get_item(item_id: str, store: ItemStore = Depends(get_item_store)):
    _check_item_id(item_id)
    record = await store.get_item(item_id)
    if not record:
        raise NotFoundError("Item not found")
    return ItemResponse(data=_item_out(record))


@router.put("/items/{item_id}", response_model=ItemResponse)
async def update_item(
    item_id: str,
    payload: Dict[str, Any] = Body(...),
    store: ItemStore = Depends(get_item_store),
):
    _check_item_id(item_id)
    update = _validate(ItemUpdate, payload)
    record = await store.update_item(item_id, update)
    if not record:
        raise NotFoundError("Item not found")
    return ItemResponse(data=_item_out(record))


@router.delete("/items/{item_id}", response_model=DeleteResponse)
async def delete_item(item_id: str, store: ItemStore = Depends(get_item_store)):
    _check_item_id(item_id)
    if not await store.delete_item(item_id):
        raise NotFoundError("Item not found")
    logger.info("Deleted item %s", item_id)
    return DeleteResponse()
