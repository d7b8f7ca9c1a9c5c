"""
Item storage for MongoDB and an in-memory test implementation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol, Tuple

from bson import ObjectId
from pymongo import ASCENDING, ReturnDocument, TEXT
from pymongo.errors import PyMongoError

from catalog.connection import ConnectionManager
from catalog.errors import BackendUnavailableError
from catalog.schemas import ItemCreate, ItemUpdate

logger = logging.getLogger(__name__)

COLLECTION_NAME = "items"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def is_valid_item_id(item_id: str) -> bool:
    return ObjectId.is_valid(item_id)


class ItemStore(Protocol):
    """Interface for item persistence."""

    async def list_items(
        self,
        *,
        category: Optional[str] = None,
        in_stock: Optional[bool] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[list["ItemRecord"], int]:
        ...

    async def get_item(self, item_id: str) -> Optional["ItemRecord"]:
        ...

    async def create_item(self, item: ItemCreate) -> "ItemRecord":
        ...

    async def update_item(
        self, item_id: str, update: ItemUpdate
    ) -> Optional["ItemRecord"]:
        ...

    async def delete_item(self, item_id: str) -> bool:
        ...


@dataclass
class ItemRecord:
    item_id: str
    name: str
    description: str
    price: float
    category: str
    in_stock: bool = True
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    def as_dict(self) -> dict:
        return {
            "_id": self.item_id,
            "name": self.name,
            "description": self.description,
            "price": self.price,
            "category": self.category,
            "inStock": self.in_stock,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "ItemRecord":
        return cls(
            item_id=str(doc["_id"]),
            name=doc["name"],
            description=doc["description"],
            price=doc["price"],
            category=doc["category"],
            in_stock=doc.get("inStock", True),
            created_at=doc["createdAt"],
            updated_at=doc["updatedAt"],
        )


def _to_document_fields(values: Dict[str, Any]) -> Dict[str, Any]:
    """Map model field names onto stored (camelCase) document keys."""
    return {
        ("inStock" if key == "in_stock" else key): value
        for key, value in values.items()
    }


def build_filter(
    category: Optional[str] = None, in_stock: Optional[bool] = None
) -> Dict[str, Any]:
    query: Dict[str, Any] = {}
    if category:
        query["category"] = category
    if in_stock is not None:
        query["inStock"] = in_stock
    return query


class InMemoryItemStore:
    """Simple in-memory item store for development and tests."""

    def __init__(self):
        self.items: Dict[str, ItemRecord] = {}

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.items.clear()

    async def list_items(
        self,
        *,
        category: Optional[str] = None,
        in_stock: Optional[bool] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[list[ItemRecord], int]:
        matches = [
            item
            for item in self.items.values()
            if (not category or item.category == category)
            and (in_stock is None or item.in_stock == in_stock)
        ]
        offset = (page - 1) * limit
        return matches[offset : offset + limit], len(matches)

    async def get_item(self, item_id: str) -> Optional[ItemRecord]:
        return self.items.get(item_id)

    async def create_item(self, item: ItemCreate) -> ItemRecord:
        record = ItemRecord(item_id=str(ObjectId()), **item.model_dump())
        self.items[record.item_id] = record
        return record

    async def update_item(
        self, item_id: str, update: ItemUpdate
    ) -> Optional[ItemRecord]:
        record = self.items.get(item_id)
        if not record:
            return None
        for key, value in update.changes().items():
            setattr(record, key, value)
        record.updated_at = _now()
        return record

    async def delete_item(self, item_id: str) -> bool:
        return self.items.pop(item_id, None) is not None


class MongoItemStore:
    """
    Collection-backed implementation. The database handle comes from the
    connection manager on every call, so the first request after start-up
    waits for (or triggers) the shared connection attempt.
    """

    def __init__(
        self,
        connections: ConnectionManager,
        database_name: str,
        collection_name: str = COLLECTION_NAME,
    ):
        self.connections = connections
        self.database_name = database_name
        self.collection_name = collection_name
        self._indexed_client: Any = None

    async def _collection(self):
        try:
            client = await self.connections.get_connection()
        except PyMongoError as exc:
            raise BackendUnavailableError(str(exc)) from exc
        database = client.get_default_database(default=self.database_name)
        collection = database[self.collection_name]
        if self._indexed_client is not client:
            await self._ensure_indexes(collection)
            self._indexed_client = client
        return collection

    async def _ensure_indexes(self, collection) -> None:
        try:
            await collection.create_index([("name", TEXT), ("category", ASCENDING)])
        except PyMongoError as exc:
            raise BackendUnavailableError(str(exc)) from exc
        logger.info("Ensured indexes on %s", self.collection_name)

    async def list_items(
        self,
        *,
        category: Optional[str] = None,
        in_stock: Optional[bool] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[list[ItemRecord], int]:
        collection = await self._collection()
        query = build_filter(category, in_stock)
        try:
            cursor = collection.find(query).skip((page - 1) * limit).limit(limit)
            docs = await cursor.to_list(length=limit)
            total = await collection.count_documents(query)
        except PyMongoError as exc:
            raise BackendUnavailableError(str(exc)) from exc
        return [ItemRecord.from_document(doc) for doc in docs], total

    async def get_item(self, item_id: str) -> Optional[ItemRecord]:
        collection = await self._collection()
        try:
            doc = await collection.find_one({"_id": ObjectId(item_id)})
        except PyMongoError as exc:
            raise BackendUnavailableError(str(exc)) from exc
        return ItemRecord.from_document(doc) if doc else None

    async def create_item(self, item: ItemCreate) -> ItemRecord:
        collection = await self._collection()
        now = _now()
        doc = _to_document_fields(item.model_dump())
        doc.update(createdAt=now, updatedAt=now)
        try:
            result = await collection.insert_one(doc)
        except PyMongoError as exc:
            raise BackendUnavailableError(str(exc)) from exc
        doc["_id"] = result.inserted_id
        return ItemRecord.from_document(doc)

    async def update_item(
        self, item_id: str, update: ItemUpdate
    ) -> Optional[ItemRecord]:
        collection = await self._collection()
        changes = _to_document_fields(update.changes())
        changes["updatedAt"] = _now()
        try:
            doc = await collection.find_one_and_update(
                {"_id": ObjectId(item_id)},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as exc:
            raise BackendUnavailableError(str(exc)) from exc
        return ItemRecord.from_document(doc) if doc else None

    async def delete_item(self, item_id: str) -> bool:
        collection = await self._collection()
        try:
            result = await collection.delete_one({"_id": ObjectId(item_id)})
        except PyMongoError as exc:
            raise BackendUnavailableError(str(exc)) from exc
        return result.deleted_count > 0
