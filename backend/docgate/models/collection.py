"""
DocGate — Collection Handle
============================

What:  Adapter around one MongoDB collection: the store operations the CRUD
       handlers need, plus timestamp stamping and JSON conversion.
How:   Wraps a pymongo AsyncCollection. Documents are schema-less; the only
       fields the handle owns are `_id`, `createdAt` and `updatedAt`.
Who:   Created and memoized by CollectionRegistry; used by DocumentService.

Document shape on the wire:
    {
        "_id": "665f1c2e9b1e8a3f4c2d1a0b",
        "createdAt": "2024-06-04T12:00:00.000Z",
        "updatedAt": "2024-06-04T12:00:00.000Z",
        ...any client fields...
    }
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional

from bson import ObjectId
from pymongo import ReturnDocument, TEXT
from pymongo.asynchronous.collection import AsyncCollection

from docgate.services.query_builder import QueryOptions

logger = logging.getLogger(__name__)

SYSTEM_FIELDS = frozenset({"_id", "createdAt", "updatedAt"})

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """
    Current UTC time truncated to milliseconds.

    BSON dates have millisecond precision; truncating here means the value we
    return from insert equals the value read back later.
    """
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def to_json(value: Any) -> Any:
    """Recursively convert BSON values (ObjectId, datetime) to JSON-safe ones."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
            "+00:00", "Z"
        )
    if isinstance(value, dict):
        return {k: to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(v) for v in value]
    return value


def strip_system_fields(body: Mapping[str, Any]) -> Dict[str, Any]:
    """Client-supplied `_id`/timestamps are dropped; the handle owns them."""
    return {k: v for k, v in body.items() if k not in SYSTEM_FIELDS}


class CollectionHandle:
    """
    Store operations for a single named collection.

    Every method returns plain JSON-ready dicts (or None when the target
    document does not exist). Driver exceptions propagate unchanged; the
    service layer turns them into StoreError.
    """

    def __init__(
        self,
        name: str,
        collection: AsyncCollection,
        clock: Clock = utc_now,
    ):
        self.name = name
        self._collection = collection
        self._clock = clock

    @property
    def collection(self) -> AsyncCollection:
        return self._collection

    async def ensure_indexes(self) -> None:
        """
        Creates the wildcard text index so `_search` spans every field.

        Idempotent: MongoDB treats re-creating an identical index as a no-op.
        Creating the index also creates the collection when it is new.
        """
        await self._collection.create_index([("$**", TEXT)])
        logger.debug("Text index ensured on collection '%s'", self.name)

    async def find(self, query: Dict[str, Any], options: QueryOptions) -> List[Dict[str, Any]]:
        cursor = (
            self._collection.find(query)
            .sort(list(options.sort.items()))
            .skip(options.skip)
            .limit(options.limit)
        )
        documents = await cursor.to_list()
        return [to_json(doc) for doc in documents]

    async def count(self, query: Dict[str, Any]) -> int:
        return await self._collection.count_documents(query)

    async def find_by_id(self, document_id: ObjectId) -> Optional[Dict[str, Any]]:
        document = await self._collection.find_one({"_id": document_id})
        return to_json(document) if document is not None else None

    async def insert(self, body: Mapping[str, Any]) -> Dict[str, Any]:
        """Stamps createdAt == updatedAt from one clock read, then inserts."""
        now = self._clock()
        document = {**strip_system_fields(body), "createdAt": now, "updatedAt": now}
        result = await self._collection.insert_one(document)
        document["_id"] = result.inserted_id
        return to_json({"_id": result.inserted_id, **document})

    async def replace(
        self, document_id: ObjectId, body: Mapping[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """
        Full replace: the stored document becomes `body` plus system fields.

        `_id` and `createdAt` are preserved; `updatedAt` is bumped.
        """
        existing = await self._collection.find_one({"_id": document_id}, {"createdAt": 1})
        if existing is None:
            return None

        now = self._clock()
        replacement = {
            **strip_system_fields(body),
            "createdAt": existing.get("createdAt", now),
            "updatedAt": now,
        }
        document = await self._collection.find_one_and_replace(
            {"_id": document_id},
            replacement,
            return_document=ReturnDocument.AFTER,
        )
        return to_json(document) if document is not None else None

    async def merge_fields(
        self, document_id: ObjectId, body: Mapping[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """Partial update with `$set`: only the listed fields change."""
        changes = {**strip_system_fields(body), "updatedAt": self._clock()}
        document = await self._collection.find_one_and_update(
            {"_id": document_id},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        return to_json(document) if document is not None else None

    async def remove_by_id(self, document_id: ObjectId) -> Optional[Dict[str, Any]]:
        """Deletes one document and returns it as it was before removal."""
        document = await self._collection.find_one_and_delete({"_id": document_id})
        return to_json(document) if document is not None else None

    async def remove_all(self) -> int:
        """Deletes every document; the collection itself is kept."""
        result = await self._collection.delete_many({})
        return result.deleted_count
