"""
DocGate — Document Service (CRUD Orchestrator)
===============================================

What:  One method per CRUD handler: validate → get handle → one store call.
How:   Composes the validators, the CollectionRegistry and the query builder.
       Every store call runs under a deadline (`store_timeout`).
Who:   Called by routes/documents.py and routes/collections.py.

Error Handling Strategy:
    - Bad input          → ValidationError (400), raised before any store access
    - Missing document   → NotFoundError (404)
    - Driver failure     → StoreError (500) carrying the driver message verbatim
                           (includes BSON encoding failures such as ints above int64)
    - Deadline exceeded  → StoreError (500) naming the operation and timeout
    Nothing is retried.
"""

import asyncio
import logging
from typing import Any, Awaitable, Dict, List, Mapping, Optional, TypeVar

from bson.errors import BSONError
from pymongo.errors import PyMongoError

from docgate.exceptions import NotFoundError, StoreError
from docgate.models.collection import CollectionHandle
from docgate.services.query_builder import build_query
from docgate.services.registry import CollectionRegistry
from docgate.services.validators import (
    require_body,
    require_collection_name,
    require_document_id,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DocumentService:
    """
    Business logic for the document endpoints.

    Responsibilities:
        - list_documents(): filtered, sorted, paginated listing with total count
        - get_document() / create_document() / replace_document()
        - merge_document() / delete_document() / delete_all_documents()
        - list_collections(): collection names for GET /collections
    """

    def __init__(self, registry: CollectionRegistry, store_timeout: float = 10.0):
        self.registry = registry
        self.store_timeout = store_timeout

    async def _run(self, operation: str, awaitable: Awaitable[T]) -> T:
        """Await a store call under the deadline, mapping failures to StoreError."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self.store_timeout)
        except asyncio.TimeoutError:
            logger.error("Store operation '%s' timed out after %ss", operation, self.store_timeout)
            raise StoreError(
                message=f"Store operation '{operation}' timed out after {self.store_timeout}s",
                context={"operation": operation},
            )
        except (PyMongoError, BSONError, OverflowError) as e:
            logger.error("Store operation '%s' failed: %s", operation, str(e))
            raise StoreError(message=str(e), context={"operation": operation})

    async def _handle(self, collection: str) -> CollectionHandle:
        require_collection_name(collection)
        return await self._run("provision", self.registry.get_or_create(collection))

    async def list_collections(self) -> List[str]:
        return await self._run("list_collections", self.registry.list_collection_names())

    async def list_documents(
        self, collection: str, params: Mapping[str, str]
    ) -> Dict[str, Any]:
        """
        Returns:
            {"collection": name, "count": <returned>, "total": <matched>, "data": [...]}
        """
        handle = await self._handle(collection)
        query, options = build_query(params)

        documents = await self._run("find", handle.find(query, options))
        total = await self._run("count", handle.count(query))

        return {
            "collection": collection,
            "count": len(documents),
            "total": total,
            "data": documents,
        }

    async def get_document(self, collection: str, document_id: str) -> Dict[str, Any]:
        require_collection_name(collection)
        oid = require_document_id(document_id)
        handle = await self._handle(collection)

        document = await self._run("find_by_id", handle.find_by_id(oid))
        if document is None:
            raise NotFoundError(resource_id=document_id, context={"collection": collection})
        return document

    async def create_document(
        self, collection: str, body: Optional[Mapping[str, Any]]
    ) -> Dict[str, Any]:
        require_collection_name(collection)
        require_body(body)
        handle = await self._handle(collection)

        document = await self._run("insert", handle.insert(body))
        logger.info("Created document %s in '%s'", document.get("_id"), collection)
        return document

    async def replace_document(
        self, collection: str, document_id: str, body: Optional[Mapping[str, Any]]
    ) -> Dict[str, Any]:
        require_collection_name(collection)
        oid = require_document_id(document_id)
        require_body(body)
        handle = await self._handle(collection)

        document = await self._run("replace", handle.replace(oid, body))
        if document is None:
            raise NotFoundError(resource_id=document_id, context={"collection": collection})
        return document

    async def merge_document(
        self, collection: str, document_id: str, body: Optional[Mapping[str, Any]]
    ) -> Dict[str, Any]:
        require_collection_name(collection)
        oid = require_document_id(document_id)
        require_body(body)
        handle = await self._handle(collection)

        document = await self._run("merge", handle.merge_fields(oid, body))
        if document is None:
            raise NotFoundError(resource_id=document_id, context={"collection": collection})
        return document

    async def delete_document(self, collection: str, document_id: str) -> Dict[str, Any]:
        require_collection_name(collection)
        oid = require_document_id(document_id)
        handle = await self._handle(collection)

        document = await self._run("remove", handle.remove_by_id(oid))
        if document is None:
            raise NotFoundError(resource_id=document_id, context={"collection": collection})
        logger.info("Deleted document %s from '%s'", document_id, collection)
        return {"message": "Document deleted successfully", "deleted": document}

    async def delete_all_documents(self, collection: str) -> Dict[str, Any]:
        handle = await self._handle(collection)

        deleted_count = await self._run("remove_all", handle.remove_all())
        logger.warning("Deleted all %d documents from '%s'", deleted_count, collection)
        return {
            "message": "All documents deleted successfully",
            "deletedCount": deleted_count,
        }
