"""
DocGate — Test Configuration (conftest.py)
===========================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── clock:            deterministic UTC clock, +1 ms per read
    ├── memory_database:  in-memory stand-in for a pymongo AsyncDatabase
    ├── registry:         CollectionRegistry over memory_database
    ├── document_service: DocumentService over registry
    ├── test_settings:    Settings with small rate limits
    ├── test_app:         create_app() wired to document_service
    └── test_client:      HTTPX AsyncClient over ASGITransport

The in-memory collection implements only the slice of the AsyncCollection
API that CollectionHandle calls, with MongoDB's matching rules for
equality, $gte/$lte/$ne and a substring-based $text. Writes are run through
bson.encode first, so values the driver cannot encode fail the same way.
"""

import os
import re
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

# Override settings for testing BEFORE any app imports
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["MONGODB_URI"] = "mongodb://localhost:27017/docgate-test"

import pytest
import pytest_asyncio
import bson
from bson import ObjectId
from httpx import ASGITransport, AsyncClient
from pymongo import ReturnDocument

from docgate.config import Settings
from docgate.main import create_app
from docgate.services.document_service import DocumentService
from docgate.services.registry import CollectionRegistry


# ══════════════════════════════════════════════════════════════════════════
# In-memory collection
# ══════════════════════════════════════════════════════════════════════════

def _strings(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, dict):
        return [s for v in value.values() for s in _strings(v)]
    if isinstance(value, list):
        return [s for v in value for s in _strings(v)]
    return []


def _comparable(a: Any, b: Any) -> bool:
    return isinstance(a, str) == isinstance(b, str)


def _matches(document: Dict[str, Any], query: Dict[str, Any]) -> bool:
    for key, condition in query.items():
        if key == "$text":
            terms = condition["$search"].lower().split()
            text = " ".join(_strings(document)).lower()
            if not any(re.search(rf"\b{re.escape(t)}\b", text) for t in terms):
                return False
            continue

        value = document.get(key)
        if isinstance(condition, dict) and any(k.startswith("$") for k in condition):
            for operator, operand in condition.items():
                if operator == "$ne" and value == operand:
                    return False
                if operator == "$gte" and not (
                    key in document and _comparable(value, operand) and value >= operand
                ):
                    return False
                if operator == "$lte" and not (
                    key in document and _comparable(value, operand) and value <= operand
                ):
                    return False
        elif value != condition:
            return False
    return True


class MemoryCursor:
    def __init__(self, documents: List[Dict[str, Any]]):
        self._documents = documents
        self._sort: List = []
        self._skip = 0
        self._limit = 0

    def sort(self, keys):
        self._sort = list(keys)
        return self

    def skip(self, count: int):
        self._skip = count
        return self

    def limit(self, count: int):
        self._limit = count
        return self

    async def to_list(self, length: Optional[int] = None):
        documents = list(self._documents)
        for field, direction in reversed(self._sort):
            present = [d for d in documents if d.get(field) is not None]
            missing = [d for d in documents if d.get(field) is None]
            present.sort(key=lambda d: d[field], reverse=direction < 0)
            documents = missing + present if direction > 0 else present + missing
        documents = documents[self._skip:]
        if self._limit:
            documents = documents[: self._limit]
        return [dict(d) for d in documents]


class MemoryCollection:
    def __init__(self, name: str):
        self.name = name
        self.documents: List[Dict[str, Any]] = []
        self.indexes: List = []

    async def create_index(self, keys):
        if keys not in self.indexes:
            self.indexes.append(keys)
        return "$**_text"

    def find(self, query: Dict[str, Any]):
        return MemoryCursor([d for d in self.documents if _matches(d, query)])

    async def count_documents(self, query: Dict[str, Any]) -> int:
        return sum(1 for d in self.documents if _matches(d, query))

    async def find_one(self, query: Dict[str, Any], projection=None):
        for document in self.documents:
            if _matches(document, query):
                if projection:
                    return {k: v for k, v in document.items() if k in projection or k == "_id"}
                return dict(document)
        return None

    async def insert_one(self, document: Dict[str, Any]):
        bson.encode(document)
        document.setdefault("_id", ObjectId())
        self.documents.append(dict(document))
        return SimpleNamespace(inserted_id=document["_id"])

    def _index_of(self, query: Dict[str, Any]) -> Optional[int]:
        for i, document in enumerate(self.documents):
            if _matches(document, query):
                return i
        return None

    async def find_one_and_replace(self, query, replacement, return_document=ReturnDocument.BEFORE):
        bson.encode(replacement)
        i = self._index_of(query)
        if i is None:
            return None
        before = self.documents[i]
        self.documents[i] = {"_id": before["_id"], **replacement}
        return dict(self.documents[i] if return_document == ReturnDocument.AFTER else before)

    async def find_one_and_update(self, query, update, return_document=ReturnDocument.BEFORE):
        bson.encode(update)
        i = self._index_of(query)
        if i is None:
            return None
        before = dict(self.documents[i])
        self.documents[i].update(update.get("$set", {}))
        return dict(self.documents[i] if return_document == ReturnDocument.AFTER else before)

    async def find_one_and_delete(self, query):
        i = self._index_of(query)
        if i is None:
            return None
        return self.documents.pop(i)

    async def delete_many(self, query):
        keep = [d for d in self.documents if not _matches(d, query)]
        deleted = len(self.documents) - len(keep)
        self.documents = keep
        return SimpleNamespace(deleted_count=deleted)


class MemoryDatabase:
    def __init__(self):
        self.collections: Dict[str, MemoryCollection] = {}

    def __getitem__(self, name: str) -> MemoryCollection:
        if name not in self.collections:
            self.collections[name] = MemoryCollection(name)
        return self.collections[name]

    async def list_collection_names(self) -> List[str]:
        return list(self.collections)


# ══════════════════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def clock():
    """UTC clock starting at 2024-01-01 that advances 1 ms per call."""
    state = {"now": datetime(2024, 1, 1, tzinfo=timezone.utc)}

    def tick() -> datetime:
        state["now"] += timedelta(milliseconds=1)
        return state["now"]

    return tick


@pytest.fixture
def memory_database():
    return MemoryDatabase()


@pytest.fixture
def registry(memory_database, clock):
    return CollectionRegistry(memory_database, clock=clock)


@pytest.fixture
def document_service(registry):
    return DocumentService(registry, store_timeout=2.0)


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        log_level="WARNING",
        max_body_bytes=10_240,
        rate_limit_window=900,
        rate_limit_requests=100,
        write_rate_limit_requests=30,
        dashboard_dir="/nonexistent-dashboard",
    )


@pytest.fixture
def test_app(test_settings, document_service):
    return create_app(settings=test_settings, document_service=document_service)


@pytest_asyncio.fixture
async def test_client(test_app):
    """
    HTTPX AsyncClient talking to the app in-process.

    Usage:
        async def test_list(test_client):
            response = await test_client.get("/users")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
