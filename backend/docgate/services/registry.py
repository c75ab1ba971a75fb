"""
DocGate — Dynamic Collection Registry
======================================

What:  Lazily provisions one CollectionHandle per collection name and reuses
       it for the lifetime of the application.
How:   A dict keyed by sanitized name, with an asyncio.Lock per name. On first
       access a handle is created and its text index ensured; later calls get
       the memoized handle without touching the store.
Who:   Owned by the application (app.state.registry), injected into
       DocumentService; nothing imports a global registry.

Sanitization:
    `get_or_create` strips every character outside [A-Za-z0-9_-] even though
    routes already validated the name, so a direct caller can never create a
    handle for a hostile raw name.
"""

import asyncio
import logging
import re
from typing import Dict, List

from pymongo.asynchronous.database import AsyncDatabase

from docgate.exceptions import ValidationError
from docgate.models.collection import Clock, CollectionHandle, utc_now

logger = logging.getLogger(__name__)

_UNSAFE_CHARACTERS = re.compile(r"[^A-Za-z0-9_-]")


def sanitize_collection_name(name: str) -> str:
    return _UNSAFE_CHARACTERS.sub("", name)


class CollectionRegistry:
    """
    Memoized collection handles for one database.

    Concurrency:
        Each name has its own lock, so two concurrent requests for a new name
        build exactly one handle while a slow index build on one collection
        never delays first access to another. A handle whose index setup
        failed is not cached; the next request retries.
    """

    def __init__(self, database: AsyncDatabase, clock: Clock = utc_now):
        self._database = database
        self._clock = clock
        self._handles: Dict[str, CollectionHandle] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    @property
    def database(self) -> AsyncDatabase:
        return self._database

    def __contains__(self, name: str) -> bool:
        return sanitize_collection_name(name) in self._handles

    def __len__(self) -> int:
        return len(self._handles)

    async def get_or_create(self, name: str) -> CollectionHandle:
        """
        Return the handle for `name`, creating it on first use.

        Raises:
            ValidationError: the name is empty after sanitization
            PyMongoError:    index creation failed (propagated to the service)
        """
        sanitized = sanitize_collection_name(name)
        if not sanitized:
            raise ValidationError(message="Invalid collection name", field="collection")

        handle = self._handles.get(sanitized)
        if handle is not None:
            return handle

        # No await between the cache check and setdefault: one lock per name
        lock = self._locks.setdefault(sanitized, asyncio.Lock())
        async with lock:
            handle = self._handles.get(sanitized)
            if handle is None:
                handle = CollectionHandle(sanitized, self._database[sanitized], self._clock)
                await handle.ensure_indexes()
                self._handles[sanitized] = handle
                logger.info("Provisioned collection handle '%s'", sanitized)
        # Once cached, the fast path above serves every later call
        self._locks.pop(sanitized, None)
        return handle

    async def list_collection_names(self) -> List[str]:
        """Existing collections in the database, excluding `system.*`."""
        names = await self._database.list_collection_names()
        return [name for name in names if not name.startswith("system.")]
