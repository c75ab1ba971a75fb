"""
DocGate — Collection Registry Unit Tests
=========================================

What we test:
    ✅ get_or_create is idempotent per name
    ✅ Names are sanitized before use
    ✅ The text index is created once, on first access
    ✅ Concurrent first access builds a single handle
    ✅ A slow index build on one name does not stall other names
    ✅ A failed index setup is not memoized
    ✅ System collections are hidden from the listing
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo import TEXT
from pymongo.errors import ServerSelectionTimeoutError

from docgate.exceptions import ValidationError
from docgate.services.registry import CollectionRegistry, sanitize_collection_name


class TestSanitize:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("users", "users"),
            ("../users", "users"),
            ("us$ers.bak", "usersbak"),
            ("a b-c_d", "ab-c_d"),
            ("$.;", ""),
        ],
    )
    def test_strips_unsafe_characters(self, raw, expected):
        assert sanitize_collection_name(raw) == expected


class TestGetOrCreate:
    @pytest.mark.asyncio
    async def test_same_handle_for_same_name(self, registry, memory_database):
        first = await registry.get_or_create("users")
        second = await registry.get_or_create("users")

        assert first is second
        assert first.collection is memory_database["users"]
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_text_index_created_on_first_access(self, registry, memory_database):
        await registry.get_or_create("books")
        await registry.get_or_create("books")

        assert memory_database["books"].indexes == [[("$**", TEXT)]]

    @pytest.mark.asyncio
    async def test_hostile_name_maps_to_sanitized_handle(self, registry):
        clean = await registry.get_or_create("orders")
        hostile = await registry.get_or_create("../ord.ers")

        assert hostile is clean
        assert hostile.name == "orders"
        assert "orders" in registry

    @pytest.mark.asyncio
    async def test_name_empty_after_sanitizing_is_rejected(self, registry):
        with pytest.raises(ValidationError):
            await registry.get_or_create("$$..")
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_concurrent_first_access_builds_one_handle(self):
        collection = MagicMock()
        collection.create_index = AsyncMock()
        database = MagicMock()
        database.__getitem__.return_value = collection
        registry = CollectionRegistry(database)

        handles = await asyncio.gather(*(registry.get_or_create("events") for _ in range(10)))

        assert all(h is handles[0] for h in handles)
        collection.create_index.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_slow_index_build_does_not_block_other_names(self):
        release = asyncio.Event()

        async def slow_index(keys):
            await release.wait()

        slow = MagicMock()
        slow.create_index = AsyncMock(side_effect=slow_index)
        fast = MagicMock()
        fast.create_index = AsyncMock()
        database = MagicMock()
        database.__getitem__.side_effect = lambda name: slow if name == "slow" else fast
        registry = CollectionRegistry(database)

        pending = asyncio.create_task(registry.get_or_create("slow"))
        await asyncio.sleep(0)

        handle = await asyncio.wait_for(registry.get_or_create("fast"), timeout=1)

        assert handle.name == "fast"
        assert not pending.done()
        release.set()
        assert (await pending).name == "slow"

    @pytest.mark.asyncio
    async def test_failed_index_setup_is_not_cached(self):
        collection = MagicMock()
        collection.create_index = AsyncMock(
            side_effect=[ServerSelectionTimeoutError("No servers found"), "$**_text"]
        )
        database = MagicMock()
        database.__getitem__.return_value = collection
        registry = CollectionRegistry(database)

        with pytest.raises(ServerSelectionTimeoutError):
            await registry.get_or_create("events")
        assert "events" not in registry

        handle = await registry.get_or_create("events")
        assert handle.name == "events"
        assert collection.create_index.await_count == 2


class TestListCollectionNames:
    @pytest.mark.asyncio
    async def test_system_collections_hidden(self):
        database = MagicMock()
        database.list_collection_names = AsyncMock(
            return_value=["users", "system.views", "orders"]
        )
        registry = CollectionRegistry(database)

        assert await registry.list_collection_names() == ["users", "orders"]
