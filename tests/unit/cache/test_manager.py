"""
Unit tests for CacheManager.

Covers expiry windows, ownership, version counting, invalidation scopes,
size reporting and degraded store behaviour.
"""

import json

import pytest

from src.core.cache.keys import CacheDataType
from src.core.cache.manager import CacheManager, CacheStatus
from src.core.cache.store import MemoryKeyValueStore
from src.core.exceptions import CacheStoreError

USER = "user-1"
OTHER_USER = "user-2"
RECIPES = [{"id": "r1", "name": "Celadon"}]


class TestSetAndGet:
    async def test_set_then_get_is_hit(self, cache_manager, clock):
        status = await cache_manager.set(CacheDataType.GLAZES, RECIPES, USER)
        lookup = await cache_manager.get(CacheDataType.GLAZES, USER)

        assert status is CacheStatus.STORED
        assert lookup.hit
        assert lookup.entry.data == RECIPES
        assert lookup.entry.from_cache is True
        assert lookup.entry.timestamp == clock.now

    async def test_get_without_entry_is_miss(self, cache_manager):
        lookup = await cache_manager.get(CacheDataType.KILNS, USER)

        assert lookup.status is CacheStatus.MISS
        assert lookup.entry is None

    async def test_other_owner_is_miss(self, cache_manager):
        await cache_manager.set(CacheDataType.GLAZES, RECIPES, USER)

        lookup = await cache_manager.get(CacheDataType.GLAZES, OTHER_USER)

        assert lookup.status is CacheStatus.MISS

    async def test_none_payload_is_cached(self, cache_manager, memory_store):
        await cache_manager.set(CacheDataType.ACTIVE_SESSION, None, USER)

        lookup = await cache_manager.get(CacheDataType.ACTIVE_SESSION, USER)

        assert await memory_store.get("active_session_cache") == "null"
        assert lookup.hit
        assert lookup.entry.data is None

    async def test_missing_payload_with_metadata_is_miss(self, cache_manager, memory_store):
        await cache_manager.set(CacheDataType.GLAZES, RECIPES, USER)
        await memory_store.delete("glaze_recipes_cache")

        lookup = await cache_manager.get(CacheDataType.GLAZES, USER)

        assert lookup.status is CacheStatus.MISS

    async def test_metadata_record_layout(self, cache_manager, memory_store, clock):
        await cache_manager.set(CacheDataType.GLAZES, RECIPES, USER)

        raw = await memory_store.get("cache_metadata:glaze_recipes_cache")

        assert json.loads(raw) == {"timestamp": clock.now, "user_id": USER, "version": 1}


class TestExpiry:
    async def test_glazes_valid_just_before_five_minutes(self, cache_manager, clock):
        await cache_manager.set(CacheDataType.GLAZES, RECIPES, USER)
        clock.advance(4 * 60 + 59)

        lookup = await cache_manager.get(CacheDataType.GLAZES, USER)

        assert lookup.hit

    async def test_glazes_expired_after_five_minutes(self, cache_manager, clock):
        await cache_manager.set(CacheDataType.GLAZES, RECIPES, USER)
        clock.advance(5 * 60 + 1)

        lookup = await cache_manager.get(CacheDataType.GLAZES, USER)

        assert lookup.status is CacheStatus.MISS

    async def test_expiry_boundary_is_exclusive(self, cache_manager, clock):
        await cache_manager.set(CacheDataType.ACTIVE_SESSION, {"id": "s1"}, USER)
        clock.advance(30)

        lookup = await cache_manager.get(CacheDataType.ACTIVE_SESSION, USER)

        assert lookup.status is CacheStatus.MISS

    async def test_expired_entry_stays_in_store(self, cache_manager, memory_store, clock):
        await cache_manager.set(CacheDataType.FIRING_LOGS, [], USER)
        clock.advance(3 * 60)

        await cache_manager.get(CacheDataType.FIRING_LOGS, USER)

        assert await memory_store.get("firing_logs_cache") == "[]"

    @pytest.mark.parametrize(
        "data_type, seconds",
        [
            (CacheDataType.GLAZES, 300),
            (CacheDataType.FIRING_LOGS, 120),
            (CacheDataType.KILNS, 600),
            (CacheDataType.CLAY_BODIES, 600),
            (CacheDataType.RAW_MATERIALS, 600),
            (CacheDataType.ACTIVE_SESSION, 30),
        ],
    )
    def test_expiry_table(self, data_type, seconds):
        assert data_type.expiry_seconds == seconds


class TestVersioning:
    async def test_version_increments_per_set(self, cache_manager):
        await cache_manager.set(CacheDataType.KILNS, [], USER)
        await cache_manager.set(CacheDataType.KILNS, [{"id": "k1"}], USER)
        await cache_manager.set(CacheDataType.KILNS, [], OTHER_USER)

        info = await cache_manager.get_cache_info()

        assert info.metadata[CacheDataType.KILNS].version == 3
        assert info.metadata[CacheDataType.KILNS].user_id == OTHER_USER

    async def test_version_restarts_after_invalidate(self, cache_manager):
        await cache_manager.set(CacheDataType.KILNS, [], USER)
        await cache_manager.set(CacheDataType.KILNS, [], USER)
        await cache_manager.invalidate(CacheDataType.KILNS)
        await cache_manager.set(CacheDataType.KILNS, [], USER)

        info = await cache_manager.get_cache_info()

        assert info.metadata[CacheDataType.KILNS].version == 1

    async def test_unreadable_metadata_restarts_count(self, cache_manager, memory_store):
        await memory_store.set("cache_metadata:kilns_cache", "not json")

        status = await cache_manager.set(CacheDataType.KILNS, [], USER)
        info = await cache_manager.get_cache_info()

        assert status is CacheStatus.STORED
        assert info.metadata[CacheDataType.KILNS].version == 1


class TestInvalidation:
    async def test_invalidate_removes_payload_and_metadata(self, cache_manager, memory_store):
        await cache_manager.set(CacheDataType.GLAZES, RECIPES, USER)

        status = await cache_manager.invalidate(CacheDataType.GLAZES)

        assert status is CacheStatus.INVALIDATED
        assert await memory_store.get("glaze_recipes_cache") is None
        assert await memory_store.get("cache_metadata:glaze_recipes_cache") is None

    async def test_invalidate_absent_entry(self, cache_manager):
        assert await cache_manager.invalidate(CacheDataType.GLAZES) is CacheStatus.INVALIDATED

    async def test_invalidate_all_keeps_other_owners_metadata(self, cache_manager, memory_store):
        await cache_manager.set(CacheDataType.GLAZES, RECIPES, USER)
        await cache_manager.set(CacheDataType.KILNS, [], OTHER_USER)

        status = await cache_manager.invalidate_all(USER)

        assert status is CacheStatus.INVALIDATED
        assert await memory_store.get("glaze_recipes_cache") is None
        assert await memory_store.get("cache_metadata:glaze_recipes_cache") is None
        assert await memory_store.get("kilns_cache") is None
        assert await memory_store.get("cache_metadata:kilns_cache") is not None
        assert (await cache_manager.get(CacheDataType.KILNS, OTHER_USER)).status is CacheStatus.MISS

    async def test_clear_removes_everything(self, cache_manager, memory_store):
        await cache_manager.set(CacheDataType.GLAZES, RECIPES, USER)
        await cache_manager.set(CacheDataType.KILNS, [], OTHER_USER)

        status = await cache_manager.clear()

        assert status is CacheStatus.INVALIDATED
        assert memory_store.keys() == []
        assert memory_store.used == 0


class TestReporting:
    async def test_cache_size_sums_payload_lengths(self, cache_manager):
        await cache_manager.set(CacheDataType.GLAZES, RECIPES, USER)
        await cache_manager.set(CacheDataType.KILNS, [], USER)

        size = await cache_manager.get_cache_size()

        assert size == len(json.dumps(RECIPES)) + len("[]")

    async def test_cache_info_lists_present_metadata(self, cache_manager):
        await cache_manager.set(CacheDataType.CLAY_BODIES, [], USER)

        info = await cache_manager.get_cache_info()

        assert set(info.metadata) == {CacheDataType.CLAY_BODIES}
        assert info.to_dict()["metadata"]["clay_bodies"]["user_id"] == USER


class TestDegradedStore:
    async def test_quota_exceeded_is_degraded(self, clock):
        manager = CacheManager(MemoryKeyValueStore(capacity=40), clock=clock)

        status = await manager.set(CacheDataType.GLAZES, RECIPES * 10, USER)

        assert status is CacheStatus.DEGRADED

    async def test_unserializable_data_is_degraded(self, cache_manager, memory_store):
        status = await cache_manager.set(CacheDataType.GLAZES, {object()}, USER)

        assert status is CacheStatus.DEGRADED
        assert memory_store.keys() == []

    async def test_store_read_failure_is_degraded(self, cache_manager, memory_store, mocker):
        mocker.patch.object(
            memory_store,
            "get",
            side_effect=CacheStoreError("get", "cache_metadata:kilns_cache", OSError("down")),
        )

        lookup = await cache_manager.get(CacheDataType.KILNS, USER)

        assert lookup.status is CacheStatus.DEGRADED
        assert not lookup.hit

    async def test_corrupt_payload_is_degraded(self, cache_manager, memory_store):
        await cache_manager.set(CacheDataType.GLAZES, RECIPES, USER)
        await memory_store.set("glaze_recipes_cache", "{broken")

        lookup = await cache_manager.get(CacheDataType.GLAZES, USER)

        assert lookup.status is CacheStatus.DEGRADED

    async def test_store_delete_failure_is_degraded(self, cache_manager, memory_store, mocker):
        mocker.patch.object(
            memory_store,
            "delete",
            side_effect=CacheStoreError("delete", "kilns_cache", OSError("down")),
        )

        assert await cache_manager.invalidate(CacheDataType.KILNS) is CacheStatus.DEGRADED
        assert await cache_manager.clear() is CacheStatus.DEGRADED


class MetadataFailingStore(MemoryKeyValueStore):
    """Memory store whose metadata writes fail once ``fail_metadata`` is set."""

    def __init__(self, capacity: int = 64 * 1024) -> None:
        super().__init__(capacity=capacity)
        self.fail_metadata = False

    async def set(self, key: str, value: str) -> None:
        if self.fail_metadata and key.startswith("cache_metadata:"):
            raise CacheStoreError("set", key, OSError("disk full"))
        await super().set(key, value)


class TestInterruptedSet:
    async def test_failed_metadata_write_hides_new_payload(self, clock):
        store = MetadataFailingStore()
        manager = CacheManager(store, clock=clock)
        await manager.set(CacheDataType.GLAZES, RECIPES, USER)
        store.fail_metadata = True

        status = await manager.set(CacheDataType.GLAZES, [{"id": "r9"}], OTHER_USER)

        assert status is CacheStatus.DEGRADED
        assert (await manager.get(CacheDataType.GLAZES, USER)).status is CacheStatus.MISS
        assert (await manager.get(CacheDataType.GLAZES, OTHER_USER)).status is CacheStatus.MISS
        assert store.keys() == []

    async def test_quota_hit_on_metadata_write(self, clock):
        capacity = 10_000
        store = MemoryKeyValueStore(capacity=capacity)
        manager = CacheManager(store, clock=clock)
        await manager.set(CacheDataType.GLAZES, "a" * 10, USER)
        large = "b" * (capacity - len("glaze_recipes_cache") - 2 - 50)

        status = await manager.set(CacheDataType.GLAZES, large, "bob-" + "x" * 200)
        lookup = await manager.get(CacheDataType.GLAZES, USER)

        assert status is CacheStatus.DEGRADED
        assert lookup.status is CacheStatus.MISS
        assert lookup.entry is None
        assert store.used == 0

    async def test_failed_payload_write_leaves_no_metadata(self, clock):
        store = MemoryKeyValueStore(capacity=200)
        manager = CacheManager(store, clock=clock)
        await manager.set(CacheDataType.KILNS, [], USER)

        status = await manager.set(CacheDataType.KILNS, ["k" * 500], OTHER_USER)

        assert status is CacheStatus.DEGRADED
        assert await store.get("cache_metadata:kilns_cache") is None
        assert (await manager.get(CacheDataType.KILNS, USER)).status is CacheStatus.MISS


class TestJsonRoundTrip:
    @pytest.mark.parametrize(
        "data",
        [
            {"recipe": {"composition": [{"name": "Silica", "percentage": 30}], "tags": None}},
            "Céladon 青磁 🔥",
            [1.5, -0.25, 1e-7, 1280.0],
            [],
            {},
            False,
            0,
            True,
        ],
        ids=["nested", "unicode", "floats", "empty-list", "empty-dict", "false", "zero", "true"],
    )
    async def test_payload_round_trips(self, cache_manager, data):
        await cache_manager.set(CacheDataType.GLAZES, data, USER)

        lookup = await cache_manager.get(CacheDataType.GLAZES, USER)

        assert lookup.hit
        assert lookup.entry.data == data
        assert type(lookup.entry.data) is type(data)
