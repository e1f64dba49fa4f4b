"""
Cache subsystem for Kilnbook.

- ``CacheDataType``: the closed set of cached collections
- ``KeyValueStore`` implementations: Redis and in-process
- ``CacheManager``: TTL + ownership get/set/invalidate
- ``CacheInvalidationDispatcher``: studio write events to invalidations
- ``PerformanceMonitor``: hit/miss and latency accounting
"""

from src.core.cache.invalidation import CacheInvalidationDispatcher, StudioEvent
from src.core.cache.keys import CacheDataType
from src.core.cache.manager import (
    CachedData,
    CacheInfo,
    CacheLookup,
    CacheManager,
    CacheMetadata,
    CacheStatus,
)
from src.core.cache.metrics import PerformanceMetric, PerformanceMonitor, TimingToken
from src.core.cache.store import KeyValueStore, MemoryKeyValueStore, RedisKeyValueStore

__all__ = [
    "CacheDataType",
    "CacheInfo",
    "CacheInvalidationDispatcher",
    "CacheLookup",
    "CacheManager",
    "CacheMetadata",
    "CacheStatus",
    "CachedData",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "PerformanceMetric",
    "PerformanceMonitor",
    "RedisKeyValueStore",
    "StudioEvent",
    "TimingToken",
]
