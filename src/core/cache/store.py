"""
Durable key/value stores backing the Kilnbook cache.

Purpose
-------
Give the cache manager one small async interface over string storage so
that it never needs to know whether entries live in Redis or in process
memory.

Responsibilities
----------------
- ``KeyValueStore``: abstract get / set / delete / size_of over strings
- ``RedisKeyValueStore``: namespaced keys on top of ``RedisService``
- ``MemoryKeyValueStore``: single-process store with a finite capacity
  that raises ``StoreQuotaExceededError`` like a browser store does
- Translate backend failures into ``CacheStoreError``

Non-Responsibilities
--------------------
- Expiry and ownership (``CacheManager`` decides validity from metadata)
- Swallowing errors (stores raise, the manager degrades)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Optional

from redis.exceptions import RedisError

from src.core.exceptions import CacheStoreError, StoreQuotaExceededError
from src.core.logging.logger import get_logger
from src.core.redis.service import RedisService

logger = get_logger(__name__)


class KeyValueStore(ABC):
    """Async string key/value storage."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored string, or None when absent."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key``. Deleting an absent key is not an error."""

    @abstractmethod
    async def size_of(self, key: str) -> int:
        """String length of the value under ``key`` (0 when absent)."""

    @property
    def backend_name(self) -> str:
        return type(self).__name__


class RedisKeyValueStore(KeyValueStore):
    """
    Redis-backed store.

    Keys are prefixed with ``namespace`` so several deployments (or test
    runs) can share one Redis database. Values are written without a
    server-side expiry; validity is decided from cache metadata.
    """

    def __init__(self, namespace: str = "kilnbook:v1:") -> None:
        self._namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self._namespace}{key}"

    async def get(self, key: str) -> Optional[str]:
        try:
            return await RedisService.get(self._key(key))
        except (RedisError, OSError, RuntimeError) as exc:
            raise CacheStoreError("get", key, exc) from exc

    async def set(self, key: str, value: str) -> None:
        try:
            await RedisService.set(self._key(key), value)
        except (RedisError, OSError, RuntimeError) as exc:
            raise CacheStoreError("set", key, exc) from exc

    async def delete(self, key: str) -> None:
        try:
            await RedisService.delete(self._key(key))
        except (RedisError, OSError, RuntimeError) as exc:
            raise CacheStoreError("delete", key, exc) from exc

    async def size_of(self, key: str) -> int:
        try:
            return await RedisService.strlen(self._key(key))
        except (RedisError, OSError, RuntimeError) as exc:
            raise CacheStoreError("size_of", key, exc) from exc


class MemoryKeyValueStore(KeyValueStore):
    """
    In-process store with a capacity measured in characters.

    Keys and values both count toward the capacity. A write that would
    exceed it raises ``StoreQuotaExceededError`` and leaves the previous
    value in place.
    """

    def __init__(self, capacity: int = 5 * 1024 * 1024) -> None:
        self.capacity = capacity
        self._data: Dict[str, str] = {}
        self._used = 0

    @property
    def used(self) -> int:
        return self._used

    def keys(self):
        return list(self._data)

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        previous = self._data.get(key)
        freed = len(key) + len(previous) if previous is not None else 0
        needed = len(key) + len(value)

        if self._used - freed + needed > self.capacity:
            logger.warning(
                "Memory cache store quota exceeded",
                extra={
                    "key": key,
                    "requested": needed,
                    "used": self._used,
                    "capacity": self.capacity,
                },
            )
            raise StoreQuotaExceededError(key, needed, self.capacity)

        self._data[key] = value
        self._used += needed - freed

    async def delete(self, key: str) -> None:
        previous = self._data.pop(key, None)
        if previous is not None:
            self._used -= len(key) + len(previous)

    async def size_of(self, key: str) -> int:
        return len(self._data.get(key, ""))
