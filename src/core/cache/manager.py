"""
Cache manager for Kilnbook studio data.

Purpose
-------
Single authority for reading and writing cached collections in the
key/value store, with per-entry ownership and fixed per-data-type expiry.

Responsibilities
----------------
- Serialize payloads to JSON and write them with a metadata record
  ``{timestamp, user_id, version}`` stored under its own key
- Decide validity on read: owner matches and the entry is younger than
  the data type's expiry window
- Invalidate single entries, everything for one user, or everything
- Report the cache size and metadata for display

Non-Responsibilities
--------------------
- Mapping domain writes to invalidations (``src.core.cache.invalidation``)
- Hit/miss accounting (``src.core.cache.metrics``)
- Database access (``src.modules.studio.data_access``)

Architecture Notes
------------------
- Store failures never escape: ``set``/``get``/``invalidate`` return a
  ``CacheStatus`` and report ``DEGRADED`` when the store misbehaves. A
  degraded ``get`` is treated as a miss by callers.
- Expired entries are left in the store; the next ``set`` overwrites them.
- There is no compare-and-swap on ``version``. Two writers sharing one
  store interleave and the last write wins.
- Clock is injected (``clock`` returns epoch seconds) so expiry is testable.
"""

from __future__ import annotations

import enum
import json
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from src.core.cache.keys import CacheDataType
from src.core.cache.store import KeyValueStore
from src.core.logging.logger import get_logger

logger = get_logger(__name__)


class CacheStatus(str, enum.Enum):
    """Outcome of a cache operation."""

    STORED = "stored"
    HIT = "hit"
    MISS = "miss"
    INVALIDATED = "invalidated"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class CacheMetadata:
    timestamp: float
    user_id: str
    version: int

    def to_dict(self) -> Dict[str, Any]:
        return {"timestamp": self.timestamp, "user_id": self.user_id, "version": self.version}

    @classmethod
    def from_json(cls, raw: str) -> "CacheMetadata":
        data = json.loads(raw)
        return cls(
            timestamp=float(data["timestamp"]),
            user_id=str(data["user_id"]),
            version=int(data["version"]),
        )


@dataclass(frozen=True)
class CachedData:
    """A collection plus where it came from."""

    data: Any
    from_cache: bool
    timestamp: float


@dataclass(frozen=True)
class CacheLookup:
    status: CacheStatus
    entry: Optional[CachedData] = None

    @property
    def hit(self) -> bool:
        return self.status is CacheStatus.HIT


@dataclass(frozen=True)
class CacheInfo:
    size: int
    metadata: Dict[CacheDataType, CacheMetadata] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "size": self.size,
            "metadata": {
                data_type.value: meta.to_dict() for data_type, meta in self.metadata.items()
            },
        }


class CacheManager:
    """
    TTL + ownership cache over a ``KeyValueStore``.

    Parameters
    ----------
    store:
        Backing string store.
    clock:
        Returns the current time in epoch seconds. Defaults to ``time.time``.
    """

    def __init__(
        self,
        store: KeyValueStore,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._clock = clock

    @property
    def store(self) -> KeyValueStore:
        return self._store

    def now(self) -> float:
        return self._clock()

    # =========================================================================
    # Metadata helpers
    # =========================================================================

    async def _read_metadata(self, data_type: CacheDataType) -> Optional[CacheMetadata]:
        """Raises on store or parse failure; callers decide how to degrade."""
        raw = await self._store.get(data_type.metadata_key)
        if raw is None:
            return None
        return CacheMetadata.from_json(raw)

    async def _previous_version(self, data_type: CacheDataType) -> int:
        try:
            metadata = await self._read_metadata(data_type)
        except Exception as exc:
            logger.warning(
                "Unreadable cache metadata; restarting version count",
                extra={"data_type": data_type.value, "error": str(exc)},
            )
            return 0
        return metadata.version if metadata else 0

    def is_expired(self, data_type: CacheDataType, metadata: CacheMetadata) -> bool:
        return self._clock() - metadata.timestamp >= data_type.expiry_seconds

    async def _discard_payload(self, data_type: CacheDataType) -> None:
        """Best-effort removal of a payload whose metadata write failed."""
        try:
            await self._store.delete(data_type.storage_key)
        except Exception as exc:
            logger.warning(
                "Failed to discard orphaned cache payload",
                extra={"data_type": data_type.value, "error": str(exc)},
            )

    # =========================================================================
    # Core operations
    # =========================================================================

    async def set(self, data_type: CacheDataType, data: Any, user_id: str) -> CacheStatus:
        """
        Cache ``data`` for ``user_id``.

        Drops the previous metadata record, writes the payload, then writes
        a metadata record with ``version`` one higher than the previous
        record's. An interrupted write leaves no metadata behind, so the
        entry reads as a miss for every user.

        Returns
        -------
        CacheStatus
            ``STORED`` on success, ``DEGRADED`` when serialization or any
            store write failed.
        """
        payload_written = False
        try:
            payload = json.dumps(data)
            version = await self._previous_version(data_type) + 1
            metadata = CacheMetadata(
                timestamp=self._clock(),
                user_id=user_id,
                version=version,
            )
            await self._store.delete(data_type.metadata_key)
            await self._store.set(data_type.storage_key, payload)
            payload_written = True
            await self._store.set(data_type.metadata_key, json.dumps(metadata.to_dict()))
        except Exception as exc:
            logger.error(
                "Failed to cache data",
                extra={
                    "data_type": data_type.value,
                    "user_id": user_id,
                    "error_type": type(exc).__name__,
                    "error_message": str(exc),
                },
            )
            if payload_written:
                await self._discard_payload(data_type)
            return CacheStatus.DEGRADED

        logger.debug(
            "Cached data",
            extra={
                "data_type": data_type.value,
                "user_id": user_id,
                "version": version,
                "size": len(payload),
            },
        )
        return CacheStatus.STORED

    async def get(self, data_type: CacheDataType, user_id: str) -> CacheLookup:
        """
        Look up the cached collection for ``user_id``.

        Returns
        -------
        CacheLookup
            ``HIT`` with the deserialized data; ``MISS`` when there is no
            metadata, the owner differs, the entry expired or the payload is
            gone; ``DEGRADED`` when the store read or decoding failed.
        """
        try:
            metadata = await self._read_metadata(data_type)
            if metadata is None or metadata.user_id != user_id:
                return CacheLookup(CacheStatus.MISS)
            if self.is_expired(data_type, metadata):
                return CacheLookup(CacheStatus.MISS)

            raw = await self._store.get(data_type.storage_key)
            if not raw:
                return CacheLookup(CacheStatus.MISS)

            data = json.loads(raw)
        except Exception as exc:
            logger.error(
                "Failed to read cache",
                extra={
                    "data_type": data_type.value,
                    "user_id": user_id,
                    "error_type": type(exc).__name__,
                    "error_message": str(exc),
                },
            )
            return CacheLookup(CacheStatus.DEGRADED)

        return CacheLookup(
            CacheStatus.HIT,
            CachedData(data=data, from_cache=True, timestamp=metadata.timestamp),
        )

    async def invalidate(self, data_type: CacheDataType) -> CacheStatus:
        """Delete payload and metadata. Idempotent."""
        try:
            await self._store.delete(data_type.storage_key)
            await self._store.delete(data_type.metadata_key)
        except Exception as exc:
            logger.error(
                "Failed to invalidate cache",
                extra={
                    "data_type": data_type.value,
                    "error_type": type(exc).__name__,
                    "error_message": str(exc),
                },
            )
            return CacheStatus.DEGRADED

        logger.debug("Invalidated cache", extra={"data_type": data_type.value})
        return CacheStatus.INVALIDATED

    async def invalidate_all(self, user_id: str) -> CacheStatus:
        """
        Delete every payload, and the metadata records owned by ``user_id``.

        Metadata owned by other users survives and points at a deleted
        payload; ``get`` reports such entries as misses.
        """
        status = CacheStatus.INVALIDATED
        for data_type in CacheDataType:
            try:
                await self._store.delete(data_type.storage_key)
                metadata = await self._read_metadata(data_type)
                if metadata is not None and metadata.user_id == user_id:
                    await self._store.delete(data_type.metadata_key)
            except Exception as exc:
                logger.error(
                    "Failed to invalidate cache for user",
                    extra={
                        "data_type": data_type.value,
                        "user_id": user_id,
                        "error_type": type(exc).__name__,
                        "error_message": str(exc),
                    },
                )
                status = CacheStatus.DEGRADED
        return status

    async def clear(self) -> CacheStatus:
        """Delete every payload and metadata record, regardless of owner."""
        status = CacheStatus.INVALIDATED
        for data_type in CacheDataType:
            if await self.invalidate(data_type) is CacheStatus.DEGRADED:
                status = CacheStatus.DEGRADED
        logger.info("Cleared all caches", extra={"status": status.value})
        return status

    # =========================================================================
    # Reporting
    # =========================================================================

    async def get_cache_size(self) -> int:
        """Sum of the string lengths of every current payload."""
        total = 0
        for data_type in CacheDataType:
            try:
                total += await self._store.size_of(data_type.storage_key)
            except Exception as exc:
                logger.warning(
                    "Failed to measure cache entry",
                    extra={"data_type": data_type.value, "error": str(exc)},
                )
        return total

    async def get_cache_info(self) -> CacheInfo:
        metadata: Dict[CacheDataType, CacheMetadata] = {}
        for data_type in CacheDataType:
            try:
                record = await self._read_metadata(data_type)
            except Exception as exc:
                logger.warning(
                    "Failed to read cache metadata",
                    extra={"data_type": data_type.value, "error": str(exc)},
                )
                continue
            if record is not None:
                metadata[data_type] = record
        return CacheInfo(size=await self.get_cache_size(), metadata=metadata)
