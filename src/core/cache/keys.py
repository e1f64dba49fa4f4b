"""
Cache data types for Kilnbook.

``CacheDataType`` is the single closed enumeration shared by the store keys,
the expiry table and the performance-metric buckets. Adding a data type
means adding one member and one row to ``_DATA_TYPE_SPECS``.

Key Format
----------
Payload:  ``<namespace><storage key>``, e.g. ``kilnbook:v1:glaze_recipes_cache``
Metadata: ``<namespace>cache_metadata:<storage key>``

The namespace prefix is applied by the store (``src.core.cache.store``);
this module only deals in bare storage keys.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Tuple

METADATA_KEY_PREFIX = "cache_metadata:"


@dataclass(frozen=True)
class _DataTypeSpec:
    storage_key: str
    expiry_seconds: int


class CacheDataType(str, enum.Enum):
    """Cached collections, one store entry each."""

    GLAZES = "glazes"
    FIRING_LOGS = "firing_logs"
    KILNS = "kilns"
    CLAY_BODIES = "clay_bodies"
    RAW_MATERIALS = "raw_materials"
    ACTIVE_SESSION = "active_session"

    @property
    def storage_key(self) -> str:
        return _DATA_TYPE_SPECS[self].storage_key

    @property
    def metadata_key(self) -> str:
        return f"{METADATA_KEY_PREFIX}{self.storage_key}"

    @property
    def expiry_seconds(self) -> int:
        return _DATA_TYPE_SPECS[self].expiry_seconds

    @classmethod
    def all(cls) -> Tuple["CacheDataType", ...]:
        return tuple(cls)


_DATA_TYPE_SPECS: Dict[CacheDataType, _DataTypeSpec] = {
    CacheDataType.GLAZES: _DataTypeSpec("glaze_recipes_cache", 5 * 60),
    CacheDataType.FIRING_LOGS: _DataTypeSpec("firing_logs_cache", 2 * 60),
    CacheDataType.KILNS: _DataTypeSpec("kilns_cache", 10 * 60),
    CacheDataType.CLAY_BODIES: _DataTypeSpec("clay_bodies_cache", 10 * 60),
    CacheDataType.RAW_MATERIALS: _DataTypeSpec("raw_materials_cache", 10 * 60),
    CacheDataType.ACTIVE_SESSION: _DataTypeSpec("active_session_cache", 30),
}
