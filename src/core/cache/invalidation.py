"""
Cache invalidation dispatcher.

Translates studio write events into ``CacheManager`` invalidations so that
data-access code never names cache keys. Every handler is unconditional:
no batching, no debounce, no check whether an entry currently exists.
Handlers that touch several data types invalidate them one after another;
a degraded step does not stop the following ones.
"""

from __future__ import annotations

import enum
from typing import Dict, List, Optional

from src.core.cache.keys import CacheDataType
from src.core.cache.manager import CacheManager, CacheStatus
from src.core.logging.logger import get_logger

logger = get_logger(__name__)


class StudioEvent(str, enum.Enum):
    """Fine-grained studio write events."""

    GLAZE_CREATED = "glaze_created"
    GLAZE_UPDATED = "glaze_updated"
    GLAZE_DELETED = "glaze_deleted"

    FIRING_LOG_CREATED = "firing_log_created"
    FIRING_LOG_UPDATED = "firing_log_updated"
    FIRING_LOG_DELETED = "firing_log_deleted"

    CLAY_BODY_CREATED = "clay_body_created"
    CLAY_BODY_UPDATED = "clay_body_updated"
    CLAY_BODY_DELETED = "clay_body_deleted"

    RAW_MATERIAL_CREATED = "raw_material_created"
    RAW_MATERIAL_UPDATED = "raw_material_updated"
    RAW_MATERIAL_DELETED = "raw_material_deleted"

    KILN_CREATED = "kiln_created"
    KILN_UPDATED = "kiln_updated"
    KILN_DELETED = "kiln_deleted"

    SESSION_STARTED = "session_started"
    SESSION_UPDATED = "session_updated"
    SESSION_COMPLETED = "session_completed"

    SETTINGS_UPDATED = "settings_updated"
    USER_DATA_CHANGED = "user_data_changed"

    DATA_IMPORTED = "data_imported"
    DATA_EXPORTED = "data_exported"


_SETTINGS_TYPES = (
    CacheDataType.CLAY_BODIES,
    CacheDataType.RAW_MATERIALS,
    CacheDataType.KILNS,
)

_IMPORT_EXPORT_TYPES = (
    CacheDataType.GLAZES,
    CacheDataType.FIRING_LOGS,
    CacheDataType.CLAY_BODIES,
    CacheDataType.RAW_MATERIALS,
    CacheDataType.KILNS,
)


class CacheInvalidationDispatcher:
    """One coroutine per studio write event."""

    def __init__(self, cache_manager: CacheManager) -> None:
        self._cache = cache_manager

    async def _invalidate(self, reason: str, *data_types: CacheDataType) -> List[CacheStatus]:
        logger.info(
            "Invalidating caches",
            extra={"reason": reason, "data_types": [t.value for t in data_types]},
        )
        results = []
        for data_type in data_types:
            results.append(await self._cache.invalidate(data_type))
        return results

    async def on_glaze_recipe_change(self) -> List[CacheStatus]:
        return await self._invalidate("glaze_recipe_change", CacheDataType.GLAZES)

    async def on_firing_log_change(self) -> List[CacheStatus]:
        return await self._invalidate("firing_log_change", CacheDataType.FIRING_LOGS)

    async def on_kiln_change(self) -> List[CacheStatus]:
        return await self._invalidate("kiln_change", CacheDataType.KILNS)

    async def on_clay_body_change(self) -> List[CacheStatus]:
        return await self._invalidate("clay_body_change", CacheDataType.CLAY_BODIES)

    async def on_raw_material_change(self) -> List[CacheStatus]:
        return await self._invalidate("raw_material_change", CacheDataType.RAW_MATERIALS)

    async def on_active_session_change(self) -> List[CacheStatus]:
        return await self._invalidate("active_session_change", CacheDataType.ACTIVE_SESSION)

    async def on_settings_change(self) -> List[CacheStatus]:
        """Settings affect clay bodies, raw materials and kilns."""
        return await self._invalidate("settings_change", *_SETTINGS_TYPES)

    async def on_user_data_change(self, user_id: str) -> List[CacheStatus]:
        logger.info("Invalidating all caches for user", extra={"user_id": user_id})
        return [await self._cache.invalidate_all(user_id)]

    async def on_data_import_export(self) -> List[CacheStatus]:
        """Everything except the active session."""
        return await self._invalidate("data_import_export", *_IMPORT_EXPORT_TYPES)

    async def dispatch(
        self, event: StudioEvent, user_id: Optional[str] = None
    ) -> List[CacheStatus]:
        """
        Route a ``StudioEvent`` to its handler.

        Raises
        ------
        ValueError
            For ``USER_DATA_CHANGED`` without a ``user_id``.
        """
        if event is StudioEvent.USER_DATA_CHANGED:
            if user_id is None:
                raise ValueError("user_data_changed requires a user_id")
            return await self.on_user_data_change(user_id)

        handler_name = _EVENT_HANDLERS[event]
        return await getattr(self, handler_name)()


_EVENT_HANDLERS: Dict[StudioEvent, str] = {
    StudioEvent.GLAZE_CREATED: "on_glaze_recipe_change",
    StudioEvent.GLAZE_UPDATED: "on_glaze_recipe_change",
    StudioEvent.GLAZE_DELETED: "on_glaze_recipe_change",
    StudioEvent.FIRING_LOG_CREATED: "on_firing_log_change",
    StudioEvent.FIRING_LOG_UPDATED: "on_firing_log_change",
    StudioEvent.FIRING_LOG_DELETED: "on_firing_log_change",
    StudioEvent.CLAY_BODY_CREATED: "on_clay_body_change",
    StudioEvent.CLAY_BODY_UPDATED: "on_clay_body_change",
    StudioEvent.CLAY_BODY_DELETED: "on_clay_body_change",
    StudioEvent.RAW_MATERIAL_CREATED: "on_raw_material_change",
    StudioEvent.RAW_MATERIAL_UPDATED: "on_raw_material_change",
    StudioEvent.RAW_MATERIAL_DELETED: "on_raw_material_change",
    StudioEvent.KILN_CREATED: "on_kiln_change",
    StudioEvent.KILN_UPDATED: "on_kiln_change",
    StudioEvent.KILN_DELETED: "on_kiln_change",
    StudioEvent.SESSION_STARTED: "on_active_session_change",
    StudioEvent.SESSION_UPDATED: "on_active_session_change",
    StudioEvent.SESSION_COMPLETED: "on_active_session_change",
    StudioEvent.SETTINGS_UPDATED: "on_settings_change",
    StudioEvent.DATA_IMPORTED: "on_data_import_export",
    StudioEvent.DATA_EXPORTED: "on_data_import_export",
}
