"""
Cached Studio Data Access

Purpose
-------
The read and write entry points the rest of Kilnbook calls. Reads consult
the cache before the database; writes go to the database and then notify
the invalidation dispatcher.

Responsibilities
----------------
- ``get_*_cached``: timing, cache lookup, database read on a miss, cache
  fill, hit/miss accounting
- ``save/add/update/delete_*_cached``: database mutation, then the matching
  dispatcher coroutine
- Finishing a live firing, settings updates, export and import
- Share links for glaze recipes and firing logs (public reads bypass the cache)

Non-Responsibilities
--------------------
- SQL (``src.modules.*.repository``)
- Expiry and ownership decisions (``CacheManager``)
- Which keys a write affects (``CacheInvalidationDispatcher``)

Architecture Notes
------------------
- A database error on a read closes the timing as a miss and propagates
  unchanged; nothing is cached and no stale entry is served
- A database error on a write propagates and nothing is invalidated
- An update of a missing row raises ``RecordNotFoundError`` before any
  invalidation; deleting a missing row still invalidates
- No request coalescing: concurrent misses each read the database and
  each ``set``; the last write wins
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Mapping, Optional

from src.core.cache.invalidation import CacheInvalidationDispatcher
from src.core.cache.keys import CacheDataType
from src.core.cache.manager import CachedData, CacheManager
from src.core.cache.metrics import PerformanceMonitor
from src.core.exceptions import is_transient_error
from src.core.logging.logger import get_logger
from src.modules.firing.repository import FiringLogRepository
from src.modules.glazes.repository import GlazeRecipeRepository
from src.modules.kilns.repository import KilnRepository
from src.modules.materials.catalog import BaseMaterialCatalog
from src.modules.materials.repository import ClayBodyRepository, RawMaterialRepository
from src.modules.sessions.repository import ActiveSessionRepository
from src.modules.sessions.tracker import LiveFiringSession
from src.modules.shared.validators import validate_required_text
from src.modules.studio import export
from src.modules.studio.settings import StudioSettingsRepository

if TYPE_CHECKING:
    from datetime import datetime

    from src.core.database.service import DatabaseService

logger = get_logger(__name__)

Loader = Callable[[str], Awaitable[Any]]


@dataclass
class StudioRepositories:
    glazes: GlazeRecipeRepository
    firing_logs: FiringLogRepository
    kilns: KilnRepository
    clay_bodies: ClayBodyRepository
    raw_materials: RawMaterialRepository
    sessions: ActiveSessionRepository
    settings: StudioSettingsRepository

    @classmethod
    def build(
        cls,
        database_service: type[DatabaseService],
        catalog: Optional[BaseMaterialCatalog] = None,
    ) -> "StudioRepositories":
        return cls(
            glazes=GlazeRecipeRepository(database_service),
            firing_logs=FiringLogRepository(database_service),
            kilns=KilnRepository(database_service),
            clay_bodies=ClayBodyRepository(database_service),
            raw_materials=RawMaterialRepository(database_service, catalog),
            sessions=ActiveSessionRepository(database_service),
            settings=StudioSettingsRepository(database_service),
        )


class StudioDataAccess:
    """
    Cache-aware facade over the studio repositories.

    Parameters
    ----------
    cache_manager:
        Cache the readers consult and fill.
    dispatcher:
        Invalidation coroutines the writers call after a successful write.
    monitor:
        Hit/miss and latency accounting for the readers.
    repositories:
        Database access, one repository per table.
    database_service:
        Transaction provider for multi-table writes (finish session, import).
    """

    def __init__(
        self,
        cache_manager: CacheManager,
        dispatcher: CacheInvalidationDispatcher,
        monitor: PerformanceMonitor,
        repositories: StudioRepositories,
        database_service: type[DatabaseService],
    ) -> None:
        self._cache = cache_manager
        self._dispatcher = dispatcher
        self._monitor = monitor
        self._repos = repositories
        self._db = database_service

    @property
    def repositories(self) -> StudioRepositories:
        return self._repos

    # =========================================================================
    # Read path
    # =========================================================================

    async def _cached_read(
        self, data_type: CacheDataType, user_id: str, loader: Loader
    ) -> CachedData:
        token = self._monitor.start_timing(data_type)

        lookup = await self._cache.get(data_type, user_id)
        if lookup.hit and lookup.entry is not None:
            self._monitor.end_timing(token, True, data_type)
            logger.debug(
                "Cache hit",
                extra={"data_type": data_type.value, "user_id": user_id},
            )
            return lookup.entry

        try:
            data = await loader(user_id)
        except Exception as exc:
            self._monitor.end_timing(token, False, data_type)
            logger.error(
                "Database read failed",
                extra={
                    "data_type": data_type.value,
                    "user_id": user_id,
                    "cache_status": lookup.status.value,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                    "retryable": is_transient_error(exc),
                },
            )
            raise

        await self._cache.set(data_type, data, user_id)
        response_time = self._monitor.end_timing(token, False, data_type)
        logger.debug(
            "Cache miss served from database",
            extra={
                "data_type": data_type.value,
                "user_id": user_id,
                "cache_status": lookup.status.value,
                "response_time_ms": response_time,
            },
        )
        return CachedData(data=data, from_cache=False, timestamp=self._cache.now())

    async def get_glaze_recipes_cached(self, user_id: str) -> CachedData:
        return await self._cached_read(
            CacheDataType.GLAZES, user_id, self._repos.glazes.list_recipes
        )

    async def get_firing_logs_cached(self, user_id: str) -> CachedData:
        return await self._cached_read(
            CacheDataType.FIRING_LOGS, user_id, self._repos.firing_logs.list_logs
        )

    async def get_kilns_cached(self, user_id: str) -> CachedData:
        return await self._cached_read(CacheDataType.KILNS, user_id, self._repos.kilns.list_kilns)

    async def get_clay_bodies_cached(self, user_id: str) -> CachedData:
        return await self._cached_read(
            CacheDataType.CLAY_BODIES, user_id, self._repos.clay_bodies.list_clay_bodies
        )

    async def get_raw_materials_cached(self, user_id: str) -> CachedData:
        return await self._cached_read(
            CacheDataType.RAW_MATERIALS, user_id, self._repos.raw_materials.list_raw_materials
        )

    async def get_active_session_cached(self, user_id: str) -> CachedData:
        """``data`` is the session dict, or None when no firing is in progress."""
        return await self._cached_read(
            CacheDataType.ACTIVE_SESSION, user_id, self._repos.sessions.get_active
        )

    # =========================================================================
    # Glaze recipes
    # =========================================================================

    async def save_glaze_recipe_cached(
        self, user_id: str, data: Mapping[str, Any]
    ) -> Dict[str, Any]:
        recipe = await self._repos.glazes.create(user_id, data)
        await self._dispatcher.on_glaze_recipe_change()
        return recipe

    async def update_glaze_recipe_cached(
        self, user_id: str, recipe_id: str, updates: Mapping[str, Any]
    ) -> Dict[str, Any]:
        recipe = await self._repos.glazes.update(user_id, recipe_id, updates)
        await self._dispatcher.on_glaze_recipe_change()
        return recipe

    async def delete_glaze_recipe_cached(self, user_id: str, recipe_id: str) -> bool:
        deleted = await self._repos.glazes.delete(user_id, recipe_id)
        await self._dispatcher.on_glaze_recipe_change()
        return deleted

    # =========================================================================
    # Firing logs
    # =========================================================================

    async def save_firing_log_cached(
        self, user_id: str, data: Mapping[str, Any]
    ) -> Dict[str, Any]:
        log = await self._repos.firing_logs.create(user_id, data)
        await self._dispatcher.on_firing_log_change()
        return log

    async def update_firing_log_cached(
        self, user_id: str, log_id: str, updates: Mapping[str, Any]
    ) -> Dict[str, Any]:
        log = await self._repos.firing_logs.update(user_id, log_id, updates)
        await self._dispatcher.on_firing_log_change()
        return log

    async def delete_firing_log_cached(self, user_id: str, log_id: str) -> bool:
        deleted = await self._repos.firing_logs.delete(user_id, log_id)
        await self._dispatcher.on_firing_log_change()
        return deleted

    # =========================================================================
    # Share links
    # =========================================================================

    async def share_glaze_recipe_cached(self, user_id: str, recipe_id: str) -> str:
        """Publish a recipe; returns the share token."""
        token = await self._repos.glazes.create_share_token(user_id, recipe_id)
        await self._dispatcher.on_glaze_recipe_change()
        return token

    async def share_firing_log_cached(self, user_id: str, log_id: str) -> str:
        """Publish a firing log; returns the share token."""
        token = await self._repos.firing_logs.create_share_token(user_id, log_id)
        await self._dispatcher.on_firing_log_change()
        return token

    async def get_shared_glaze_recipe(self, token: str) -> Optional[Dict[str, Any]]:
        """Uncached: the reader is not the owner the cache is keyed to."""
        validate_required_text("share_token", token)
        return await self._repos.glazes.get_shared(token.strip())

    async def get_shared_firing_log(self, token: str) -> Optional[Dict[str, Any]]:
        validate_required_text("share_token", token)
        return await self._repos.firing_logs.get_shared(token.strip())

    # =========================================================================
    # Kilns & materials
    # =========================================================================

    async def add_kiln_cached(self, user_id: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        kiln = await self._repos.kilns.create(user_id, data)
        await self._dispatcher.on_kiln_change()
        return kiln

    async def update_kiln_cached(
        self, user_id: str, kiln_id: str, updates: Mapping[str, Any]
    ) -> Dict[str, Any]:
        kiln = await self._repos.kilns.update(user_id, kiln_id, updates)
        await self._dispatcher.on_kiln_change()
        return kiln

    async def delete_kiln_cached(self, user_id: str, kiln_id: str) -> bool:
        deleted = await self._repos.kilns.delete(user_id, kiln_id)
        await self._dispatcher.on_kiln_change()
        return deleted

    async def add_clay_body_cached(
        self, user_id: str, data: Mapping[str, Any]
    ) -> Dict[str, Any]:
        clay = await self._repos.clay_bodies.create(user_id, data)
        await self._dispatcher.on_clay_body_change()
        return clay

    async def update_clay_body_cached(
        self, user_id: str, clay_body_id: str, updates: Mapping[str, Any]
    ) -> Dict[str, Any]:
        clay = await self._repos.clay_bodies.update(user_id, clay_body_id, updates)
        await self._dispatcher.on_clay_body_change()
        return clay

    async def delete_clay_body_cached(self, user_id: str, clay_body_id: str) -> bool:
        deleted = await self._repos.clay_bodies.delete(user_id, clay_body_id)
        await self._dispatcher.on_clay_body_change()
        return deleted

    async def add_raw_material_cached(
        self, user_id: str, data: Mapping[str, Any]
    ) -> Dict[str, Any]:
        material = await self._repos.raw_materials.create(user_id, data)
        await self._dispatcher.on_raw_material_change()
        return material

    async def update_raw_material_cached(
        self, user_id: str, material_id: str, updates: Mapping[str, Any]
    ) -> Dict[str, Any]:
        material = await self._repos.raw_materials.update(user_id, material_id, updates)
        await self._dispatcher.on_raw_material_change()
        return material

    async def delete_raw_material_cached(self, user_id: str, material_id: str) -> bool:
        deleted = await self._repos.raw_materials.delete(user_id, material_id)
        await self._dispatcher.on_raw_material_change()
        return deleted

    # =========================================================================
    # Active firing session
    # =========================================================================

    async def save_active_session_cached(
        self, user_id: str, live_session: LiveFiringSession
    ) -> Dict[str, Any]:
        saved = await self._repos.sessions.save(user_id, live_session)
        await self._dispatcher.on_active_session_change()
        return saved

    async def complete_active_session_cached(self, user_id: str) -> int:
        completed = await self._repos.sessions.complete(user_id)
        await self._dispatcher.on_active_session_change()
        return completed

    async def delete_active_session_cached(self, user_id: str) -> int:
        deleted = await self._repos.sessions.delete(user_id)
        await self._dispatcher.on_active_session_change()
        return deleted

    async def finish_session_cached(
        self,
        user_id: str,
        live_session: LiveFiringSession,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Store the finished firing as a log and complete the active session,
        in one transaction.

        Raises:
            ValidationError: If the session lacks a required firing-log field
        """
        payload = live_session.build_firing_log(now=now)

        async with self._db.get_transaction() as session:
            log = await self._repos.firing_logs.add_in_session(session, user_id, payload)
            await self._repos.sessions.complete_in_session(session, user_id)

        logger.info(
            "Firing session finished",
            extra={
                "user_id": user_id,
                "firing_log_id": log["id"],
                "readings": len(live_session.readings),
                "duration_hours": log["firing_duration_hours"],
            },
        )
        await self._dispatcher.on_firing_log_change()
        await self._dispatcher.on_active_session_change()
        return log

    # =========================================================================
    # Settings, export & import
    # =========================================================================

    async def get_studio_settings(self, user_id: str) -> Dict[str, Any]:
        return await self._repos.settings.get_settings(user_id)

    async def update_studio_name_cached(self, user_id: str, studio_name: str) -> Dict[str, Any]:
        settings = await self._repos.settings.update_studio_name(user_id, studio_name)
        await self._dispatcher.on_settings_change()
        return settings

    async def export_data(self, user_id: str) -> Dict[str, Any]:
        """Export document built through the cached readers."""
        glazes = await self.get_glaze_recipes_cached(user_id)
        firing_logs = await self.get_firing_logs_cached(user_id)
        clay_bodies = await self.get_clay_bodies_cached(user_id)
        raw_materials = await self.get_raw_materials_cached(user_id)

        document = export.build_export_document(
            user_id,
            glaze_recipes=glazes.data,
            firing_logs=firing_logs.data,
            clay_bodies=clay_bodies.data,
            raw_materials=raw_materials.data,
        )
        logger.info(
            "Studio data exported",
            extra={
                "user_id": user_id,
                "counts": {name: len(document[name]) for name in export.RECORD_SECTIONS},
            },
        )
        return document

    async def import_data(self, user_id: str, payload: Any) -> Dict[str, int]:
        """
        Insert every record of an export document for ``user_id``.

        Raises:
            ImportFormatError: If the document layout is wrong (nothing written)
            ValidationError: If a record breaks a domain rule (rolled back)
        """
        sections = export.validate_import_document(payload)
        counts: Dict[str, int] = {}

        async with self._db.get_transaction() as session:
            counts["clay_bodies"] = await self._repos.clay_bodies.insert_many(
                session, user_id, sections["clay_bodies"]
            )
            counts["raw_materials"] = await self._repos.raw_materials.insert_many(
                session, user_id, sections["raw_materials"]
            )
            counts["glaze_recipes"] = await self._repos.glazes.insert_many(
                session, user_id, sections["glaze_recipes"]
            )
            counts["firing_logs"] = await self._repos.firing_logs.insert_many(
                session, user_id, sections["firing_logs"]
            )

        logger.info("Studio data imported", extra={"user_id": user_id, "counts": counts})
        await self._dispatcher.on_data_import_export()
        return counts

    async def clear_user_caches(self, user_id: str) -> None:
        await self._dispatcher.on_user_data_change(user_id)
