"""
Studio Context (Kernel) - Kilnbook Infrastructure Orchestration
================================================================

Purpose
-------
Builds and owns the cache subsystem and the cached data-access facade, and
brings the database and key/value store up and down in dependency order.

Responsibilities
----------------
- Choose the key/value store from ``Config`` (Redis or in-process)
- Wire ``CacheManager``, ``CacheInvalidationDispatcher``,
  ``PerformanceMonitor`` and ``StudioDataAccess`` as plain instances
- Initialize ``DatabaseService`` and ``RedisService``; shut them down in
  reverse order
- Cache maintenance operations: clear all caches, cache report, warming
  the readers and exporting the resulting metrics

Non-Responsibilities
--------------------
- Business rules (``src.modules.*``)
- Cache policy (``src.core.cache``)

Architecture Notes
------------------
Construction performs no I/O, so tests can build an isolated context around
a ``MemoryKeyValueStore`` and mocked repositories.

Initialization Order:
    1. Config.validate()
    2. DatabaseService
    3. RedisService (redis backend only)

Shutdown Order (Reverse):
    1. RedisService
    2. DatabaseService
"""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, Optional

from src.core.cache.invalidation import CacheInvalidationDispatcher
from src.core.cache.manager import CacheManager, CacheStatus
from src.core.cache.metrics import PerformanceMonitor
from src.core.cache.store import KeyValueStore, MemoryKeyValueStore, RedisKeyValueStore
from src.core.config import CacheBackend, Config
from src.core.database.service import DatabaseService
from src.core.logging.logger import get_logger
from src.core.redis.service import RedisService
from src.modules.materials.catalog import BaseMaterialCatalog
from src.modules.studio.data_access import StudioDataAccess, StudioRepositories

logger = get_logger(__name__)


def build_store(backend: Optional[CacheBackend] = None) -> KeyValueStore:
    backend = backend or Config.cache_backend()
    if backend is CacheBackend.REDIS:
        return RedisKeyValueStore(namespace=Config.CACHE_NAMESPACE)
    return MemoryKeyValueStore(capacity=Config.CACHE_MEMORY_CAPACITY)


class StudioContext:
    """
    Kernel for the Kilnbook cache stack.

    Usage:
        context = StudioContext()
        await context.initialize()
        kilns = await context.data_access.get_kilns_cached(user_id)
        await context.shutdown()
    """

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        repositories: Optional[StudioRepositories] = None,
        database_service: type[DatabaseService] = DatabaseService,
        catalog: Optional[BaseMaterialCatalog] = None,
        clock: Callable[[], float] = time.time,
        perf_counter: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._store = store or build_store()
        self._db = database_service
        self.cache_manager = CacheManager(self._store, clock=clock)
        self.dispatcher = CacheInvalidationDispatcher(self.cache_manager)
        self.monitor = PerformanceMonitor(
            timing_window_seconds=Config.PERFORMANCE_TIMING_WINDOW_SECONDS,
            perf_counter=perf_counter,
            clock=clock,
        )
        self.data_access = StudioDataAccess(
            cache_manager=self.cache_manager,
            dispatcher=self.dispatcher,
            monitor=self.monitor,
            repositories=repositories or StudioRepositories.build(database_service, catalog),
            database_service=database_service,
        )
        self._initialized = False

        logger.debug(
            "StudioContext created",
            extra={"cache_backend": self._store.backend_name},
        )

    @property
    def store(self) -> KeyValueStore:
        return self._store

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    async def initialize(self, create_schema: bool = False) -> None:
        """
        Bring up the database and, for the redis backend, the Redis client.

        Raises:
            RuntimeError: If already initialized or a service fails to start
        """
        if self._initialized:
            raise RuntimeError("StudioContext already initialized")

        start_time = time.perf_counter()
        try:
            Config.validate()

            db_start = time.perf_counter()
            await self._db.initialize()
            if create_schema:
                await self._db.create_schema()
            logger.info(
                "✓ DatabaseService initialized (%.2fms)",
                (time.perf_counter() - db_start) * 1000,
            )

            if isinstance(self._store, RedisKeyValueStore):
                redis_start = time.perf_counter()
                await RedisService.initialize()
                logger.info(
                    "✓ RedisService initialized (%.2fms)",
                    (time.perf_counter() - redis_start) * 1000,
                )

            self._initialized = True
            logger.info(
                "✓ Studio context initialized",
                extra={
                    "cache_backend": self._store.backend_name,
                    "total_ms": round((time.perf_counter() - start_time) * 1000, 2),
                },
            )

        except Exception as exc:
            logger.critical(
                "Studio context initialization failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
                exc_info=True,
            )
            await self._shutdown_services()
            raise RuntimeError("Failed to initialize studio context") from exc

    async def shutdown(self) -> None:
        if not self._initialized:
            logger.warning("StudioContext not initialized, nothing to shut down")
            return

        self.monitor.log_performance()
        await self._shutdown_services()
        self._initialized = False
        logger.info("✓ Studio context shutdown complete")

    async def _shutdown_services(self) -> None:
        if RedisService.is_initialized():
            try:
                await RedisService.shutdown()
                logger.info("✓ RedisService shut down")
            except Exception as exc:
                logger.error(
                    "Error shutting down Redis",
                    extra={"error": str(exc), "error_type": type(exc).__name__},
                    exc_info=True,
                )

        try:
            await self._db.shutdown()
            logger.info("✓ DatabaseService shut down")
        except Exception as exc:
            logger.error(
                "Error shutting down database",
                extra={"error": str(exc), "error_type": type(exc).__name__},
                exc_info=True,
            )

    # ========================================================================
    # CACHE MAINTENANCE
    # ========================================================================

    async def clear_all_caches(self) -> CacheStatus:
        """Every cached collection for every owner."""
        return await self.cache_manager.clear()

    async def clear_user_caches(self, user_id: str) -> None:
        await self.data_access.clear_user_caches(user_id)

    async def cache_report(self, include_performance: bool = True) -> Dict[str, Any]:
        """
        Cache size and metadata, plus this process's hit/miss summary.

        The monitor only counts reads made by this process; a fresh CLI
        process leaves ``include_performance`` off unless it warmed first.
        """
        info = await self.cache_manager.get_cache_info()
        report: Dict[str, Any] = {
            "backend": self._store.backend_name,
            "cache": info.to_dict(),
        }
        if include_performance:
            report["performance"] = self.monitor.get_performance_summary()
        return report

    async def warm_caches(self, user_id: str, rounds: int = 2) -> Dict[str, Any]:
        """
        Run every cached reader ``rounds`` times for ``user_id``.

        The first round fills whatever the shared store lacks; later rounds
        measure hit latency. Returns the resulting performance summary.

        Raises:
            ValueError: If ``rounds`` is less than 1
        """
        if rounds < 1:
            raise ValueError(f"rounds must be at least 1, got {rounds}")

        readers = (
            self.data_access.get_glaze_recipes_cached,
            self.data_access.get_firing_logs_cached,
            self.data_access.get_kilns_cached,
            self.data_access.get_clay_bodies_cached,
            self.data_access.get_raw_materials_cached,
            self.data_access.get_active_session_cached,
        )
        for _ in range(rounds):
            for reader in readers:
                await reader(user_id)

        summary = self.monitor.get_performance_summary()
        logger.info(
            "Caches warmed",
            extra={
                "user_id": user_id,
                "rounds": rounds,
                "total_requests": summary["total_requests"],
                "overall_hit_rate": summary["overall_hit_rate"],
            },
        )
        return summary

    def export_metrics(self) -> str:
        return self.monitor.export_metrics()
