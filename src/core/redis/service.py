"""
RedisService: async Redis client for Kilnbook.

Purpose
-------
Own the process-wide redis-py asyncio client and expose the small set of
string operations the cache store needs, each with structured logging.

Responsibilities
----------------
- Initialize and close a singleton Redis connection pool
- Expose get / set / delete / exists / strlen
- Log every operation with key and latency; re-raise failures

Non-Responsibilities
--------------------
- Key namespacing and quota semantics (``src.core.cache.store``)
- Swallowing errors (the cache manager decides how to degrade)
- Retries, rate limiting, distributed locks

Configuration Keys
------------------
- REDIS_URL              : str (e.g. "redis://localhost:6379/0")
- REDIS_PASSWORD         : Optional[str]
- REDIS_SOCKET_TIMEOUT   : int (default 5)
- REDIS_MAX_CONNECTIONS  : int (default 20)
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Optional

from redis.asyncio.client import Redis as AsyncRedis  # type: ignore[misc]
from redis.exceptions import RedisError

from src.core.config.config import Config
from src.core.logging.logger import get_logger

logger = get_logger(__name__)


class RedisService:
    """Process-wide async Redis client with logged KV operations."""

    _client: Optional[AsyncRedis] = None
    _init_lock: Optional[asyncio.Lock] = None

    # ═══════════════════════════════════════════════════════════════════════
    # LIFECYCLE MANAGEMENT
    # ═══════════════════════════════════════════════════════════════════════

    @classmethod
    def _lock(cls) -> asyncio.Lock:
        if cls._init_lock is None:
            cls._init_lock = asyncio.Lock()
        return cls._init_lock

    @classmethod
    async def initialize(cls, url: Optional[str] = None) -> None:
        """
        Create the client and verify it with PING.

        Idempotent. ``url`` overrides ``Config.REDIS_URL``.

        Raises
        ------
        RuntimeError
            If the connection cannot be established.
        """
        if cls._client is not None:
            logger.debug("RedisService already initialized, skipping")
            return

        async with cls._lock():
            if cls._client is not None:
                return

            redis_url = url or Config.REDIS_URL
            url_scheme = redis_url.split("://")[0] if "://" in redis_url else "unknown"
            start_time = time.monotonic()

            client: AsyncRedis = AsyncRedis.from_url(
                redis_url,
                password=Config.REDIS_PASSWORD,
                socket_timeout=Config.REDIS_SOCKET_TIMEOUT,
                encoding="utf-8",
                decode_responses=True,
                max_connections=Config.REDIS_MAX_CONNECTIONS,
                retry_on_timeout=False,
            )

            try:
                await client.ping()  # type: ignore[misc]
            except Exception as exc:
                await client.aclose()
                logger.critical(
                    "Failed to initialize RedisService",
                    extra={
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                        "url_scheme": url_scheme,
                    },
                    exc_info=True,
                )
                raise RuntimeError(f"Failed to initialize RedisService: {exc}") from exc

            cls._client = client
            logger.info(
                "RedisService initialized successfully",
                extra={
                    "url_scheme": url_scheme,
                    "max_connections": Config.REDIS_MAX_CONNECTIONS,
                    "initialization_time_ms": round(
                        (time.monotonic() - start_time) * 1000, 2
                    ),
                },
            )

    @classmethod
    async def shutdown(cls) -> None:
        """Close the client. Safe to call even if not initialized."""
        client, cls._client = cls._client, None
        if client is None:
            return

        await client.aclose()
        logger.info("RedisService shutdown complete")

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._client is not None

    @classmethod
    async def health_check(cls) -> bool:
        """PING the server. Returns False instead of raising."""
        if cls._client is None:
            logger.warning("Health check failed: RedisService not initialized")
            return False

        try:
            return bool(await cls._client.ping())  # type: ignore[misc]
        except (RedisError, OSError) as exc:
            logger.error(
                "Redis health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False

    @classmethod
    def client(cls) -> AsyncRedis:
        """
        Return the singleton Redis client.

        Raises
        ------
        RuntimeError
            If RedisService has not been initialized.
        """
        if cls._client is None:
            raise RuntimeError(
                "RedisService not initialized. "
                "Call `await RedisService.initialize()` first."
            )
        return cls._client

    # ═══════════════════════════════════════════════════════════════════════
    # KEY-VALUE OPERATIONS
    # ═══════════════════════════════════════════════════════════════════════

    @classmethod
    def _log_failure(cls, operation: str, key: str, start: float, exc: Exception) -> None:
        logger.error(
            f"Redis {operation} operation failed",
            extra={
                "key": key,
                "latency_ms": round((time.monotonic() - start) * 1000, 2),
                "error": str(exc),
                "error_type": type(exc).__name__,
            },
        )

    @classmethod
    async def get(cls, key: str) -> Optional[str]:
        """
        Get a string value.

        Returns
        -------
        Optional[str]
            The value if it exists, None otherwise.
        """
        start = time.monotonic()
        try:
            result = await cls.client().get(key)
        except Exception as exc:
            cls._log_failure("GET", key, start, exc)
            raise

        logger.debug(
            "Redis GET operation",
            extra={
                "key": key,
                "found": result is not None,
                "latency_ms": round((time.monotonic() - start) * 1000, 2),
            },
        )
        return result

    @classmethod
    async def set(
        cls,
        key: str,
        value: Any,
        ttl_seconds: Optional[int] = None,
    ) -> bool:
        """
        Set a string value.

        Parameters
        ----------
        key : str
            The Redis key to set.
        value : Any
            The value to store.
        ttl_seconds : Optional[int]
            Server-side expiry. ``None`` stores the key without expiry.
        """
        start = time.monotonic()
        try:
            result = await cls.client().set(key, value, ex=ttl_seconds)
        except Exception as exc:
            cls._log_failure("SET", key, start, exc)
            raise

        logger.debug(
            "Redis SET operation",
            extra={
                "key": key,
                "ttl_seconds": ttl_seconds,
                "latency_ms": round((time.monotonic() - start) * 1000, 2),
            },
        )
        return bool(result)

    @classmethod
    async def delete(cls, key: str) -> int:
        """Delete a key. Returns the number of keys removed (0 or 1)."""
        start = time.monotonic()
        try:
            deleted = int(await cls.client().delete(key))
        except Exception as exc:
            cls._log_failure("DELETE", key, start, exc)
            raise

        logger.debug(
            "Redis DELETE operation",
            extra={
                "key": key,
                "deleted_count": deleted,
                "latency_ms": round((time.monotonic() - start) * 1000, 2),
            },
        )
        return deleted

    @classmethod
    async def exists(cls, key: str) -> bool:
        start = time.monotonic()
        try:
            return bool(await cls.client().exists(key))
        except Exception as exc:
            cls._log_failure("EXISTS", key, start, exc)
            raise

    @classmethod
    async def strlen(cls, key: str) -> int:
        """Length of the string stored at ``key`` (0 when absent)."""
        start = time.monotonic()
        try:
            return int(await cls.client().strlen(key))
        except Exception as exc:
            cls._log_failure("STRLEN", key, start, exc)
            raise
