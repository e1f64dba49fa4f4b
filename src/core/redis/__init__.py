"""
Redis infrastructure for Kilnbook.

Exports
-------
RedisService - process-wide async Redis client with logged KV operations

Example Usage
-------------
>>> await RedisService.initialize()
>>> await RedisService.set("kilnbook:v1:kilns_cache", "[]")
>>> value = await RedisService.get("kilnbook:v1:kilns_cache")
>>> await RedisService.shutdown()
"""

from src.core.redis.service import RedisService

__all__ = ["RedisService"]
