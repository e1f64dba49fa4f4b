"""
Core infrastructure layer for Kilnbook.

Purpose
-------
A single import surface for the core infrastructure subsystems:

- Configuration (Config)
- Database subsystem (DatabaseService)
- Redis subsystem (RedisService)
- Logging (structured logging, logger factory)
- Infrastructure exceptions (KilnbookInfrastructureException hierarchy)

Design Decisions
----------------
- No logic, no configuration, no I/O beyond what the submodules do on import.
- The cache stack lives in ``src.core.cache`` and is wired by
  ``src.core.infra.StudioContext``; neither is re-exported here so that
  importing ``src.core`` never pulls in the studio modules.
"""

from __future__ import annotations

from src.core.config import Config
from src.core.database import DatabaseService
from src.core.exceptions import (
    CacheStoreError,
    ConfigurationError,
    DatabaseError,
    ErrorSeverity,
    KilnbookInfrastructureException,
    StoreQuotaExceededError,
)
from src.core.logging import get_logger, setup_logging
from src.core.redis import RedisService

__all__ = [
    # Configuration
    "Config",
    # Database
    "DatabaseService",
    # Redis
    "RedisService",
    # Logging
    "setup_logging",
    "get_logger",
    # Infrastructure Exceptions
    "KilnbookInfrastructureException",
    "ConfigurationError",
    "DatabaseError",
    "CacheStoreError",
    "StoreQuotaExceededError",
    "ErrorSeverity",
]
