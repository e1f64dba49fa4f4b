"""
Kilnbook Logging Infrastructure

Exports the structured logging subsystem and log context helpers.

This module provides:
- JSON logging for files and production consoles
- ContextVar-based contextual logging (`LogContext`)
- Setup and teardown helpers for the global logging system
"""

from src.core.logging.logger import (
    LOGGING_SETTINGS,
    LogContext,
    LoggingSettings,
    clear_log_context,
    current_log_context,
    get_logger,
    set_log_context,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    "setup_logging",
    "shutdown_logging",
    "get_logger",
    "LogContext",
    "set_log_context",
    "clear_log_context",
    "current_log_context",
    "LoggingSettings",
    "LOGGING_SETTINGS",
]
