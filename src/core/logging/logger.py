"""
Kilnbook logging subsystem.

Purpose
-------
Configure standard-library logging once per process so that every module
can call ``get_logger(__name__)`` and emit structured records:

- JSON records for aggregation (console in production, daily file always).
- Coloured human-readable console output in development.
- Context propagation (user, operation, correlation id) through ContextVars,
  so async tasks serving different users never mix their log context.
- A QueueHandler + QueueListener pair so file and stream I/O never run on
  the event loop thread.

Responsibilities
----------------
- Initialize and configure the root logger (idempotent).
- Enrich every record with user_id, operation, component, correlation_id.
- Merge ``extra={...}`` fields into the JSON payload.
- Provide ``LogContext`` (sync + async context manager) and
  ``set_log_context`` / ``clear_log_context`` helpers.

Non-Responsibilities
--------------------
- Metrics or tracing (cache metrics live in ``src.core.cache.metrics``).

Dependencies
------------
- src.core.config.config.Config
"""

from __future__ import annotations

import json
import logging
import queue
import sys
import uuid
from contextvars import ContextVar, Token
from dataclasses import dataclass
from datetime import datetime, timezone
from logging import Logger
from logging.handlers import (
    QueueHandler,
    QueueListener,
    TimedRotatingFileHandler,
)
from pathlib import Path
from typing import Any, Dict, Optional

from src.core.config.config import Config


_log_context: ContextVar[Dict[str, Any]] = ContextVar(
    "kilnbook_log_context",
    default={},
)


# ============================================================================
# Settings
# ============================================================================


@dataclass(frozen=True, slots=True)
class LoggingSettings:
    """Formats and derived switches for the logging stack."""

    CONSOLE_FORMAT: str = "%(asctime)s | %(levelname)-8s | %(name)-32s | %(message)s"
    DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"

    DAILY_BASENAME: str = "kilnbook.json.log"
    DAILY_BACKUP_COUNT: int = 3

    QUEUE_MAX_SIZE: int = 10_000

    @property
    def environment(self) -> str:
        return str(Config.ENVIRONMENT).lower()

    @property
    def logs_dir(self) -> Path:
        return Path(Config.LOGS_DIR).resolve()

    @property
    def log_level(self) -> int:
        level_name = Config.LOG_LEVEL if isinstance(Config.LOG_LEVEL, str) else "INFO"
        return getattr(logging, level_name.upper(), logging.INFO)

    @property
    def use_json(self) -> bool:
        if Config.LOG_JSON is None:
            return self.environment == "production"
        return bool(Config.LOG_JSON)

    @property
    def use_colors(self) -> bool:
        return not self.use_json and sys.stdout.isatty()


LOGGING_SETTINGS = LoggingSettings()


# ============================================================================
# Filters & Formatters
# ============================================================================


class ContextFilter(logging.Filter):
    """Copy the active ``LogContext`` onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        context: Dict[str, Any] = _log_context.get({})

        # An explicit extra={"user_id": ...} takes precedence
        if not hasattr(record, "user_id"):
            record.user_id = context.get("user_id", "N/A")
        record.operation = context.get("operation", "N/A")
        record.correlation_id = context.get("correlation_id", "N/A")
        record.component = context.get("component") or record.name.rsplit(".", 1)[-1]
        return True


class ColoredFormatter(logging.Formatter):
    LEVEL_COLORS: Dict[str, str] = {
        "DEBUG": "\033[90m",
        "INFO": "\033[36m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;31m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        levelname = record.levelname
        color = self.LEVEL_COLORS.get(levelname)
        if color:
            record.levelname = f"{color}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


class JSONFormatter(logging.Formatter):
    """One JSON object per record; ``extra`` fields land under ``"extra"``."""

    RESERVED_ATTRS = frozenset(
        {
            "name",
            "msg",
            "args",
            "levelname",
            "levelno",
            "pathname",
            "filename",
            "module",
            "exc_info",
            "exc_text",
            "stack_info",
            "lineno",
            "funcName",
            "created",
            "msecs",
            "relativeCreated",
            "thread",
            "threadName",
            "processName",
            "process",
            "taskName",
            "message",
            "asctime",
        }
    )

    CONTEXT_ATTRS = ("user_id", "operation", "correlation_id", "component")

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }

        for attr in self.CONTEXT_ATTRS:
            value = getattr(record, attr, None)
            if value not in (None, "N/A"):
                payload[attr] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in self.RESERVED_ATTRS
            and key not in self.CONTEXT_ATTRS
            and not key.startswith("_")
        }
        if extra:
            payload["extra"] = extra

        return json.dumps(payload, ensure_ascii=False, default=str)


# ============================================================================
# Queue Handler
# ============================================================================


class DroppingQueueHandler(QueueHandler):
    """Drop records instead of blocking when the queue is full."""

    dropped: int = 0

    def enqueue(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            DroppingQueueHandler.dropped += 1


# ============================================================================
# Global Setup
# ============================================================================

_queue_listener: Optional[QueueListener] = None


def _build_console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(LOGGING_SETTINGS.log_level)

    if LOGGING_SETTINGS.use_json:
        handler.setFormatter(JSONFormatter())
    else:
        formatter_cls = ColoredFormatter if LOGGING_SETTINGS.use_colors else logging.Formatter
        handler.setFormatter(
            formatter_cls(
                fmt=LOGGING_SETTINGS.CONSOLE_FORMAT,
                datefmt=LOGGING_SETTINGS.DATE_FORMAT,
            )
        )
    return handler


def _build_daily_file_handler() -> logging.Handler:
    LOGGING_SETTINGS.logs_dir.mkdir(parents=True, exist_ok=True)

    handler = TimedRotatingFileHandler(
        filename=str(LOGGING_SETTINGS.logs_dir / LOGGING_SETTINGS.DAILY_BASENAME),
        when="midnight",
        backupCount=LOGGING_SETTINGS.DAILY_BACKUP_COUNT,
        encoding="utf-8",
        utc=True,
    )
    handler.setLevel(LOGGING_SETTINGS.log_level)
    handler.setFormatter(JSONFormatter())
    return handler


def setup_logging() -> None:
    """Install the queue-based logging stack on the root logger once."""
    global _queue_listener

    root = logging.getLogger()
    if getattr(root, "_kilnbook_logging_initialized", False):
        return

    root.setLevel(LOGGING_SETTINGS.log_level)
    root.handlers.clear()
    root.filters.clear()

    log_queue: "queue.Queue[logging.LogRecord]" = queue.Queue(
        LOGGING_SETTINGS.QUEUE_MAX_SIZE
    )
    _queue_listener = QueueListener(
        log_queue,
        _build_console_handler(),
        _build_daily_file_handler(),
        respect_handler_level=True,
    )
    _queue_listener.start()

    queue_handler = DroppingQueueHandler(log_queue)
    queue_handler.setLevel(LOGGING_SETTINGS.log_level)
    # Filter on the handler so records from every logger get context
    queue_handler.addFilter(ContextFilter())
    root.addHandler(queue_handler)

    for noisy in ("asyncio", "asyncpg", "sqlalchemy.engine", "redis"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    setattr(root, "_kilnbook_logging_initialized", True)

    logging.getLogger(__name__).info(
        "Logging initialized",
        extra={
            "environment": LOGGING_SETTINGS.environment,
            "log_level": logging.getLevelName(LOGGING_SETTINGS.log_level),
            "json": LOGGING_SETTINGS.use_json,
            "logs_dir": str(LOGGING_SETTINGS.logs_dir),
        },
    )


def shutdown_logging() -> None:
    """Stop the listener and flush every handler."""
    global _queue_listener

    root = logging.getLogger()
    if not getattr(root, "_kilnbook_logging_initialized", False):
        return

    if _queue_listener is not None:
        _queue_listener.stop()
        for handler in _queue_listener.handlers:
            handler.flush()
            handler.close()
        _queue_listener = None

    for handler in list(root.handlers):
        root.removeHandler(handler)

    setattr(root, "_kilnbook_logging_initialized", False)


# ============================================================================
# Public API
# ============================================================================


def get_logger(name: str) -> Logger:
    return logging.getLogger(name)


class LogContext:
    """
    Scoped log context.

    Example
    -------
    >>> async with LogContext(user_id="u1", operation="get_kilns_cached"):
    ...     logger.info("Reading kilns")
    """

    def __init__(
        self,
        user_id: Optional[str] = None,
        operation: Optional[str] = None,
        component: Optional[str] = None,
        correlation_id: Optional[str] = None,
        **extra: Any,
    ) -> None:
        self.context: Dict[str, Any] = {
            "user_id": str(user_id) if user_id is not None else "N/A",
            "operation": operation or "N/A",
            "component": component,
            "correlation_id": correlation_id or uuid.uuid4().hex[:8],
            **extra,
        }
        self._token: Optional[Token[Dict[str, Any]]] = None

    def __enter__(self) -> "LogContext":
        self._token = _log_context.set(self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None

    async def __aenter__(self) -> "LogContext":
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


def set_log_context(
    user_id: Optional[str] = None,
    operation: Optional[str] = None,
    **extra: Any,
) -> None:
    current = dict(_log_context.get({}))
    if user_id is not None:
        current["user_id"] = str(user_id)
    if operation is not None:
        current["operation"] = operation
    current.update(extra)
    _log_context.set(current)


def clear_log_context() -> None:
    _log_context.set({})


def current_log_context() -> Dict[str, Any]:
    return dict(_log_context.get({}))


setup_logging()
