"""
Infrastructure exceptions for Kilnbook.

Purpose
-------
Structured exception hierarchy for engineering-level failures: configuration
errors, database failures and key/value store failures. Domain rule
violations live in ``src.modules.shared.exceptions``.

Design Notes
------------
- All infrastructure exceptions inherit from ``KilnbookInfrastructureException``.
- Each exception carries:
  - ``message``: human-readable description
  - ``details``: additional structured context (dict)
  - ``severity``: ``ErrorSeverity`` value for logging/alerting
  - ``is_retryable``: whether the operation can be retried
  - ``error_code``: short, stable identifier for programmatic use
- The cache layer catches ``CacheStoreError`` and degrades; database errors
  always reach the caller.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels for logging and alerting."""

    DEBUG = "debug"
    INFO = "info"  # e.g. validation failures
    WARNING = "warning"  # handled, e.g. cache degradation
    ERROR = "error"
    CRITICAL = "critical"


class KilnbookInfrastructureException(Exception):
    """
    Base exception for all Kilnbook infrastructure-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried
        error_code: Optional code for programmatic handling

    Example:
        >>> raise KilnbookInfrastructureException(
        ...     "Database connection failed",
        ...     {"host": "localhost", "port": 5432}
        ... )
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"


class ConfigurationError(KilnbookInfrastructureException):
    """
    Raised when a configuration key is invalid or missing.

    Args:
        config_key: The configuration key that has issues
        message: Description of the configuration problem
    """

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL

    def __init__(self, config_key: str, message: str) -> None:
        self.config_key = config_key
        super().__init__(
            f"Configuration error for {config_key}: {message}",
            details={"config_key": config_key, "message": message},
            error_code="CONFIG_ERROR",
        )


class DatabaseError(KilnbookInfrastructureException):
    """
    Raised when database operations fail.

    Args:
        operation: Description of the database operation that failed
        original_error: The underlying database exception
    """

    DEFAULT_RETRYABLE = True

    def __init__(self, operation: str, original_error: Exception) -> None:
        self.operation = operation
        self.original_error = original_error
        super().__init__(
            f"Database error during {operation}: {original_error}",
            details={
                "operation": operation,
                "error": str(original_error),
                "error_type": type(original_error).__name__,
            },
            error_code="DATABASE_ERROR",
        )


class CacheStoreError(KilnbookInfrastructureException):
    """
    Raised by a key/value store when a read, write or delete fails.

    Args:
        operation: Store operation that failed ("get", "set", "delete")
        key: The store key involved
        original_error: The underlying exception (if any)
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True

    def __init__(
        self,
        operation: str,
        key: str,
        original_error: Optional[Exception] = None,
        error_code: str = "CACHE_STORE_ERROR",
    ) -> None:
        self.operation = operation
        self.key = key
        self.original_error = original_error
        reason = str(original_error) if original_error else "store operation failed"
        super().__init__(
            f"Cache store error during {operation} for key '{key}': {reason}",
            details={
                "operation": operation,
                "key": key,
                "error": reason,
                "error_type": type(original_error).__name__ if original_error else None,
            },
            error_code=error_code,
        )


class StoreQuotaExceededError(CacheStoreError):
    """
    Raised when a write would push a bounded store past its capacity.

    Args:
        key: Key being written
        requested: Size of the value being written (characters)
        capacity: Total capacity of the store (characters)
    """

    DEFAULT_RETRYABLE = False

    def __init__(self, key: str, requested: int, capacity: int) -> None:
        self.requested = requested
        self.capacity = capacity
        super().__init__(
            "set",
            key,
            error_code="STORE_QUOTA_EXCEEDED",
        )
        self.message = (
            f"Store quota exceeded writing '{key}': "
            f"{requested} characters, capacity {capacity}"
        )
        self.args = (self.message,)
        self.details.update({"requested": requested, "capacity": capacity})


def is_transient_error(exc: Exception) -> bool:
    """True if the exception is a Kilnbook infrastructure error marked retryable."""
    if isinstance(exc, KilnbookInfrastructureException):
        return exc.is_retryable
    return False


def get_error_severity(exc: Exception) -> ErrorSeverity:
    if isinstance(exc, KilnbookInfrastructureException):
        return exc.severity
    return ErrorSeverity.ERROR
