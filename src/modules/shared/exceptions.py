"""
Domain exceptions for Kilnbook.

Purpose
-------
Exceptions raised by studio services and repositories for business rule
violations: invalid glaze or firing input, missing records, malformed
import documents. Infrastructure failures live in ``src.core.exceptions``.

Design Notes
------------
- All domain exceptions inherit from ``KilnbookDomainException``.
- They share the ``ErrorSeverity`` scale with infrastructure exceptions so
  log handlers treat both hierarchies alike.
- Callers in the data-access layer never catch these; they propagate to the
  command line (or whatever surface drives the operation).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from src.core.exceptions import ErrorSeverity


class KilnbookDomainException(Exception):
    """
    Base exception for all Kilnbook domain-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        error_code: Optional code for programmatic handling
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.INFO

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"


class ValidationError(KilnbookDomainException):
    """
    Raised when user-supplied studio data fails validation.

    Args:
        field: Name of the offending field
        message: What is wrong with it
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(
            f"Invalid {field}: {message}",
            details={"field": field, "reason": message},
            error_code="VALIDATION_ERROR",
        )


class RecordNotFoundError(KilnbookDomainException):
    """
    Raised when an update targets a row that does not exist for the user.

    Args:
        entity: Table-level entity name (e.g. "glaze_recipe")
        record_id: Primary key that was not found
        user_id: Owner the lookup was scoped to
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING

    def __init__(self, entity: str, record_id: str, user_id: str) -> None:
        self.entity = entity
        self.record_id = record_id
        self.user_id = user_id
        super().__init__(
            f"{entity} {record_id} not found",
            details={"entity": entity, "record_id": record_id, "user_id": user_id},
            error_code="RECORD_NOT_FOUND",
        )


class ImportFormatError(KilnbookDomainException):
    """Raised when an import document does not have the export layout."""

    def __init__(self, problems: List[str]) -> None:
        self.problems = problems
        super().__init__(
            "Import document is malformed",
            details={"problems": problems},
            error_code="IMPORT_FORMAT_ERROR",
        )
