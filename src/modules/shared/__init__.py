"""
Kilnbook Shared Module

Purpose
-------
Domain-level foundations for the studio modules:
- Domain exceptions
- The user-scoped base repository
- Raise-on-error validators

Architecture
------------
- BaseRepository: Type-safe, owner-scoped database access patterns
- Domain exceptions: Caller-facing errors and rule violations
- Validators: Domain validation with structured error raising

Usage
-----
    from src.modules.shared import BaseRepository, ValidationError, validate_choice
"""

from __future__ import annotations

from .base_repository import BaseRepository, to_iso
from .exceptions import (
    ImportFormatError,
    KilnbookDomainException,
    RecordNotFoundError,
    ValidationError,
)
from .validators import (
    parse_iso_date,
    validate_choice,
    validate_non_negative,
    validate_required_text,
    validate_whole_degrees,
)

__all__ = [
    "BaseRepository",
    "to_iso",
    "KilnbookDomainException",
    "ValidationError",
    "RecordNotFoundError",
    "ImportFormatError",
    "parse_iso_date",
    "validate_choice",
    "validate_non_negative",
    "validate_required_text",
    "validate_whole_degrees",
]
