"""
Kilnbook Domain Validators

Validation helpers shared by the studio rules modules. Each validator
accepts the value to check, returns None (or the normalised value) on
success and raises ``ValidationError`` on failure (raise-on-error
pattern). No database access.

Usage
-----
    from src.modules.shared.validators import validate_choice

    validate_choice("finish", "glossy", GlazeFinish)
"""

from __future__ import annotations

import datetime as dt
import enum
from typing import Any, Optional, Type

from .exceptions import ValidationError


def validate_required_text(field: str, value: Optional[str]) -> None:
    """
    Raises:
        ValidationError: If value is None, not a string, or blank
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(field, "is required")


def validate_choice(field: str, value: Any, choices: Type[enum.Enum]) -> None:
    """
    Validate that ``value`` is one of an enum's values.

    Raises:
        ValidationError: If value is not a member value of ``choices``
    """
    allowed = [member.value for member in choices]
    if value not in allowed:
        raise ValidationError(field, f"must be one of {', '.join(allowed)}, got {value!r}")


def validate_non_negative(field: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ValidationError(field, f"must be zero or greater, got {value!r}")


def validate_whole_degrees(field: str, value: Any, allow_zero: bool = False) -> int:
    """
    Temperatures are stored as whole °C; ``1000.0`` is accepted as 1000.

    Raises:
        ValidationError: If value is not a whole number, or not positive
            (zero allowed with ``allow_zero``)
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(field, f"must be a whole number of degrees, got {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError(field, f"must be a whole number of degrees, got {value!r}")
    if value < 0 or (value == 0 and not allow_zero):
        raise ValidationError(field, f"must be a positive temperature, got {value!r}")
    return int(value)


def parse_iso_date(field: str, value: Any) -> dt.date:
    """
    Accept a ``date``/``datetime`` or an ISO ``YYYY-MM-DD`` string.

    Raises:
        ValidationError: If the value cannot be read as a date
    """
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        try:
            return dt.date.fromisoformat(value[:10])
        except ValueError:
            pass
    raise ValidationError(field, f"must be an ISO date (YYYY-MM-DD), got {value!r}")
