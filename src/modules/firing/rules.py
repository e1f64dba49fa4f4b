"""
Firing log rules.

Cone lookup, default titles, saved-log warnings and payload validation.
Pure functions; ``now`` is injectable wherever a timestamp is produced.
"""

from __future__ import annotations

import datetime as dt
import time
from typing import Any, Dict, List, Mapping, Optional, Tuple

from src.database.models.enums import FiringType, FiringWarningType, WarningSeverity
from src.modules.shared.exceptions import ValidationError
from src.modules.shared.validators import (
    parse_iso_date,
    validate_choice,
    validate_non_negative,
    validate_required_text,
    validate_whole_degrees,
)

# (cone, low °C, high °C); first match wins, ranges overlap on purpose
CONE_TABLE: Tuple[Tuple[str, int, int], ...] = (
    ("04", 1060, 1080),
    ("05", 1040, 1060),
    ("06", 990, 1020),
    ("07", 950, 980),
    ("08", 910, 940),
    ("09", 890, 920),
    ("10", 880, 900),
)

HIGH_RAMP_RATE = 200
CRITICAL_RAMP_RATE = 300
TEMPERATURE_OVERSHOOT = 50
MAX_DURATION_HOURS = 24

UPDATABLE_FIELDS = (
    "kiln_name",
    "title",
    "date",
    "notes",
    "firing_type",
    "target_temperature",
    "actual_temperature",
    "firing_duration_hours",
    "ramp_rate",
    "temperature_entries",
)

WARNING_INPUTS = ("target_temperature", "actual_temperature", "firing_duration_hours", "ramp_rate")


def cone_from_temperature(temperature: float) -> str:
    for cone, low, high in CONE_TABLE:
        if low <= temperature <= high:
            return cone
    return f"{temperature}°C"


def generate_firing_log_title(target_temperature: float, date: dt.date) -> str:
    """``Cone 06, Mar 04, 2025``."""
    return f"Cone {cone_from_temperature(target_temperature)}, {date:%b %d, %Y}"


def display_title(log: Mapping[str, Any]) -> str:
    if log.get("title"):
        return log["title"]
    return generate_firing_log_title(
        log["target_temperature"], parse_iso_date("date", log["date"])
    )


def calculate_warnings(
    ramp_rate: float,
    target_temperature: float,
    actual_temperature: float,
    firing_duration_hours: float,
    now: Optional[float] = None,
) -> List[Dict[str, Any]]:
    """
    Warnings for a saved firing log.

    ``triggered_at`` is epoch milliseconds.
    """
    triggered_at = int((time.time() if now is None else now) * 1000)
    warnings: List[Dict[str, Any]] = []

    if ramp_rate > HIGH_RAMP_RATE:
        severity = (
            WarningSeverity.CRITICAL if ramp_rate > CRITICAL_RAMP_RATE else WarningSeverity.WARNING
        )
        warnings.append(
            {
                "type": FiringWarningType.HIGH_RAMP_RATE.value,
                "message": (
                    f"High ramp rate: {ramp_rate}°C/hour "
                    f"(recommended max: {HIGH_RAMP_RATE}°C/hour)"
                ),
                "severity": severity.value,
                "triggered_at": triggered_at,
            }
        )

    if actual_temperature > target_temperature + TEMPERATURE_OVERSHOOT:
        warnings.append(
            {
                "type": FiringWarningType.TEMPERATURE_EXCEEDED.value,
                "message": (
                    f"Temperature exceeded target by "
                    f"{actual_temperature - target_temperature}°C"
                ),
                "severity": WarningSeverity.WARNING.value,
                "triggered_at": triggered_at,
            }
        )

    if firing_duration_hours > MAX_DURATION_HOURS:
        warnings.append(
            {
                "type": FiringWarningType.DURATION_EXCEEDED.value,
                "message": f"Long firing duration: {firing_duration_hours} hours",
                "severity": WarningSeverity.WARNING.value,
                "triggered_at": triggered_at,
            }
        )

    return warnings


def _validate_numbers(values: Dict[str, Any]) -> None:
    for field in ("target_temperature", "actual_temperature"):
        if field in values:
            values[field] = validate_whole_degrees(field, values[field])
    for field in ("firing_duration_hours", "ramp_rate"):
        if field in values:
            validate_non_negative(field, values[field])


def validate_new_log(data: Mapping[str, Any], now: Optional[float] = None) -> Dict[str, Any]:
    """
    Validate a create payload and return column values.

    The title defaults to the cone title. Warnings are computed unless the
    payload already carries ``warning_flags`` (live firing sessions do).

    Raises:
        ValidationError: On the first invalid field
    """
    validate_required_text("kiln_name", data.get("kiln_name"))
    validate_choice("firing_type", data.get("firing_type"), FiringType)

    values: Dict[str, Any] = {
        "kiln_name": data["kiln_name"].strip(),
        "date": parse_iso_date("date", data.get("date") or dt.date.today()),
        "notes": data.get("notes") or None,
        "firing_type": data["firing_type"],
        "target_temperature": data.get("target_temperature"),
        "actual_temperature": data.get("actual_temperature"),
        "firing_duration_hours": data.get("firing_duration_hours", 0),
        "ramp_rate": data.get("ramp_rate", 0),
        "temperature_entries": data.get("temperature_entries") or None,
    }
    _validate_numbers(values)

    values["title"] = data.get("title") or generate_firing_log_title(
        values["target_temperature"], values["date"]
    )

    warning_flags = data.get("warning_flags")
    if warning_flags is None:
        warning_flags = calculate_warnings(
            values["ramp_rate"],
            values["target_temperature"],
            values["actual_temperature"],
            values["firing_duration_hours"],
            now=now,
        )
    elif not isinstance(warning_flags, list):
        raise ValidationError("warning_flags", "must be a list")
    values["warning_flags"] = warning_flags
    return values


def validate_log_updates(updates: Mapping[str, Any]) -> Dict[str, Any]:
    """Keep only provided (truthy) updatable fields, validated."""
    values: Dict[str, Any] = {}
    for field in UPDATABLE_FIELDS:
        value = updates.get(field)
        if not value:
            continue
        if field == "kiln_name":
            validate_required_text("kiln_name", value)
            value = value.strip()
        elif field == "firing_type":
            validate_choice("firing_type", value, FiringType)
        elif field == "date":
            value = parse_iso_date("date", value)
        values[field] = value
    _validate_numbers(values)
    return values


def touches_warning_inputs(values: Mapping[str, Any]) -> bool:
    return any(field in values for field in WARNING_INPUTS)
