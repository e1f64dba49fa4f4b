"""
Live firing tracker.

Purpose
-------
In-memory model of a firing in progress: temperature readings with ramp
rates, live warnings, and the conversion into a firing-log record when the
firing is finished.

Responsibilities
----------------
- Start a session and log readings (ramp rate from the previous reading)
- Compute live warnings once two readings exist
- Build the firing-log payload on finish and enforce its required fields
- Serialize to and from the JSON shape stored in the active-session cache
  and ``active_firing_sessions`` table

Non-Responsibilities
--------------------
- Persistence (``src.modules.sessions.repository``)
- Cache invalidation (``src.modules.studio.data_access``)

Architecture Notes
------------------
- Times are timezone-aware UTC datetimes; ``now`` is injectable everywhere
- Ramp rates are °C per hour rounded to 2 decimals
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from src.database.models.enums import (
    Atmosphere,
    FiringType,
    FiringWarningType,
    WarningSeverity,
)
from src.modules.firing.rules import HIGH_RAMP_RATE, TEMPERATURE_OVERSHOOT, cone_from_temperature
from src.modules.shared.exceptions import ValidationError
from src.modules.shared.validators import validate_choice, validate_whole_degrees

OVERSHOOT_RATIO = 1.1
STARTING_NOTE = "Starting temperature"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600


def calculate_ramp_rate(previous_temperature: float, temperature: float, elapsed_hours: float) -> float:
    """°C/h between two readings; 0 when no time elapsed."""
    if elapsed_hours <= 0:
        return 0
    return round((temperature - previous_temperature) / elapsed_hours, 2)


# ============================================================================
# Readings
# ============================================================================


@dataclass
class TemperatureReading:
    id: str
    timestamp: datetime
    temperature: int
    notes: Optional[str] = None
    atmosphere: Atmosphere = Atmosphere.OXIDATION
    ramp_rate: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "temperature": self.temperature,
            "notes": self.notes,
            "atmosphere": self.atmosphere.value,
            "ramp_rate": self.ramp_rate,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TemperatureReading":
        return cls(
            id=data["id"],
            timestamp=_parse_datetime(data["timestamp"]),
            temperature=data["temperature"],
            notes=data.get("notes"),
            atmosphere=Atmosphere(data.get("atmosphere") or Atmosphere.OXIDATION.value),
            ramp_rate=data.get("ramp_rate"),
        )


def average_ramp_rate(readings: List[TemperatureReading]) -> float:
    """Mean ramp rate over consecutive readings with positive elapsed time."""
    if len(readings) < 2:
        return 0

    total = 0.0
    intervals = 0
    for previous, current in zip(readings, readings[1:]):
        hours = _hours_between(previous.timestamp, current.timestamp)
        if hours > 0:
            total += (current.temperature - previous.temperature) / hours
            intervals += 1

    return round(total / intervals, 2) if intervals else 0


# ============================================================================
# Session
# ============================================================================


@dataclass
class LiveFiringSession:
    """A firing being logged reading by reading."""

    id: str
    kiln_id: str
    kiln_name: str
    firing_type: str
    target_temperature: int
    start_time: datetime
    is_active: bool = True
    current_temperature: int = 0
    notes: str = ""
    title: Optional[str] = None
    readings: List[TemperatureReading] = field(default_factory=list)

    @classmethod
    def start(
        cls,
        kiln_id: str,
        kiln_name: str,
        firing_type: str,
        target_temperature: int,
        current_temperature: int = 0,
        title: Optional[str] = None,
        notes: str = "",
        atmosphere: Atmosphere = Atmosphere.OXIDATION,
        now: Optional[datetime] = None,
    ) -> "LiveFiringSession":
        """
        Begin a firing. A positive starting temperature is logged as the
        first reading.

        Raises:
            ValidationError: For an unknown firing type, a non-positive target
                or a temperature that is not whole degrees
        """
        validate_choice("firing_type", firing_type, FiringType)
        target_temperature = validate_whole_degrees("target_temperature", target_temperature)
        current_temperature = validate_whole_degrees(
            "current_temperature", current_temperature, allow_zero=True
        )
        now = now or _utcnow()

        session = cls(
            id=str(uuid.uuid4()),
            kiln_id=kiln_id,
            kiln_name=kiln_name,
            firing_type=firing_type,
            target_temperature=target_temperature,
            start_time=now,
            current_temperature=current_temperature,
            notes=notes,
            title=title,
        )
        if current_temperature > 0:
            session.readings.append(
                TemperatureReading(
                    id=str(uuid.uuid4()),
                    timestamp=now,
                    temperature=current_temperature,
                    notes=STARTING_NOTE,
                    atmosphere=atmosphere,
                )
            )
        return session

    @property
    def target_cone(self) -> str:
        return cone_from_temperature(self.target_temperature)

    def default_title(self) -> str:
        return f"Cone {self.target_cone}, {self.start_time:%b %d, %Y}"

    def pause(self) -> None:
        self.is_active = False

    def resume(self) -> None:
        self.is_active = True

    def log_temperature(
        self,
        temperature: int,
        notes: Optional[str] = None,
        atmosphere: Atmosphere = Atmosphere.OXIDATION,
        now: Optional[datetime] = None,
    ) -> TemperatureReading:
        """
        Raises:
            ValidationError: If ``temperature`` is not a positive whole number
        """
        temperature = validate_whole_degrees("temperature", temperature)
        now = now or _utcnow()

        ramp_rate = None
        if self.readings:
            previous = self.readings[-1]
            ramp_rate = calculate_ramp_rate(
                previous.temperature,
                temperature,
                _hours_between(previous.timestamp, now),
            )

        reading = TemperatureReading(
            id=str(uuid.uuid4()),
            timestamp=now,
            temperature=temperature,
            notes=(notes or "").strip() or None,
            atmosphere=atmosphere,
            ramp_rate=ramp_rate,
        )
        self.readings.append(reading)
        self.current_temperature = temperature
        return reading

    def live_warnings(self) -> List[Dict[str, str]]:
        """Warnings for the latest reading; empty until two readings exist."""
        if len(self.readings) < 2:
            return []

        warnings: List[Dict[str, str]] = []
        last_ramp = self.readings[-1].ramp_rate
        current = self.current_temperature
        target = self.target_temperature

        if last_ramp and last_ramp > HIGH_RAMP_RATE:
            warnings.append(
                {
                    "type": FiringWarningType.HIGH_RAMP_RATE.value,
                    "message": f"High ramp rate: {last_ramp}°C/h",
                }
            )
        if current > target + TEMPERATURE_OVERSHOOT:
            warnings.append(
                {
                    "type": FiringWarningType.TEMPERATURE_EXCEEDED.value,
                    "message": f"Temperature exceeds target by {current - target}°C",
                }
            )
        if current > target * OVERSHOOT_RATIO:
            warnings.append(
                {
                    "type": FiringWarningType.TEMPERATURE_EXCEEDED.value,
                    "message": "Temperature is 10% above target",
                }
            )
        return warnings

    def build_firing_log(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Firing-log payload for a finished session.

        Raises:
            ValidationError: If kiln name, firing type, target or final
                temperature is missing, not positive or not whole degrees
        """
        now = now or _utcnow()
        final_temperature = (
            self.readings[-1].temperature if self.readings else self.current_temperature
        )

        if not self.kiln_name:
            raise ValidationError("kiln_name", "Kiln name is required")
        if not self.firing_type:
            raise ValidationError("firing_type", "Firing type is required")
        if not self.target_temperature or self.target_temperature <= 0:
            raise ValidationError("target_temperature", "Valid target temperature is required")
        if not final_temperature or final_temperature <= 0:
            raise ValidationError("actual_temperature", "Valid actual temperature is required")
        target_temperature = validate_whole_degrees("target_temperature", self.target_temperature)
        final_temperature = validate_whole_degrees("actual_temperature", final_temperature)

        triggered_at = int(now.timestamp() * 1000)
        return {
            "kiln_name": self.kiln_name,
            "title": self.title or self.default_title(),
            "date": self.start_time.date().isoformat(),
            "notes": self.notes or None,
            "firing_type": self.firing_type,
            "target_temperature": target_temperature,
            "actual_temperature": final_temperature,
            "firing_duration_hours": round(_hours_between(self.start_time, now), 2),
            "ramp_rate": average_ramp_rate(self.readings),
            "warning_flags": [
                dict(warning, severity=WarningSeverity.WARNING.value, triggered_at=triggered_at)
                for warning in self.live_warnings()
            ],
            "temperature_entries": [
                {
                    "id": reading.id,
                    "time": f"{reading.timestamp:%H:%M}",
                    "temperature": reading.temperature,
                    "notes": reading.notes,
                    "atmosphere": reading.atmosphere.value,
                    "ramp_rate": reading.ramp_rate or None,
                }
                for reading in self.readings
            ],
        }

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kiln_id": self.kiln_id,
            "kiln_name": self.kiln_name,
            "firing_type": self.firing_type,
            "title": self.title,
            "target_temperature": self.target_temperature,
            "target_cone": self.target_cone,
            "current_temperature": self.current_temperature,
            "start_time": self.start_time.isoformat(),
            "is_active": self.is_active,
            "notes": self.notes,
            "temperature_entries": [reading.to_dict() for reading in self.readings],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LiveFiringSession":
        return cls(
            id=data["id"],
            kiln_id=data.get("kiln_id") or "",
            kiln_name=data["kiln_name"],
            firing_type=data["firing_type"],
            target_temperature=data["target_temperature"],
            start_time=_parse_datetime(data["start_time"]),
            is_active=bool(data.get("is_active", True)),
            current_temperature=data.get("current_temperature") or 0,
            notes=data.get("notes") or "",
            title=data.get("title"),
            readings=[
                TemperatureReading.from_dict(entry)
                for entry in data.get("temperature_entries") or []
            ],
        )
