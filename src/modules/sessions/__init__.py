"""Live firing sessions: the in-memory tracker and its persistence."""

from .repository import ActiveSessionRepository, active_session_to_dict
from .tracker import (
    LiveFiringSession,
    TemperatureReading,
    average_ramp_rate,
    calculate_ramp_rate,
)

__all__ = [
    "ActiveSessionRepository",
    "LiveFiringSession",
    "TemperatureReading",
    "active_session_to_dict",
    "average_ramp_rate",
    "calculate_ramp_rate",
]
