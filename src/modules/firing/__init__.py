"""Firing logs: cone lookup, warnings and owner-scoped persistence."""

from .repository import FiringLogRepository, firing_log_to_dict
from .rules import calculate_warnings, cone_from_temperature, generate_firing_log_title

__all__ = [
    "FiringLogRepository",
    "calculate_warnings",
    "cone_from_temperature",
    "firing_log_to_dict",
    "generate_firing_log_title",
]
