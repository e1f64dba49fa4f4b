"""
Database Model Enums
====================

Categorical values stored in the studio tables. Columns hold the string
value; services validate input against these enums before writing.
"""

from __future__ import annotations

import enum


class GlazeFinish(str, enum.Enum):
    """Surface finish of a fired glaze."""

    GLOSSY = "glossy"
    MATTE = "matte"
    SEMI_MATTE = "semi-matte"
    CRYSTALLINE = "crystalline"
    RAKU = "raku"
    WOOD_FIRED = "wood-fired"
    SODA = "soda"


class FiringType(str, enum.Enum):
    BISQUE = "bisque"
    GLAZE = "glaze"
    RAKU = "raku"
    WOOD = "wood"
    SODA = "soda"
    OTHER = "other"


class KilnType(str, enum.Enum):
    ELECTRIC = "electric"
    GAS = "gas"
    WOOD = "wood"
    RAKU = "raku"
    OTHER = "other"


class Atmosphere(str, enum.Enum):
    """Kiln atmosphere at the time of a temperature reading."""

    OXIDATION = "oxidation"
    REDUCTION = "reduction"


class FiringWarningType(str, enum.Enum):
    HIGH_RAMP_RATE = "high_ramp_rate"
    TEMPERATURE_EXCEEDED = "temperature_exceeded"
    DURATION_EXCEEDED = "duration_exceeded"


class WarningSeverity(str, enum.Enum):
    WARNING = "warning"
    CRITICAL = "critical"


class MaterialCategory(str, enum.Enum):
    """Categories of the base material catalogue."""

    CLAY = "clay"
    FELDSPAR = "feldspar"
    SILICA = "silica"
    FLUX = "flux"
    OXIDE = "oxide"
    FRIT = "frit"
    OTHER = "other"
