"""
Database Models Package
========================

SQLAlchemy ORM models for Kilnbook. Models are schema only: no business
logic, ``Mapped[]`` annotations with ``mapped_column()``, shared mixins
from ``src.core.database.base``.

- studio: glaze recipes, firing logs, kilns, clay bodies, raw materials,
  active firing sessions, studio settings
- enums: shared categorical values
"""

from src.core.database.base import Base

from .studio import (
    ActiveFiringSession,
    ClayBody,
    FiringLog,
    GlazeRecipe,
    Kiln,
    RawMaterial,
    StudioSettings,
)

__all__ = [
    "Base",
    "ActiveFiringSession",
    "ClayBody",
    "FiringLog",
    "GlazeRecipe",
    "Kiln",
    "RawMaterial",
    "StudioSettings",
]
