"""
ClayBody and RawMaterial: studio material library.
Pure schema only.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, IdMixin, OwnedMixin, TimestampMixin


class ClayBody(Base, IdMixin, OwnedMixin, TimestampMixin):
    """
    Schema-only:
    - name, color, notes
    - shrinkage: total shrinkage in percent
    """

    __tablename__ = "clay_bodies"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    shrinkage: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    color: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class RawMaterial(Base, IdMixin, OwnedMixin, TimestampMixin):
    """
    Schema-only:
    - name, description
    - base_material_type: id from the base material catalogue (e.g. ``flux-1``)
    """

    __tablename__ = "raw_materials"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    base_material_type: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
