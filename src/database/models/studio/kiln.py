"""
Kiln: a kiln in the studio inventory.
Pure schema only.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, IdMixin, OwnedMixin, TimestampMixin


class Kiln(Base, IdMixin, OwnedMixin, TimestampMixin):
    __tablename__ = "kilns"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    max_temperature: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
