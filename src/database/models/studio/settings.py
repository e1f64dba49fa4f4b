"""
StudioSettings: per-user studio preferences.
Pure schema only.
"""

from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, IdMixin, TimestampMixin


class StudioSettings(Base, IdMixin, TimestampMixin):
    __tablename__ = "studio_settings"

    user_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    studio_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
