"""
ActiveFiringSession: the live firing a user is currently logging.
Pure schema only.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, IdMixin, OwnedMixin, TimestampMixin, utcnow


class ActiveFiringSession(Base, IdMixin, OwnedMixin, TimestampMixin):
    """
    Schema-only:
    - kiln_id, kiln_name, firing_type, title
    - target_temperature, target_cone, current_temperature
    - start_time, last_update
    - is_active: False once the session is completed
    - temperature_entries: list of ``{id, timestamp, temperature, notes, atmosphere, rampRate}``
    """

    __tablename__ = "active_firing_sessions"
    __table_args__ = (
        Index("ix_active_firing_sessions_user_active", "user_id", "is_active"),
    )

    kiln_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    kiln_name: Mapped[str] = mapped_column(String(200), nullable=False)
    firing_type: Mapped[str] = mapped_column(String(32), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    target_temperature: Mapped[int] = mapped_column(Integer, nullable=False)
    target_cone: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    current_temperature: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_update: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    temperature_entries: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
    )
