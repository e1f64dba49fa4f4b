"""
FiringLog: record of a completed kiln firing.
Pure schema only.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Optional

from sqlalchemy import Date, Float, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, IdMixin, OwnedMixin, TimestampMixin


class FiringLog(Base, IdMixin, OwnedMixin, TimestampMixin):
    """
    Schema-only:
    - kiln_name, title, date, notes, firing_type
    - target_temperature / actual_temperature (°C)
    - firing_duration_hours, ramp_rate (°C/h)
    - warning_flags: list of ``{type, message, severity, triggered_at}``
    - temperature_entries: list of ``{id, time, temperature, notes, atmosphere, rampRate}``
    - share_token: optional public share token
    """

    __tablename__ = "firing_logs"
    __table_args__ = (
        Index("ix_firing_logs_user_date", "user_id", "date"),
    )

    kiln_name: Mapped[str] = mapped_column(String(200), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    firing_type: Mapped[str] = mapped_column(String(32), nullable=False)

    target_temperature: Mapped[int] = mapped_column(Integer, nullable=False)
    actual_temperature: Mapped[int] = mapped_column(Integer, nullable=False)
    firing_duration_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    ramp_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    warning_flags: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
    )
    temperature_entries: Mapped[Optional[List[Dict[str, Any]]]] = mapped_column(
        JSONB,
        nullable=True,
    )

    share_token: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, unique=True)
