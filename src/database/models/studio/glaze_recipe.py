"""
GlazeRecipe: one glaze formula with its composition lines.
Pure schema only.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Optional

from sqlalchemy import Date, Index, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, IdMixin, OwnedMixin, TimestampMixin


class GlazeRecipe(Base, IdMixin, OwnedMixin, TimestampMixin):
    """
    Schema-only:
    - name, color, finish
    - composition: list of ``{"name": str, "percentage": float}``
    - date: recipe date
    - batch_number: ``G<yymmdd>-XXXX`` unless supplied
    - photos: list of encoded images
    - clay_body_id: clay body the glaze was tested on
    - share_token: optional public share token
    """

    __tablename__ = "glaze_recipes"
    __table_args__ = (
        Index("ix_glaze_recipes_user_created", "user_id", "created_at"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    color: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    finish: Mapped[str] = mapped_column(String(32), nullable=False)

    composition: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
    )

    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    batch_number: Mapped[str] = mapped_column(String(32), nullable=False)

    photos: Mapped[Optional[List[str]]] = mapped_column(JSONB, nullable=True)

    clay_body_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    share_token: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, unique=True)
