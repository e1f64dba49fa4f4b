"""
Studio Settings Repository

One ``studio_settings`` row per user holding the studio name. Reads of a
user without a row return the defaults rather than creating one.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

from sqlalchemy import select

from src.core.database.base import utcnow
from src.core.logging.logger import get_logger
from src.database.models.studio import StudioSettings
from src.modules.shared.validators import validate_required_text

if TYPE_CHECKING:
    from src.core.database.service import DatabaseService

logger = get_logger(__name__)

DEFAULT_SETTINGS: Dict[str, Any] = {"studio_name": ""}


class StudioSettingsRepository:
    def __init__(self, database_service: type[DatabaseService]) -> None:
        self._db = database_service

    async def get_settings(self, user_id: str) -> Dict[str, Any]:
        async with self._db.get_session() as session:
            result = await session.execute(
                select(StudioSettings).where(StudioSettings.user_id == user_id)
            )
            row = result.scalar_one_or_none()
            if row is None:
                return dict(DEFAULT_SETTINGS, user_id=user_id)
            return {"user_id": row.user_id, "studio_name": row.studio_name}

    async def is_first_launch(self, user_id: str) -> bool:
        settings = await self.get_settings(user_id)
        return not settings["studio_name"].strip()

    async def update_studio_name(self, user_id: str, studio_name: str) -> Dict[str, Any]:
        """
        Raises:
            ValidationError: If ``studio_name`` is blank
        """
        validate_required_text("studio_name", studio_name)
        studio_name = studio_name.strip()

        async with self._db.get_transaction() as session:
            result = await session.execute(
                select(StudioSettings)
                .where(StudioSettings.user_id == user_id)
                .with_for_update()
            )
            row = result.scalar_one_or_none()
            if row is None:
                session.add(StudioSettings(user_id=user_id, studio_name=studio_name))
            else:
                row.studio_name = studio_name
                row.updated_at = utcnow()

        logger.info("Studio name updated", extra={"user_id": user_id})
        return {"user_id": user_id, "studio_name": studio_name}
