"""
Kiln Repository

Owner-scoped CRUD over ``kilns``. Validation is small enough to live here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Mapping

from src.core.database.base import utcnow
from src.core.logging.logger import get_logger
from src.database.models.enums import KilnType
from src.database.models.studio import Kiln
from src.modules.shared.base_repository import BaseRepository, to_iso
from src.modules.shared.exceptions import RecordNotFoundError
from src.modules.shared.validators import (
    validate_choice,
    validate_required_text,
    validate_whole_degrees,
)

if TYPE_CHECKING:
    from src.core.database.service import DatabaseService

logger = get_logger(__name__)


def kiln_to_dict(kiln: Kiln) -> Dict[str, Any]:
    return {
        "id": kiln.id,
        "user_id": kiln.user_id,
        "name": kiln.name,
        "max_temperature": kiln.max_temperature,
        "type": kiln.type,
        "notes": kiln.notes,
        "created_at": to_iso(kiln.created_at),
    }


def validate_kiln(data: Mapping[str, Any], partial: bool = False) -> Dict[str, Any]:
    """
    Column values for a create (``partial=False``) or a partial update.

    Raises:
        ValidationError: On the first invalid field
    """
    values: Dict[str, Any] = {}
    if not partial or data.get("name"):
        validate_required_text("name", data.get("name"))
        values["name"] = data["name"].strip()
    if not partial or data.get("type"):
        validate_choice("type", data.get("type"), KilnType)
        values["type"] = data["type"]
    if not partial or data.get("max_temperature"):
        values["max_temperature"] = validate_whole_degrees(
            "max_temperature", data.get("max_temperature")
        )
    if not partial or data.get("notes"):
        values["notes"] = data.get("notes") or None
    return values


class KilnRepository(BaseRepository[Kiln]):
    def __init__(self, database_service: type[DatabaseService]) -> None:
        super().__init__(Kiln, database_service, logger)

    async def list_kilns(self, user_id: str) -> List[Dict[str, Any]]:
        async with self._db.get_session() as session:
            rows = await self.list_for_user(session, user_id, Kiln.name)
            return [kiln_to_dict(row) for row in rows]

    async def create(self, user_id: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        values = validate_kiln(data)
        async with self._db.get_transaction() as session:
            kiln = await self.add(session, Kiln(user_id=user_id, **values))
            result = kiln_to_dict(kiln)

        logger.info("Kiln added", extra={"user_id": user_id, "kiln_id": result["id"]})
        return result

    async def update(
        self, user_id: str, kiln_id: str, updates: Mapping[str, Any]
    ) -> Dict[str, Any]:
        """
        Raises:
            RecordNotFoundError: If the user has no such kiln
        """
        values = validate_kiln(updates, partial=True)
        async with self._db.get_transaction() as session:
            kiln = await self.get_owned(session, kiln_id, user_id, for_update=True)
            if kiln is None:
                raise RecordNotFoundError("kiln", kiln_id, user_id)
            self.apply_updates(kiln, values)
            kiln.updated_at = utcnow()
            await session.flush()
            await session.refresh(kiln)
            result = kiln_to_dict(kiln)

        logger.info(
            "Kiln updated",
            extra={"user_id": user_id, "kiln_id": kiln_id, "fields": sorted(values)},
        )
        return result

    async def delete(self, user_id: str, kiln_id: str) -> bool:
        async with self._db.get_transaction() as session:
            deleted = await self.delete_owned(session, kiln_id, user_id)

        logger.info("Kiln deleted", extra={"user_id": user_id, "kiln_id": kiln_id, "deleted": deleted})
        return deleted > 0
