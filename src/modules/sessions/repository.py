"""
Active Firing Session Repository

Persistence for the one live firing a user may have in progress. ``save``
upserts: it updates the user's active row when there is one and inserts
otherwise. Completing a session marks it inactive; deleting removes the
active row.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from sqlalchemy import delete, select, update

from src.core.database.base import utcnow
from src.core.logging.logger import get_logger
from src.database.models.studio import ActiveFiringSession
from src.modules.sessions.tracker import LiveFiringSession
from src.modules.shared.base_repository import BaseRepository, to_iso

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from src.core.database.service import DatabaseService

logger = get_logger(__name__)


def active_session_to_dict(row: ActiveFiringSession) -> Dict[str, Any]:
    return {
        "id": row.id,
        "user_id": row.user_id,
        "kiln_id": row.kiln_id,
        "kiln_name": row.kiln_name,
        "firing_type": row.firing_type,
        "title": row.title,
        "target_temperature": row.target_temperature,
        "target_cone": row.target_cone,
        "current_temperature": row.current_temperature,
        "start_time": to_iso(row.start_time),
        "last_update": to_iso(row.last_update),
        "is_active": row.is_active,
        "notes": row.notes,
        "temperature_entries": list(row.temperature_entries or []),
    }


def _session_values(session: LiveFiringSession) -> Dict[str, Any]:
    data = session.to_dict()
    return {
        "kiln_id": data["kiln_id"] or None,
        "kiln_name": data["kiln_name"],
        "firing_type": data["firing_type"],
        "title": data["title"],
        "target_temperature": data["target_temperature"],
        "target_cone": data["target_cone"],
        "current_temperature": data["current_temperature"],
        "start_time": session.start_time,
        "last_update": utcnow(),
        "is_active": data["is_active"],
        "notes": data["notes"] or None,
        "temperature_entries": data["temperature_entries"],
    }


class ActiveSessionRepository(BaseRepository[ActiveFiringSession]):
    def __init__(self, database_service: type[DatabaseService]) -> None:
        super().__init__(ActiveFiringSession, database_service, logger)

    async def _find_active(
        self, session: AsyncSession, user_id: str, for_update: bool = False
    ) -> Optional[ActiveFiringSession]:
        stmt = (
            select(ActiveFiringSession)
            .where(
                ActiveFiringSession.user_id == user_id,
                ActiveFiringSession.is_active.is_(True),
            )
            .order_by(ActiveFiringSession.last_update.desc())
            .limit(1)
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_active(self, user_id: str) -> Optional[Dict[str, Any]]:
        async with self._db.get_session() as session:
            row = await self._find_active(session, user_id)
            return active_session_to_dict(row) if row else None

    async def save(self, user_id: str, live_session: LiveFiringSession) -> Dict[str, Any]:
        """Update the user's active row, or insert one."""
        values = _session_values(live_session)
        async with self._db.get_transaction() as session:
            row = await self._find_active(session, user_id, for_update=True)
            if row is None:
                row = await self.add(
                    session,
                    ActiveFiringSession(id=live_session.id, user_id=user_id, **values),
                )
                created = True
            else:
                self.apply_updates(row, values)
                await session.flush()
                await session.refresh(row)
                created = False
            result = active_session_to_dict(row)

        logger.info(
            "Active firing session saved",
            extra={
                "user_id": user_id,
                "session_id": result["id"],
                "created": created,
                "readings": len(result["temperature_entries"]),
            },
        )
        return result

    async def complete_in_session(self, session: AsyncSession, user_id: str) -> int:
        stmt = (
            update(ActiveFiringSession)
            .where(
                ActiveFiringSession.user_id == user_id,
                ActiveFiringSession.is_active.is_(True),
            )
            .values(is_active=False, last_update=utcnow(), updated_at=utcnow())
        )
        result = await session.execute(stmt)
        return result.rowcount or 0

    async def complete(self, user_id: str) -> int:
        """Mark the active session inactive. Returns rows affected."""
        async with self._db.get_transaction() as session:
            completed = await self.complete_in_session(session, user_id)

        logger.info(
            "Active firing session completed",
            extra={"user_id": user_id, "completed": completed},
        )
        return completed

    async def delete(self, user_id: str) -> int:
        async with self._db.get_transaction() as session:
            result = await session.execute(
                delete(ActiveFiringSession).where(
                    ActiveFiringSession.user_id == user_id,
                    ActiveFiringSession.is_active.is_(True),
                )
            )
            deleted = result.rowcount or 0

        logger.info(
            "Active firing session deleted",
            extra={"user_id": user_id, "deleted": deleted},
        )
        return deleted
