"""
Firing Log Repository

Data access for ``firing_logs`` scoped to one user. Creates fill in the
default cone title and saved-log warnings; updates that change a
temperature, duration or ramp rate recompute the warnings from the merged
row.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from src.core.database.base import new_uuid, utcnow
from src.core.logging.logger import get_logger
from src.database.models.studio import FiringLog
from src.modules.firing import rules
from src.modules.shared.base_repository import BaseRepository, public_view, to_iso
from src.modules.shared.exceptions import RecordNotFoundError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from src.core.database.service import DatabaseService

logger = get_logger(__name__)


def firing_log_to_dict(log: FiringLog) -> Dict[str, Any]:
    return {
        "id": log.id,
        "user_id": log.user_id,
        "kiln_name": log.kiln_name,
        "title": log.title,
        "date": to_iso(log.date),
        "notes": log.notes,
        "firing_type": log.firing_type,
        "target_temperature": log.target_temperature,
        "actual_temperature": log.actual_temperature,
        "firing_duration_hours": log.firing_duration_hours,
        "ramp_rate": log.ramp_rate,
        "warning_flags": list(log.warning_flags or []),
        "temperature_entries": list(log.temperature_entries or []),
        "share_token": log.share_token,
        "created_at": to_iso(log.created_at),
        "updated_at": to_iso(log.updated_at),
    }


class FiringLogRepository(BaseRepository[FiringLog]):
    """Owner-scoped access to firing logs."""

    def __init__(self, database_service: type[DatabaseService]) -> None:
        super().__init__(FiringLog, database_service, logger)

    async def list_logs(self, user_id: str) -> List[Dict[str, Any]]:
        """Most recent firing date first."""
        async with self._db.get_session() as session:
            rows = await self.list_for_user(
                session,
                user_id,
                FiringLog.date.desc(),
                FiringLog.created_at.desc(),
            )
            return [firing_log_to_dict(row) for row in rows]

    async def create(self, user_id: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Raises:
            ValidationError: If the payload breaks a firing rule
        """
        values = rules.validate_new_log(data)
        start_time = time.monotonic()

        async with self._db.get_transaction() as session:
            log = await self.add(session, FiringLog(user_id=user_id, **values))
            result = firing_log_to_dict(log)

        logger.info(
            "Firing log created",
            extra={
                "user_id": user_id,
                "firing_log_id": result["id"],
                "warnings": len(result["warning_flags"]),
                "latency_ms": round((time.monotonic() - start_time) * 1000, 2),
            },
        )
        return result

    async def update(
        self, user_id: str, log_id: str, updates: Mapping[str, Any]
    ) -> Dict[str, Any]:
        """
        Raises:
            RecordNotFoundError: If the user has no such log
            ValidationError: If a provided field breaks a firing rule
        """
        values = rules.validate_log_updates(updates)

        async with self._db.get_transaction() as session:
            log = await self.get_owned(session, log_id, user_id, for_update=True)
            if log is None:
                raise RecordNotFoundError("firing_log", log_id, user_id)

            self.apply_updates(log, values)
            if rules.touches_warning_inputs(values):
                log.warning_flags = rules.calculate_warnings(
                    log.ramp_rate,
                    log.target_temperature,
                    log.actual_temperature,
                    log.firing_duration_hours,
                )
            log.updated_at = utcnow()
            await session.flush()
            await session.refresh(log)
            result = firing_log_to_dict(log)

        logger.info(
            "Firing log updated",
            extra={"user_id": user_id, "firing_log_id": log_id, "fields": sorted(values)},
        )
        return result

    async def delete(self, user_id: str, log_id: str) -> bool:
        async with self._db.get_transaction() as session:
            deleted = await self.delete_owned(session, log_id, user_id)

        logger.info(
            "Firing log deleted",
            extra={"user_id": user_id, "firing_log_id": log_id, "deleted": deleted},
        )
        return deleted > 0

    async def create_share_token(self, user_id: str, log_id: str) -> str:
        """
        Publish under a fresh token; an earlier token stops working.

        Raises:
            RecordNotFoundError: If the user has no such firing log
        """
        async with self._db.get_transaction() as session:
            log = await self.get_owned(session, log_id, user_id, for_update=True)
            if log is None:
                raise RecordNotFoundError("firing_log", log_id, user_id)
            log.share_token = new_uuid()
            token = log.share_token

        logger.info(
            "Firing log shared",
            extra={"user_id": user_id, "firing_log_id": log_id},
        )
        return token

    async def get_shared(self, token: str) -> Optional[Dict[str, Any]]:
        """Public read shape of the firing log shared under ``token``."""
        async with self._db.get_session() as session:
            log = await self.get_by_share_token(session, token)
            return public_view(firing_log_to_dict(log)) if log is not None else None

    async def add_in_session(
        self, session: AsyncSession, user_id: str, data: Mapping[str, Any]
    ) -> Dict[str, Any]:
        """Insert inside a caller-owned transaction (finishing a live session)."""
        log = await self.add(session, FiringLog(user_id=user_id, **rules.validate_new_log(data)))
        return firing_log_to_dict(log)

    async def insert_many(
        self, session: AsyncSession, user_id: str, items: List[Mapping[str, Any]]
    ) -> int:
        rows = [FiringLog(user_id=user_id, **rules.validate_new_log(item)) for item in items]
        await self.add_many(session, rows)
        return len(rows)
