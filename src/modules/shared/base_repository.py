"""
Base Repository Pattern

Purpose
-------
Type-safe generic repository for user-owned studio tables, following
SQLAlchemy 2.0 async patterns. Every query is scoped to the owning
``user_id``; a row belonging to another user is indistinguishable from a
missing row.

Design Notes
------------
This base repository provides:
- Listing a user's rows with an explicit ordering
- Owned lookup, partial update and delete by primary key
- Insert helpers that flush so defaults (id, timestamps) are populated
- Lookup by public share token for shareable tables

What this class does NOT do:
- Open or commit transactions (subclasses use ``DatabaseService``)
- Validate input (``src.modules.shared.validators`` and the rules modules)
- Touch the cache (``src.modules.studio.data_access``)

Usage
-----
    class KilnRepository(BaseRepository[Kiln]):
        async def list_kilns(self, user_id: str) -> list[dict]:
            async with self._db.get_session() as session:
                rows = await self.list_for_user(session, user_id, Kiln.name)
            return [kiln_to_dict(row) for row in rows]
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import delete, select

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession

    from src.core.database.service import DatabaseService

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Generic repository over a model with ``id`` and ``user_id`` columns.

    Type Parameters:
        T: The SQLAlchemy model class this repository manages
    """

    def __init__(
        self,
        model_class: Type[T],
        database_service: Type[DatabaseService],
        logger: Logger,
    ) -> None:
        """
        Args:
            model_class: The SQLAlchemy model class
            database_service: Session/transaction provider
            logger: Structured logger instance
        """
        self.model_class = model_class
        self._db = database_service
        self.log = logger

    @property
    def model_name(self) -> str:
        return self.model_class.__name__

    async def list_for_user(
        self,
        session: AsyncSession,
        user_id: str,
        *order_by: Any,
        extra_filters: Optional[List[ColumnElement[bool]]] = None,
    ) -> List[T]:
        """All rows owned by ``user_id`` in the requested order."""
        stmt = select(self.model_class).where(
            self.model_class.user_id == user_id  # type: ignore[attr-defined]
        )
        for condition in extra_filters or []:
            stmt = stmt.where(condition)
        if order_by:
            stmt = stmt.order_by(*order_by)

        result = await session.execute(stmt)
        rows = list(result.scalars().all())

        self.log.debug(
            f"Repository.list_for_user: {self.model_name}",
            extra={"model": self.model_name, "user_id": user_id, "count": len(rows)},
        )
        return rows

    async def get_owned(
        self,
        session: AsyncSession,
        id_value: str,
        user_id: str,
        for_update: bool = False,
    ) -> Optional[T]:
        """Row ``id_value`` if it belongs to ``user_id``."""
        stmt = select(self.model_class).where(
            self.model_class.id == id_value,  # type: ignore[attr-defined]
            self.model_class.user_id == user_id,  # type: ignore[attr-defined]
        )
        if for_update:
            stmt = stmt.with_for_update()

        result = await session.execute(stmt)
        instance = result.scalar_one_or_none()

        self.log.debug(
            f"Repository.get_owned: {self.model_name}",
            extra={
                "model": self.model_name,
                "id": id_value,
                "user_id": user_id,
                "found": instance is not None,
            },
        )
        return instance

    async def add(self, session: AsyncSession, instance: T) -> T:
        """Add and flush so generated columns are populated."""
        session.add(instance)
        await session.flush()
        await session.refresh(instance)

        self.log.debug(
            f"Repository.add: {self.model_name}",
            extra={"model": self.model_name, "id": getattr(instance, "id", None)},
        )
        return instance

    async def add_many(self, session: AsyncSession, instances: List[T]) -> List[T]:
        session.add_all(instances)
        await session.flush()

        self.log.debug(
            f"Repository.add_many: {self.model_name}",
            extra={"model": self.model_name, "count": len(instances)},
        )
        return instances

    @staticmethod
    def apply_updates(instance: T, values: Dict[str, Any]) -> T:
        for key, value in values.items():
            setattr(instance, key, value)
        return instance

    async def delete_owned(self, session: AsyncSession, id_value: str, user_id: str) -> int:
        """Delete row ``id_value`` owned by ``user_id``. Returns rows removed."""
        stmt = delete(self.model_class).where(
            self.model_class.id == id_value,  # type: ignore[attr-defined]
            self.model_class.user_id == user_id,  # type: ignore[attr-defined]
        )
        result = await session.execute(stmt)

        self.log.debug(
            f"Repository.delete_owned: {self.model_name}",
            extra={
                "model": self.model_name,
                "id": id_value,
                "user_id": user_id,
                "deleted": result.rowcount,
            },
        )
        return result.rowcount or 0

    async def get_by_share_token(self, session: AsyncSession, token: str) -> Optional[T]:
        """Row published under ``token``, whoever owns it."""
        stmt = select(self.model_class).where(
            self.model_class.share_token == token  # type: ignore[attr-defined]
        )
        result = await session.execute(stmt)
        instance = result.scalar_one_or_none()

        self.log.debug(
            f"Repository.get_by_share_token: {self.model_name}",
            extra={"model": self.model_name, "found": instance is not None},
        )
        return instance


def public_view(record: Dict[str, Any]) -> Dict[str, Any]:
    """Read shape without the owner id, for records opened by share link."""
    return {key: value for key, value in record.items() if key != "user_id"}


def to_iso(value: Any) -> Optional[str]:
    """ISO-8601 text for dates/datetimes in read shapes; None passes through."""
    if value is None:
        return None
    return value.isoformat()
