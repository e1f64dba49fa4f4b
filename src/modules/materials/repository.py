"""
Clay Body and Raw Material Repositories

Owner-scoped CRUD over ``clay_bodies`` and ``raw_materials``. A raw
material must reference an id from the base material catalogue.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from src.core.database.base import utcnow
from src.core.logging.logger import get_logger
from src.database.models.studio import ClayBody, RawMaterial
from src.modules.materials.catalog import BaseMaterialCatalog, get_catalog
from src.modules.shared.base_repository import BaseRepository, to_iso
from src.modules.shared.exceptions import RecordNotFoundError, ValidationError
from src.modules.shared.validators import validate_non_negative, validate_required_text

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from src.core.database.service import DatabaseService

logger = get_logger(__name__)


# ============================================================================
# Read shapes & validation
# ============================================================================


def clay_body_to_dict(clay: ClayBody) -> Dict[str, Any]:
    return {
        "id": clay.id,
        "user_id": clay.user_id,
        "name": clay.name,
        "shrinkage": clay.shrinkage,
        "color": clay.color,
        "notes": clay.notes,
        "created_at": to_iso(clay.created_at),
        "updated_at": to_iso(clay.updated_at),
    }


def raw_material_to_dict(material: RawMaterial) -> Dict[str, Any]:
    return {
        "id": material.id,
        "user_id": material.user_id,
        "name": material.name,
        "base_material_type": material.base_material_type,
        "description": material.description,
        "created_at": to_iso(material.created_at),
        "updated_at": to_iso(material.updated_at),
    }


def validate_clay_body(data: Mapping[str, Any], partial: bool = False) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    if not partial or data.get("name"):
        validate_required_text("name", data.get("name"))
        values["name"] = data["name"].strip()
    if not partial or data.get("shrinkage"):
        shrinkage = data.get("shrinkage", 0)
        validate_non_negative("shrinkage", shrinkage)
        values["shrinkage"] = shrinkage
    if not partial or data.get("color"):
        values["color"] = data.get("color") or ""
    if not partial or data.get("notes"):
        values["notes"] = data.get("notes") or None
    return values


def validate_raw_material(
    data: Mapping[str, Any],
    catalog: BaseMaterialCatalog,
    partial: bool = False,
) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    if not partial or data.get("name"):
        validate_required_text("name", data.get("name"))
        values["name"] = data["name"].strip()
    if not partial or data.get("base_material_type"):
        base_type = data.get("base_material_type")
        if base_type not in catalog:
            raise ValidationError(
                "base_material_type", f"unknown base material {base_type!r}"
            )
        values["base_material_type"] = base_type
    if not partial or data.get("description"):
        values["description"] = data.get("description") or None
    return values


# ============================================================================
# Repositories
# ============================================================================


class ClayBodyRepository(BaseRepository[ClayBody]):
    def __init__(self, database_service: type[DatabaseService]) -> None:
        super().__init__(ClayBody, database_service, logger)

    async def list_clay_bodies(self, user_id: str) -> List[Dict[str, Any]]:
        async with self._db.get_session() as session:
            rows = await self.list_for_user(session, user_id, ClayBody.name)
            return [clay_body_to_dict(row) for row in rows]

    async def create(self, user_id: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        values = validate_clay_body(data)
        async with self._db.get_transaction() as session:
            clay = await self.add(session, ClayBody(user_id=user_id, **values))
            result = clay_body_to_dict(clay)

        logger.info("Clay body added", extra={"user_id": user_id, "clay_body_id": result["id"]})
        return result

    async def update(
        self, user_id: str, clay_body_id: str, updates: Mapping[str, Any]
    ) -> Dict[str, Any]:
        values = validate_clay_body(updates, partial=True)
        async with self._db.get_transaction() as session:
            clay = await self.get_owned(session, clay_body_id, user_id, for_update=True)
            if clay is None:
                raise RecordNotFoundError("clay_body", clay_body_id, user_id)
            self.apply_updates(clay, values)
            clay.updated_at = utcnow()
            await session.flush()
            await session.refresh(clay)
            result = clay_body_to_dict(clay)

        logger.info("Clay body updated", extra={"user_id": user_id, "clay_body_id": clay_body_id})
        return result

    async def delete(self, user_id: str, clay_body_id: str) -> bool:
        async with self._db.get_transaction() as session:
            deleted = await self.delete_owned(session, clay_body_id, user_id)

        logger.info(
            "Clay body deleted",
            extra={"user_id": user_id, "clay_body_id": clay_body_id, "deleted": deleted},
        )
        return deleted > 0

    async def insert_many(
        self, session: AsyncSession, user_id: str, items: List[Mapping[str, Any]]
    ) -> int:
        rows = [ClayBody(user_id=user_id, **validate_clay_body(item)) for item in items]
        await self.add_many(session, rows)
        return len(rows)


class RawMaterialRepository(BaseRepository[RawMaterial]):
    def __init__(
        self,
        database_service: type[DatabaseService],
        catalog: Optional[BaseMaterialCatalog] = None,
    ) -> None:
        super().__init__(RawMaterial, database_service, logger)
        self._catalog = catalog

    @property
    def catalog(self) -> BaseMaterialCatalog:
        if self._catalog is None:
            self._catalog = get_catalog()
        return self._catalog

    async def list_raw_materials(self, user_id: str) -> List[Dict[str, Any]]:
        async with self._db.get_session() as session:
            rows = await self.list_for_user(session, user_id, RawMaterial.name)
            return [raw_material_to_dict(row) for row in rows]

    async def create(self, user_id: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        values = validate_raw_material(data, self.catalog)
        async with self._db.get_transaction() as session:
            material = await self.add(session, RawMaterial(user_id=user_id, **values))
            result = raw_material_to_dict(material)

        logger.info(
            "Raw material added",
            extra={
                "user_id": user_id,
                "raw_material_id": result["id"],
                "base_material_type": result["base_material_type"],
            },
        )
        return result

    async def update(
        self, user_id: str, material_id: str, updates: Mapping[str, Any]
    ) -> Dict[str, Any]:
        values = validate_raw_material(updates, self.catalog, partial=True)
        async with self._db.get_transaction() as session:
            material = await self.get_owned(session, material_id, user_id, for_update=True)
            if material is None:
                raise RecordNotFoundError("raw_material", material_id, user_id)
            self.apply_updates(material, values)
            material.updated_at = utcnow()
            await session.flush()
            await session.refresh(material)
            result = raw_material_to_dict(material)

        logger.info(
            "Raw material updated",
            extra={"user_id": user_id, "raw_material_id": material_id},
        )
        return result

    async def delete(self, user_id: str, material_id: str) -> bool:
        async with self._db.get_transaction() as session:
            deleted = await self.delete_owned(session, material_id, user_id)

        logger.info(
            "Raw material deleted",
            extra={"user_id": user_id, "raw_material_id": material_id, "deleted": deleted},
        )
        return deleted > 0

    async def insert_many(
        self, session: AsyncSession, user_id: str, items: List[Mapping[str, Any]]
    ) -> int:
        rows = [
            RawMaterial(user_id=user_id, **validate_raw_material(item, self.catalog))
            for item in items
        ]
        await self.add_many(session, rows)
        return len(rows)
