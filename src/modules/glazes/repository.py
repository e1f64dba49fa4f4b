"""
Glaze Recipe Repository

Purpose
-------
Data access for ``glaze_recipes``: list, create, partial update and delete
for one user, returning the JSON-compatible read shape that the cache
stores.

Non-Responsibilities
--------------------
- Cache lookups and invalidation (``src.modules.studio.data_access``)
- Input rules (``src.modules.glazes.rules``)

Architecture Notes
------------------
- One transaction per write via ``DatabaseService.get_transaction()``
- ``insert_many`` runs inside a caller-owned session (data import)
- Read shape: dates as ISO strings, composition lines carry an id
  ``<recipe id>-<index>``
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional

from src.core.database.base import new_uuid, utcnow
from src.core.logging.logger import get_logger
from src.database.models.studio import GlazeRecipe
from src.modules.glazes import rules
from src.modules.shared.base_repository import BaseRepository, public_view, to_iso
from src.modules.shared.exceptions import RecordNotFoundError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from src.core.database.service import DatabaseService

logger = get_logger(__name__)


def glaze_to_dict(recipe: GlazeRecipe) -> Dict[str, Any]:
    return {
        "id": recipe.id,
        "user_id": recipe.user_id,
        "name": recipe.name,
        "color": recipe.color,
        "finish": recipe.finish,
        "composition": rules.composition_with_ids(recipe.id, recipe.composition),
        "date": to_iso(recipe.date),
        "batch_number": recipe.batch_number,
        "photos": list(recipe.photos or []),
        "clay_body_id": recipe.clay_body_id,
        "share_token": recipe.share_token,
        "created_at": to_iso(recipe.created_at),
        "updated_at": to_iso(recipe.updated_at),
    }


class GlazeRecipeRepository(BaseRepository[GlazeRecipe]):
    """Owner-scoped access to glaze recipes."""

    def __init__(self, database_service: type[DatabaseService]) -> None:
        super().__init__(GlazeRecipe, database_service, logger)

    async def list_recipes(self, user_id: str) -> List[Dict[str, Any]]:
        """Newest first."""
        async with self._db.get_session() as session:
            rows = await self.list_for_user(session, user_id, GlazeRecipe.created_at.desc())
            return [glaze_to_dict(row) for row in rows]

    async def create(self, user_id: str, data: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Validate and insert a recipe.

        Raises:
            ValidationError: If the payload breaks a glaze rule
        """
        values = rules.validate_new_recipe(data)
        start_time = time.monotonic()

        async with self._db.get_transaction() as session:
            recipe = await self.add(session, GlazeRecipe(user_id=user_id, **values))
            result = glaze_to_dict(recipe)

        logger.info(
            "Glaze recipe created",
            extra={
                "user_id": user_id,
                "recipe_id": result["id"],
                "batch_number": result["batch_number"],
                "latency_ms": round((time.monotonic() - start_time) * 1000, 2),
            },
        )
        return result

    async def update(
        self, user_id: str, recipe_id: str, updates: Mapping[str, Any]
    ) -> Dict[str, Any]:
        """
        Apply the provided fields and bump ``updated_at``.

        Raises:
            RecordNotFoundError: If the user has no such recipe
            ValidationError: If a provided field breaks a glaze rule
        """
        values = rules.validate_recipe_updates(updates)

        async with self._db.get_transaction() as session:
            recipe = await self.get_owned(session, recipe_id, user_id, for_update=True)
            if recipe is None:
                raise RecordNotFoundError("glaze_recipe", recipe_id, user_id)

            self.apply_updates(recipe, values)
            # onupdate only fires for dirty rows
            recipe.updated_at = utcnow()
            await session.flush()
            await session.refresh(recipe)
            result = glaze_to_dict(recipe)

        logger.info(
            "Glaze recipe updated",
            extra={"user_id": user_id, "recipe_id": recipe_id, "fields": sorted(values)},
        )
        return result

    async def delete(self, user_id: str, recipe_id: str) -> bool:
        async with self._db.get_transaction() as session:
            deleted = await self.delete_owned(session, recipe_id, user_id)

        logger.info(
            "Glaze recipe deleted",
            extra={"user_id": user_id, "recipe_id": recipe_id, "deleted": deleted},
        )
        return deleted > 0

    async def create_share_token(self, user_id: str, recipe_id: str) -> str:
        """
        Publish under a fresh token; an earlier token stops working.

        Raises:
            RecordNotFoundError: If the user has no such recipe
        """
        async with self._db.get_transaction() as session:
            recipe = await self.get_owned(session, recipe_id, user_id, for_update=True)
            if recipe is None:
                raise RecordNotFoundError("glaze_recipe", recipe_id, user_id)
            recipe.share_token = new_uuid()
            token = recipe.share_token

        logger.info(
            "Glaze recipe shared",
            extra={"user_id": user_id, "recipe_id": recipe_id},
        )
        return token

    async def get_shared(self, token: str) -> Optional[Dict[str, Any]]:
        """Public read shape of the recipe shared under ``token``."""
        async with self._db.get_session() as session:
            recipe = await self.get_by_share_token(session, token)
            return public_view(glaze_to_dict(recipe)) if recipe is not None else None

    async def insert_many(
        self, session: AsyncSession, user_id: str, items: List[Mapping[str, Any]]
    ) -> int:
        rows = [GlazeRecipe(user_id=user_id, **rules.validate_new_recipe(item)) for item in items]
        await self.add_many(session, rows)
        return len(rows)
