"""
Base material catalogue.

Read-only reference data shipped as ``base_materials.yaml`` next to this
module and loaded once with ``yaml.safe_load``. Raw materials reference an
entry by id.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from src.core.exceptions import ConfigurationError
from src.core.logging.logger import get_logger
from src.database.models.enums import MaterialCategory

logger = get_logger(__name__)

CATALOG_PATH = Path(__file__).with_name("base_materials.yaml")


@dataclass(frozen=True)
class BaseMaterialType:
    id: str
    name: str
    category: MaterialCategory
    description: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category.value,
            "description": self.description,
        }


class BaseMaterialCatalog:
    """In-memory index of the catalogue, by id and by category."""

    def __init__(self, materials: List[BaseMaterialType]) -> None:
        self._by_id: Dict[str, BaseMaterialType] = {m.id: m for m in materials}
        self._materials = list(materials)

    @classmethod
    def load(cls, path: Path = CATALOG_PATH) -> "BaseMaterialCatalog":
        """
        Raises:
            ConfigurationError: If the file is missing or malformed
        """
        try:
            with path.open("r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle)
            materials = [
                BaseMaterialType(
                    id=str(entry["id"]),
                    name=str(entry["name"]),
                    category=MaterialCategory(entry["category"]),
                    description=str(entry.get("description", "")),
                )
                for entry in data["materials"]
            ]
        except (OSError, yaml.YAMLError, KeyError, TypeError, ValueError) as exc:
            logger.error(
                "Failed to load base material catalogue",
                extra={"path": str(path), "error": str(exc)},
            )
            raise ConfigurationError("base_materials", f"Cannot load {path.name}: {exc}") from exc

        logger.debug("Base material catalogue loaded", extra={"count": len(materials)})
        return cls(materials)

    def __len__(self) -> int:
        return len(self._materials)

    def __contains__(self, material_id: object) -> bool:
        return material_id in self._by_id

    def all(self) -> List[BaseMaterialType]:
        return list(self._materials)

    def get(self, material_id: str) -> Optional[BaseMaterialType]:
        return self._by_id.get(material_id)

    def by_category(self, category: MaterialCategory) -> List[BaseMaterialType]:
        return [m for m in self._materials if m.category is category]


_catalog: Optional[BaseMaterialCatalog] = None


def get_catalog() -> BaseMaterialCatalog:
    global _catalog
    if _catalog is None:
        _catalog = BaseMaterialCatalog.load()
    return _catalog
