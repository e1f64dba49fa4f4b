"""Clay bodies, raw materials and the base material catalogue."""

from .catalog import BaseMaterialCatalog, BaseMaterialType, get_catalog
from .repository import (
    ClayBodyRepository,
    RawMaterialRepository,
    clay_body_to_dict,
    raw_material_to_dict,
)

__all__ = [
    "BaseMaterialCatalog",
    "BaseMaterialType",
    "ClayBodyRepository",
    "RawMaterialRepository",
    "clay_body_to_dict",
    "get_catalog",
    "raw_material_to_dict",
]
