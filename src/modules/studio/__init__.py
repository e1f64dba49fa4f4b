"""Cached studio data access, settings, and export/import documents."""

from .data_access import StudioDataAccess, StudioRepositories
from .export import export_to_csv, export_to_json, validate_import_document
from .settings import StudioSettingsRepository

__all__ = [
    "StudioDataAccess",
    "StudioRepositories",
    "StudioSettingsRepository",
    "export_to_csv",
    "export_to_json",
    "validate_import_document",
]
