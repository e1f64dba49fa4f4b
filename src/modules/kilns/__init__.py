"""Kiln inventory."""

from .repository import KilnRepository, kiln_to_dict, validate_kiln

__all__ = ["KilnRepository", "kiln_to_dict", "validate_kiln"]
