"""Glaze recipes: rules, free-text ingredient parsing and owner-scoped persistence."""

from .ingredients import parse_glaze_ingredients, suggest_ingredient_name
from .repository import GlazeRecipeRepository, glaze_to_dict
from .rules import generate_batch_number

__all__ = [
    "GlazeRecipeRepository",
    "generate_batch_number",
    "glaze_to_dict",
    "parse_glaze_ingredients",
    "suggest_ingredient_name",
]
