"""Ingredient risk knowledge base and label segmentation."""

from .database import IngredientDatabase, match_pattern, normalize_name
from .segment import MAX_INGREDIENTS, split_ingredients

__all__ = [
    "IngredientDatabase",
    "MAX_INGREDIENTS",
    "match_pattern",
    "normalize_name",
    "split_ingredients",
]
