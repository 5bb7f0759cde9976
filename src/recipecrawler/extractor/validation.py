"""
Minimum-content checks applied to every extraction candidate.
"""

from __future__ import annotations

from typing import Iterable, List

from ..config.config import ExtractionSettings
from .models import ExtractedRecipe
from .sanitizer import strip_html


def _count_nonempty(items: Iterable[str]) -> int:
    # Counted after stripping so a verdict never changes once the recipe is sanitized.
    return sum(1 for item in items if strip_html(item))


def validation_errors(recipe: ExtractedRecipe, settings: ExtractionSettings) -> List[str]:
    """Describe every way a candidate falls short of the content minimum.

    An empty list means the recipe is valid.
    """
    errors: List[str] = []

    title = strip_html(recipe.title)
    if len(title) < max(settings.min_title_length, 1):
        errors.append("title is empty or too short")

    ingredient_count = _count_nonempty(recipe.ingredients)
    if ingredient_count < settings.min_ingredients:
        errors.append(f"{ingredient_count} ingredients, need at least {settings.min_ingredients}")

    direction_count = _count_nonempty(recipe.directions)
    if direction_count < settings.min_directions:
        errors.append(f"{direction_count} directions, need at least {settings.min_directions}")

    return errors


def is_valid_recipe(recipe: ExtractedRecipe, settings: ExtractionSettings) -> bool:
    return not validation_errors(recipe, settings)


def is_meaningful_ingredient(ingredient: str, settings: ExtractionSettings) -> bool:
    """Reject placeholders such as "n/a", bare numbers and fragments."""
    trimmed = (ingredient or "").strip()
    if len(trimmed) <= settings.min_meaningful_ingredient_length:
        return False
    if trimmed.isdigit():
        return False
    lowered = trimmed.lower()
    return not any(marker.lower() in lowered for marker in settings.non_meaningful_markers)


def filter_meaningful_ingredients(ingredients: Iterable[str], settings: ExtractionSettings) -> List[str]:
    return [item for item in ingredients if is_meaningful_ingredient(item, settings)]
