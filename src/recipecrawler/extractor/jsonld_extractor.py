"""
Schema.org JSON-LD recipe extraction.

Sites embed the Recipe object at arbitrary depth: as a top-level object, in a
list, under ``@graph``, or nested inside a WebPage. The search walks every
list and mapping until it meets a node whose ``@type`` names Recipe.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional

import structlog
from bs4 import BeautifulSoup

from .models import ExtractedRecipe
from .parsing import parse_duration, parse_int, resolve_url

logger = structlog.get_logger(__name__)

_MAX_DEPTH = 20


def _is_recipe_node(node: Dict[str, Any]) -> bool:
    node_type = node.get("@type", node.get("type"))
    if isinstance(node_type, str):
        return node_type.lower() == "recipe"
    if isinstance(node_type, list):
        return any(isinstance(t, str) and t.lower() == "recipe" for t in node_type)
    return False


def find_recipe_node(data: Any, depth: int = 0) -> Optional[Dict[str, Any]]:
    """Depth-first search for the first Recipe object in decoded JSON-LD."""
    if depth > _MAX_DEPTH:
        return None
    if isinstance(data, list):
        for item in data:
            found = find_recipe_node(item, depth + 1)
            if found is not None:
                return found
    elif isinstance(data, dict):
        if _is_recipe_node(data):
            return data
        for value in data.values():
            found = find_recipe_node(value, depth + 1)
            if found is not None:
                return found
    return None


def _text_of(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        for key in ("text", "name", "@value"):
            if isinstance(value.get(key), str):
                return value[key]
        return ""
    if value is None:
        return ""
    return str(value)


def _flatten_instructions(value: Any) -> Iterable[str]:
    """Yield step texts from strings, HowToStep objects and HowToSection groups."""
    if isinstance(value, str):
        yield value
    elif isinstance(value, list):
        for item in value:
            yield from _flatten_instructions(item)
    elif isinstance(value, dict):
        if "itemListElement" in value:
            yield from _flatten_instructions(value["itemListElement"])
        else:
            text = _text_of(value)
            if text:
                yield text


def _first_string(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value or None
    if isinstance(value, list):
        for item in value:
            if isinstance(item, str) and item:
                return item
    return None


def _image_of(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value or None
    if isinstance(value, list):
        for item in value:
            image = _image_of(item)
            if image:
                return image
        return None
    if isinstance(value, dict):
        return _first_string(value.get("url")) or _first_string(value.get("contentUrl"))
    return None


def _keywords(value: Any) -> List[str]:
    if isinstance(value, str):
        return [k.strip() for k in value.split(",") if k.strip()]
    if isinstance(value, list):
        return [k.strip() for k in value if isinstance(k, str) and k.strip()]
    return []


class JsonLdExtractor:
    """Reads ``<script type="application/ld+json">`` blocks."""

    name = "json_ld"

    def extract(self, soup: BeautifulSoup, *, url: str) -> Optional[ExtractedRecipe]:
        for script in soup.find_all("script", type="application/ld+json"):
            raw = script.string or script.get_text()
            if not raw or not raw.strip():
                continue
            try:
                data = json.loads(raw.strip())
            except json.JSONDecodeError as e:
                logger.debug("Skipping invalid JSON-LD block", url=url, error=str(e))
                continue

            node = find_recipe_node(data)
            if node is not None:
                return self.parse_recipe(node, url=url)
        return None

    def parse_recipe(self, node: Dict[str, Any], *, url: str) -> ExtractedRecipe:
        """Map a schema.org Recipe object onto an :class:`ExtractedRecipe`."""
        raw_ingredients = node.get("recipeIngredient") or node.get("ingredients") or []
        if isinstance(raw_ingredients, str):
            raw_ingredients = [raw_ingredients]
        ingredients = [text for text in (_text_of(i) for i in raw_ingredients) if text]

        directions = list(_flatten_instructions(node.get("recipeInstructions") or []))

        title = _text_of(node.get("name")) or _text_of(node.get("headline"))

        return ExtractedRecipe(
            title=title,
            ingredients=ingredients,
            directions=directions,
            image_url=resolve_url(_image_of(node.get("image")), url),
            prep_time_minutes=parse_duration(node.get("prepTime")),
            cook_time_minutes=parse_duration(node.get("cookTime")),
            total_time_minutes=parse_duration(node.get("totalTime")),
            servings=parse_int(node.get("recipeYield", node.get("yield"))),
            category=_first_string(node.get("recipeCategory")),
            cuisine=_first_string(node.get("recipeCuisine")),
            tags=_keywords(node.get("keywords")),
            source=url,
            stage=self.name,
        )
