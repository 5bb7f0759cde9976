"""
Schema.org microdata (``itemtype``/``itemprop``) recipe extraction.
"""

from __future__ import annotations

import re
from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from .models import ExtractedRecipe
from .parsing import parse_duration, parse_int, resolve_url

_RECIPE_ITEMTYPE_RE = re.compile(r"schema\.org/Recipe", re.IGNORECASE)


def _prop_value(element: Tag) -> str:
    """Read an itemprop the way microdata consumers do: attributes before text."""
    if element.name == "meta":
        return str(element.get("content", "")).strip()
    if element.name == "time":
        return str(element.get("datetime") or element.get_text(" ", strip=True)).strip()
    if element.name in ("img", "source"):
        return str(element.get("src") or element.get("content") or "").strip()
    if element.name in ("a", "link"):
        return str(element.get("href") or element.get_text(" ", strip=True)).strip()
    if element.has_attr("content"):
        return str(element["content"]).strip()
    return element.get_text(" ", strip=True)


def _props(scope: Tag, name: str) -> List[Tag]:
    return scope.find_all(attrs={"itemprop": re.compile(rf"(^|\s){name}(\s|$)")})


class MicrodataExtractor:
    """Reads the first element typed as a schema.org Recipe."""

    name = "microdata"

    def extract(self, soup: BeautifulSoup, *, url: str) -> Optional[ExtractedRecipe]:
        scope = soup.find(attrs={"itemtype": _RECIPE_ITEMTYPE_RE})
        if not isinstance(scope, Tag):
            return None

        names = _props(scope, "name")
        title = _prop_value(names[0]) if names else ""

        ingredients = [_prop_value(el) for el in _props(scope, "recipeIngredient")]
        if not ingredients:
            # Older markup used the singular "ingredients" property.
            ingredients = [_prop_value(el) for el in _props(scope, "ingredients")]

        directions: List[str] = []
        for el in _props(scope, "recipeInstructions"):
            steps = el.find_all("li")
            if steps:
                directions.extend(step.get_text(" ", strip=True) for step in steps)
            else:
                directions.append(_prop_value(el))

        def single(prop: str) -> str:
            found = _props(scope, prop)
            return _prop_value(found[0]) if found else ""

        return ExtractedRecipe(
            title=title,
            ingredients=[i for i in ingredients if i],
            directions=[d for d in directions if d],
            image_url=resolve_url(single("image") or None, url),
            prep_time_minutes=parse_duration(single("prepTime") or None),
            cook_time_minutes=parse_duration(single("cookTime") or None),
            total_time_minutes=parse_duration(single("totalTime") or None),
            servings=parse_int(single("recipeYield") or None),
            category=single("recipeCategory") or None,
            cuisine=single("recipeCuisine") or None,
            source=url,
            stage=self.name,
        )
