"""
HTML stripping for extracted recipe text.

Every text field leaving the extraction pipeline goes through these helpers,
whichever stage produced it. Stripping parses the text as an HTML fragment
and keeps its character data, so entities are decoded exactly once and a
bare ``<`` or ``>`` in prose survives. List items are never split or merged.
"""

from __future__ import annotations

import re
from dataclasses import replace
from typing import Iterable, List, Optional

from bs4 import BeautifulSoup

from .models import ExtractedRecipe

_WHITESPACE_RE = re.compile(r"\s+")
_DROPPED_TAGS = ["script", "style", "noscript", "template"]


def strip_html(text: Optional[str]) -> str:
    """Remove tags, decode entities and collapse whitespace."""
    if not text or not isinstance(text, str):
        return ""

    if "<" in text or "&" in text:
        soup = BeautifulSoup(text, "html.parser")
        for node in soup(_DROPPED_TAGS):
            node.decompose()
        text = soup.get_text()
    return _WHITESPACE_RE.sub(" ", text).strip()


def strip_html_list(items: Iterable[Optional[str]]) -> List[str]:
    """Strip every item, dropping the ones that were nothing but markup."""
    stripped = (strip_html(item) for item in items)
    return [item for item in stripped if item]


def sanitize_recipe(recipe: ExtractedRecipe) -> ExtractedRecipe:
    """Apply :func:`strip_html` to every text field of a recipe."""
    return replace(
        recipe,
        title=strip_html(recipe.title),
        ingredients=strip_html_list(recipe.ingredients),
        directions=strip_html_list(recipe.directions),
        category=strip_html(recipe.category) or None,
        cuisine=strip_html(recipe.cuisine) or None,
        tags=strip_html_list(recipe.tags),
    )
