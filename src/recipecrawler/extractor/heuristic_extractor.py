"""
Last-resort DOM heuristics: first heading as title, class-name patterns for
ingredient and direction lists, then a keyword-driven content analysis.
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence

from bs4 import BeautifulSoup

from .models import ExtractedRecipe
from .parsing import resolve_url, visible_text
from .pattern_extractor import PatternExtractor

INGREDIENT_SELECTORS = (
    ".ingredients li",
    ".recipe-ingredients li",
    ".ingredient",
    '[class*="ingredient"] li',
)
DIRECTION_SELECTORS = (
    ".instructions li",
    ".recipe-instructions li",
    ".instruction",
    '[class*="instruction"] li',
    ".directions li",
    ".method li",
)

RECIPE_KEYWORDS = ("ingredients", "directions", "instructions", "recipe", "cook", "bake", "prep time")
MIN_RECIPE_KEYWORDS = 3
MEASUREMENT_WORDS = (
    "cup", "cups", "tablespoon", "tablespoons", "teaspoon", "teaspoons", "pound", "pounds",
    "ounce", "ounces", "gram", "grams", "liter", "liters",
)
ACTION_WORDS = ("heat", "cook", "bake", "mix", "stir", "add", "combine", "place", "remove", "serve")
MAX_ANALYSED_INGREDIENTS = 20
MAX_ANALYSED_DIRECTIONS = 15

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")


def _first_matching(soup: BeautifulSoup, selectors: Sequence[str], min_length: int) -> List[str]:
    for selector in selectors:
        texts = [el.get_text(" ", strip=True) for el in soup.select(selector)]
        kept = [t for t in texts if len(t) > min_length]
        if kept:
            return kept
    return []


class HeuristicExtractor:
    name = "heuristic"

    def __init__(self) -> None:
        self._images = PatternExtractor()

    def extract(self, soup: BeautifulSoup, *, url: str) -> Optional[ExtractedRecipe]:
        title = self._title(soup)
        ingredients = _first_matching(soup, INGREDIENT_SELECTORS, 2)
        directions = _first_matching(soup, DIRECTION_SELECTORS, 5)

        if not ingredients and not directions:
            return self._content_analysis(soup, url, title)

        return ExtractedRecipe(
            title=title,
            ingredients=ingredients,
            directions=directions,
            image_url=self._image(soup, url),
            source=url,
            stage=self.name,
        )

    @staticmethod
    def _title(soup: BeautifulSoup) -> str:
        h1 = soup.find("h1")
        if h1 is not None and h1.get_text(strip=True):
            return h1.get_text(" ", strip=True)
        if soup.title is not None:
            return soup.title.get_text(" ", strip=True)
        return ""

    def _image(self, soup: BeautifulSoup, url: str) -> Optional[str]:
        for img in soup.find_all("img", src=True):
            alt = str(img.get("alt") or "").lower()
            if "recipe" in alt or "food" in alt:
                return resolve_url(str(img["src"]), url)
        return self._images.extract_best_image(soup, url)

    def _content_analysis(self, soup: BeautifulSoup, url: str, title: str) -> Optional[ExtractedRecipe]:
        """Scan paragraphs and lists of a page that reads like a recipe."""
        page_text = visible_text(soup, separator=" ").lower()
        if sum(1 for keyword in RECIPE_KEYWORDS if keyword in page_text) < MIN_RECIPE_KEYWORDS:
            return None

        blocks = [el.get_text("\n", strip=True) for el in soup.find_all(["p", "ul", "ol"])]

        ingredients: List[str] = []
        for block in blocks:
            for line in block.split("\n"):
                trimmed = line.strip()
                if len(trimmed) > 5 and any(word in trimmed.lower() for word in MEASUREMENT_WORDS):
                    ingredients.append(trimmed)

        directions: List[str] = []
        for block in blocks:
            for sentence in _SENTENCE_SPLIT_RE.split(block):
                trimmed = " ".join(sentence.split())
                if len(trimmed) > 20 and any(word in trimmed.lower() for word in ACTION_WORDS):
                    directions.append(trimmed)

        if not ingredients or not directions:
            return None

        return ExtractedRecipe(
            title=title,
            ingredients=ingredients[:MAX_ANALYSED_INGREDIENTS],
            directions=directions[:MAX_ANALYSED_DIRECTIONS],
            image_url=self._images.extract_best_image(soup, url),
            source=url,
            stage=self.name,
        )
