"""
Pattern-based extraction for pages without structured recipe data.

Ingredients are recognised by quantity + unit shapes, directions by cooking
verbs and sentence length. Each field tries list markup first, then regexes
over the page text, then a sentence-level scan of paragraphs.
"""

from __future__ import annotations

import re
from typing import Callable, Iterable, List, Optional, Sequence

from bs4 import BeautifulSoup, Tag

from .models import ExtractedRecipe
from .parsing import resolve_url, visible_text

MAX_INGREDIENTS = 25
MAX_DIRECTIONS = 20
MAX_MINUTES = 480
MAX_SERVINGS = 50
IMAGE_SCORE_THRESHOLD = 0.5

_MEASUREMENT_RE = re.compile(
    r"\d+(?:/\d+)?\s*(?:cup|tablespoon|teaspoon|pound|ounce|gram|liter|tsp|tbsp|lb|oz|g|l|large|medium|small|dash|pinch)s?",
    re.IGNORECASE,
)
_SIZE_RE = re.compile(r"\d+\s*(?:large|medium|small)")
COMMON_INGREDIENTS = (
    "flour", "sugar", "salt", "pepper", "oil", "butter", "egg", "milk",
    "water", "onion", "garlic", "tomato", "cheese", "chicken", "beef",
)
ACTION_WORDS = (
    "heat", "cook", "bake", "mix", "stir", "add", "combine", "place", "remove",
    "serve", "pour", "chop", "cut", "slice", "season", "brown", "sauté", "simmer", "boil",
)

_TITLE_SELECTORS = (
    'h1[class*="recipe"]',
    'h1[id*="recipe"]',
    '[class*="recipe-title"] h1',
    '[class*="recipe-name"] h1',
)
_TITLE_PATTERNS = (
    re.compile(r"<h1[^>]*>([^<]+recipe[^<]*)</h1>", re.IGNORECASE),
    re.compile(r'<h1[^>]*class="[^"]*title[^"]*"[^>]*>([^<]+)</h1>', re.IGNORECASE),
    re.compile(r"<title>([^<]*recipe[^<]*)</title>", re.IGNORECASE),
    re.compile(r"<h1[^>]*>([^<]{10,80})</h1>", re.IGNORECASE),
)

_INGREDIENT_SELECTORS = (
    ".recipe-ingredients li, .ingredients li",
    '[class*="ingredient"] li',
    'ul:has(> li:-soup-contains("cup")) li, ul:has(> li:-soup-contains("tablespoon")) li',
    'ul:has(> li:-soup-contains("tsp")) li, ul:has(> li:-soup-contains("tbsp")) li',
)
_INGREDIENT_TEXT_PATTERNS = (
    re.compile(r"ingredients?\s*:?\s*\n((?:[-•*]\s*[^\n]+\n?)+)", re.IGNORECASE),
    re.compile(
        r"(?:ingredients?|what you need)[^:\n]*:?\s*\n((?:[^\n]+\n?)+?)(?:\n\s*\n|instructions?|directions?|method)",
        re.IGNORECASE,
    ),
    re.compile(
        r"^.*(?:\d+(?:/\d+)?\s*(?:cup|tablespoon|teaspoon|pound|ounce|gram|liter|tsp|tbsp|lb|oz|g|l)s?|1\s*(?:large|medium|small)).*$",
        re.IGNORECASE | re.MULTILINE,
    ),
)

_DIRECTION_SELECTORS = (
    ".recipe-instructions li, .instructions li, .directions li",
    '[class*="instruction"] li, [class*="direction"] li',
    "ol li, .method li, .steps li",
    ".recipe-method p, .instructions p",
)
_DIRECTION_TEXT_PATTERNS = (
    re.compile(r"(?:instructions?|directions?|method|preparation)[^:\n]*:?\s*\n((?:\d+\.\s*[^\n]+\n?)+)", re.IGNORECASE),
    re.compile(r"(?:instructions?|directions?|method)[^:\n]*:?\s*\n((?:[-•*]\s*[^\n]+\n?)+)", re.IGNORECASE),
    re.compile(r"step\s*\d+[^:\n]*:?\s*([^\n]+)", re.IGNORECASE),
)
_BULLET_RE = re.compile(r"^[-•*]\s*")
_STEP_PREFIX_RE = re.compile(r"^\d+\.\s*|^[-•*]\s*|^step\s*\d+\s*:?\s*", re.IGNORECASE)
_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")

_IMAGE_SELECTORS = (
    ".recipe-image img, .recipe-photo img",
    '[class*="recipe"] img[src*="recipe"]',
    'img[alt*="recipe"], img[title*="recipe"]',
    ".featured-image img, .hero-image img",
    'img[class*="featured"], img[class*="hero"]',
    'img[width="400"], img[width="500"], img[width="600"]',
    'img[height="300"], img[height="400"], img[height="500"]',
    ".content img, .post-content img, article img",
    "img[src]",
)
_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".gif")
_LAZY_SRC_ATTRS = ("src", "data-src", "data-lazy-src")


def looks_like_ingredient(text: str) -> bool:
    lowered = text.lower()
    return (
        bool(_MEASUREMENT_RE.search(text))
        or any(item in lowered for item in COMMON_INGREDIENTS)
        or bool(_SIZE_RE.search(lowered))
    )


def looks_like_direction(text: str) -> bool:
    lowered = text.lower()
    return any(word in lowered for word in ACTION_WORDS) and 15 < len(text) < 500


def is_image_url(src: str) -> bool:
    if not src or len(src) < 4:
        return False
    lowered = src.lower()
    return any(ext in lowered for ext in _IMAGE_EXTENSIONS) or any(
        marker in lowered for marker in ("image", "photo", "img")
    )


def _int_attr(img: Tag, attr: str) -> int:
    match = re.match(r"\s*(\d+)", str(img.get(attr) or ""))
    return int(match.group(1)) if match else 0


def score_image(img: Tag, src: str) -> float:
    """Score an image between 0 and 1; recipe-labelled large photos rank highest."""
    score = 0.3

    width = _int_attr(img, "width")
    height = _int_attr(img, "height")
    if width >= 300 or height >= 200:
        score += 0.3
    if width >= 500 or height >= 400:
        score += 0.2

    alt = str(img.get("alt") or "").lower()
    classes = img.get("class") or []
    class_name = " ".join(classes).lower() if isinstance(classes, list) else str(classes).lower()
    if "recipe" in alt or "recipe" in class_name:
        score += 0.4
    if "food" in alt or "food" in class_name:
        score += 0.2

    lowered = src.lower()
    if "recipe" in lowered:
        score += 0.3
    if "food" in lowered:
        score += 0.2
    if "thumb" in lowered or "small" in lowered:
        score -= 0.3

    return min(score, 1.0)


def _dedupe(items: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(items))


def _collect(soup: BeautifulSoup, selectors: Sequence[str], accept: Callable[[str], bool]) -> List[str]:
    """Texts of the first selector that yields any accepted element."""
    for selector in selectors:
        found = [el.get_text(" ", strip=True) for el in soup.select(selector)]
        accepted = [text for text in found if text and accept(text)]
        if accepted:
            return accepted
    return []


class PatternExtractor:
    """Regex and list-shape heuristics for unstructured recipe pages."""

    name = "pattern"

    def extract(self, soup: BeautifulSoup, *, url: str) -> Optional[ExtractedRecipe]:
        markup = str(soup)
        text = visible_text(soup)

        title = self.extract_title(soup, markup)
        ingredients = self.extract_ingredients(soup, text)
        directions = self.extract_directions(soup, text)
        if not ingredients and not directions:
            return None

        return ExtractedRecipe(
            title=title,
            ingredients=_dedupe(ingredients),
            directions=_dedupe(directions),
            image_url=self.extract_best_image(soup, url),
            prep_time_minutes=self.extract_time(text, "prep"),
            cook_time_minutes=self.extract_time(text, "cook"),
            servings=self.extract_servings(text),
            source=url,
            stage=self.name,
        )

    def extract_title(self, soup: BeautifulSoup, markup: str) -> str:
        for selector in _TITLE_SELECTORS:
            element = soup.select_one(selector)
            if element is not None:
                title = element.get_text(" ", strip=True)
                if title:
                    return title

        for pattern in _TITLE_PATTERNS:
            match = pattern.search(markup)
            if match:
                title = match.group(1).strip()
                if 5 < len(title) < 100:
                    return title

        first_h1 = soup.find("h1")
        if first_h1 is not None:
            title = first_h1.get_text(" ", strip=True)
            if 5 < len(title) < 100:
                return title
        return ""

    def extract_ingredients(self, soup: BeautifulSoup, text: str) -> List[str]:
        ingredients = _collect(soup, _INGREDIENT_SELECTORS, looks_like_ingredient)

        if not ingredients:
            for pattern in _INGREDIENT_TEXT_PATTERNS:
                for match in pattern.finditer(text):
                    for line in match.group(0).split("\n"):
                        cleaned = _BULLET_RE.sub("", line.strip()).strip()
                        if len(cleaned) > 3 and looks_like_ingredient(cleaned):
                            ingredients.append(cleaned)

        if not ingredients:
            for block in soup.find_all(["p", "div"]):
                for sentence in _SENTENCE_SPLIT_RE.split(block.get_text(" ", strip=True)):
                    trimmed = sentence.strip()
                    if len(trimmed) > 5 and looks_like_ingredient(trimmed):
                        ingredients.append(trimmed)

        return ingredients[:MAX_INGREDIENTS]

    def extract_directions(self, soup: BeautifulSoup, text: str) -> List[str]:
        directions = _collect(
            soup, _DIRECTION_SELECTORS, lambda t: len(t) > 10 and looks_like_direction(t)
        )

        if not directions:
            for pattern in _DIRECTION_TEXT_PATTERNS:
                for match in pattern.finditer(text):
                    for line in match.group(0).split("\n"):
                        cleaned = _STEP_PREFIX_RE.sub("", line.strip()).strip()
                        if len(cleaned) > 15 and looks_like_direction(cleaned):
                            directions.append(cleaned)

        if not directions:
            for paragraph in soup.find_all("p"):
                body = paragraph.get_text(" ", strip=True)
                if len(body) > 20 and looks_like_direction(body):
                    directions.append(body)

        return directions[:MAX_DIRECTIONS]

    def extract_best_image(self, soup: BeautifulSoup, base_url: Optional[str]) -> Optional[str]:
        for selector in _IMAGE_SELECTORS:
            for img in soup.select(selector):
                src = next((str(img.get(a)) for a in _LAZY_SRC_ATTRS if img.get(a)), "")
                if src and is_image_url(src) and score_image(img, src) > IMAGE_SCORE_THRESHOLD:
                    return resolve_url(src, base_url)
        return None

    @staticmethod
    def extract_time(text: str, kind: str) -> Optional[int]:
        patterns = (
            re.compile(rf"{kind}\s*time[^:\n]*:?\s*(\d+)\s*(?:minutes?|mins?|m)\b", re.IGNORECASE),
            re.compile(rf"{kind}[^:\n]*:?\s*(\d+)\s*(?:minutes?|mins?|m)\b", re.IGNORECASE),
            re.compile(rf"(\d+)\s*(?:minutes?|mins?|m)\s*{kind}", re.IGNORECASE),
        )
        for pattern in patterns:
            match = pattern.search(text)
            if match:
                minutes = int(match.group(1))
                if 0 < minutes < MAX_MINUTES:
                    return minutes
        return None

    @staticmethod
    def extract_servings(text: str) -> Optional[int]:
        patterns = (
            re.compile(r"serves?\s*:?\s*(\d+)", re.IGNORECASE),
            re.compile(r"servings?\s*:?\s*(\d+)", re.IGNORECASE),
            re.compile(r"makes?\s*:?\s*(\d+)\s*servings?", re.IGNORECASE),
            re.compile(r"yield\s*:?\s*(\d+)", re.IGNORECASE),
        )
        for pattern in patterns:
            match = pattern.search(text)
            if match:
                servings = int(match.group(1))
                if 0 < servings < MAX_SERVINGS:
                    return servings
        return None
