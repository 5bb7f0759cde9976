"""
Keyword-based tagging of category, cuisine, difficulty and diet.

Rules are evaluated in order and later matches override earlier ones, so the
tables below are ordered from least to most specific.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

_CATEGORY_RULES: Tuple[Tuple[str, str], ...] = (
    ("appetizer", r"appetizer|starter|dip|chips|wings"),
    ("dessert", r"dessert|cake|cookie|ice cream|pie|sweet|chocolate"),
    ("beverage", r"drink|smoothie|cocktail|juice|tea|coffee"),
    ("breakfast", r"breakfast|pancake|waffle|oatmeal|cereal"),
    ("soup", r"soup|broth|bisque|chowder"),
    ("salad", r"salad|greens|lettuce"),
    ("bread", r"bread|roll|biscuit|muffin"),
    ("side-dish", r"side|accompaniment"),
)

_CUISINE_RULES: Tuple[Tuple[str, str], ...] = (
    ("italian", r"pasta|pizza|italian|parmesan|basil"),
    ("mexican", r"taco|burrito|mexican|salsa|cilantro|lime"),
    ("chinese", r"soy sauce|ginger|chinese|stir.fry|rice"),
    ("indian", r"curry|indian|turmeric|cumin|garam masala"),
    ("japanese", r"sushi|japanese|miso|sake|teriyaki"),
    ("thai", r"thai|coconut milk|fish sauce|lemongrass"),
    ("french", r"french|wine|butter|herb|provence"),
    ("greek", r"greek|feta|olive|mediterranean|oregano"),
    ("korean", r"korean|kimchi|sesame|gochujang"),
)

_TAG_RULES: Tuple[Tuple[str, str], ...] = (
    ("quick", r"quick|easy|fast|minutes"),
    ("healthy", r"healthy|nutritious|low.fat"),
    ("comfort-food", r"comfort|hearty|rich"),
    ("spicy", r"spicy|hot|pepper|chili"),
    ("sweet", r"sweet|sugar|honey|maple"),
    ("crispy", r"crispy|crunchy|fried"),
    ("creamy", r"creamy|smooth|rich"),
    ("fresh", r"fresh|raw|cold"),
    ("baked", r"baked|roasted|oven"),
    ("grilled", r"grilled|bbq|barbecue"),
)

_MEAT_RE = re.compile(r"meat|chicken|beef|pork|fish|seafood")
_ANIMAL_PRODUCT_RE = re.compile(r"egg|dairy|milk|cheese|butter")
_GLUTEN_RE = re.compile(r"gluten|flour|wheat|bread")
_DAIRY_RE = re.compile(r"dairy|milk|cheese|butter|cream")
_KETO_RE = re.compile(r"keto|low.carb")
_PALEO_RE = re.compile(r"paleo")
_COMPLEX_INGREDIENT_RE = re.compile(r"sauce|marinade|dough|reduction|confit")
_LONG_PROCESS_RE = re.compile(r"marinate|overnight|rest|chill")

DEFAULT_CATEGORY = "main-course"
DEFAULT_CUISINE = "american"


@dataclass
class AutoTags:
    category: str = DEFAULT_CATEGORY
    cuisine: str = DEFAULT_CUISINE
    difficulty: str = "easy"
    dietary_restrictions: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)


def _last_match(content: str, rules: Sequence[Tuple[str, str]], default: str) -> str:
    result = default
    for label, pattern in rules:
        if re.search(pattern, content):
            result = label
    return result


def _dietary_restrictions(content: str) -> List[str]:
    restrictions: List[str] = []
    if not _MEAT_RE.search(content):
        restrictions.append("vegetarian" if _ANIMAL_PRODUCT_RE.search(content) else "vegan")
    if not _GLUTEN_RE.search(content):
        restrictions.append("gluten-free")
    if not _DAIRY_RE.search(content):
        restrictions.append("dairy-free")
    if _KETO_RE.search(content):
        restrictions.append("keto")
    if _PALEO_RE.search(content):
        restrictions.append("paleo")
    return restrictions


def _difficulty(content: str, ingredients: Sequence[str], directions: Sequence[str]) -> str:
    complex_ingredients = sum(1 for item in ingredients if _COMPLEX_INGREDIENT_RE.search(item.lower()))
    if len(directions) > 8 or complex_ingredients > 3 or _LONG_PROCESS_RE.search(content):
        return "hard"
    if len(directions) > 5 or complex_ingredients > 1:
        return "medium"
    return "easy"


def generate_auto_tags(title: str, ingredients: Sequence[str], directions: Sequence[str]) -> AutoTags:
    """Derive descriptive tags from the recipe text."""
    content = " ".join([title, " ".join(ingredients), " ".join(directions)]).lower()

    return AutoTags(
        category=_last_match(content, _CATEGORY_RULES, DEFAULT_CATEGORY),
        cuisine=_last_match(content, _CUISINE_RULES, DEFAULT_CUISINE),
        difficulty=_difficulty(content, ingredients, directions),
        dietary_restrictions=_dietary_restrictions(content),
        tags=[label for label, pattern in _TAG_RULES if re.search(pattern, content)],
    )
