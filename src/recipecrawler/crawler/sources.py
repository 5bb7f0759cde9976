"""
Prioritized catalog of recipe sites used for URL discovery.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

DEFAULT_PRIORITY = 4


@dataclass(frozen=True)
class RecipeSource:
    name: str
    base_url: str
    listing_url: str
    link_selector: str
    priority: int = DEFAULT_PRIORITY


# Lower is visited first. Sites not listed here share DEFAULT_PRIORITY.
SOURCE_PRIORITIES: Dict[str, int] = {
    "BBC Good Food": 1,
    "Simply Recipes": 1,
    "King Arthur Baking": 1,
    "Serious Eats": 1,
    "Bon Appetit": 2,
    "Epicurious": 2,
    "Food52": 2,
    "Delish": 2,
    "Minimalist Baker": 3,
    "Cookie and Kate": 3,
    "Pinch of Yum": 3,
}

_SOURCE_TABLE = [
    ("AllRecipes", "https://www.allrecipes.com", "https://www.allrecipes.com/recipes/", "a[href*='/recipe/']"),
    ("Food Network", "https://www.foodnetwork.com", "https://www.foodnetwork.com/recipes/", "a[href*='/recipes/']"),
    ("Tasty", "https://tasty.co", "https://tasty.co/search", "a[href*='/recipe/']"),
    ("Simply Recipes", "https://www.simplyrecipes.com", "https://www.simplyrecipes.com/recipes/", "a[href*='/recipes/']"),
    ("Bon Appetit", "https://www.bonappetit.com", "https://www.bonappetit.com/recipes/", "a[href*='/recipe/']"),
    ("Serious Eats", "https://www.seriouseats.com", "https://www.seriouseats.com/recipes/", "a[href*='/recipes/']"),
    ("BBC Good Food", "https://www.bbcgoodfood.com", "https://www.bbcgoodfood.com/recipes/", "a[href*='/recipes/']"),
    ("Epicurious", "https://www.epicurious.com", "https://www.epicurious.com/recipes/", "a[href*='/recipes/']"),
    ("Martha Stewart", "https://www.marthastewart.com", "https://www.marthastewart.com/recipes/", "a[href*='/recipe/']"),
    ("Taste of Home", "https://www.tasteofhome.com", "https://www.tasteofhome.com/recipes/", "a[href*='/recipe/']"),
    ("King Arthur Baking", "https://www.kingarthurbaking.com", "https://www.kingarthurbaking.com/recipes/", "a[href*='/recipe/']"),
    ("Minimalist Baker", "https://minimalistbaker.com", "https://minimalistbaker.com/recipes/", "a[href*='/recipe/']"),
    ("Cookie and Kate", "https://cookieandkate.com", "https://cookieandkate.com/recipes/", "a[href*='/recipe/']"),
    ("Pinch of Yum", "https://pinchofyum.com", "https://pinchofyum.com/recipes/", "a[href*='/recipe/']"),
    ("Half Baked Harvest", "https://www.halfbakedharvest.com", "https://www.halfbakedharvest.com/recipes/", "a[href*='recipe']"),
    ("Gimme Some Oven", "https://www.gimmesomeoven.com", "https://www.gimmesomeoven.com/recipes/", "a[href*='recipe']"),
    ("Budget Bytes", "https://www.budgetbytes.com", "https://www.budgetbytes.com/recipes/", "a[href*='recipe']"),
    ("The Pioneer Woman", "https://www.thepioneerwoman.com", "https://www.thepioneerwoman.com/food-cooking/recipes/", "a[href*='recipe']"),
    ("Love and Lemons", "https://www.loveandlemons.com", "https://www.loveandlemons.com/recipes/", "a[href*='recipe']"),
    ("Sally's Baking Addiction", "https://sallysbakingaddiction.com", "https://sallysbakingaddiction.com/recipes/", "a[href*='recipe']"),
    ("Damn Delicious", "https://damndelicious.net", "https://damndelicious.net/category/recipes/", "a[href*='recipe']"),
    ("Cafe Delites", "https://cafedelites.com", "https://cafedelites.com/recipes/", "a[href*='recipe']"),
    ("Recipe Tin Eats", "https://www.recipetineats.com", "https://www.recipetineats.com/recipes/", "a[href*='recipe']"),
    ("Spend With Pennies", "https://www.spendwithpennies.com", "https://www.spendwithpennies.com/recipes/", "a[href*='recipe']"),
    ("Downshiftology", "https://downshiftology.com", "https://downshiftology.com/recipes/", "a[href*='recipe']"),
    ("Jessica Gavin", "https://www.jessicagavin.com", "https://www.jessicagavin.com/recipes/", "a[href*='recipe']"),
    ("Natasha's Kitchen", "https://natashaskitchen.com", "https://natashaskitchen.com/recipes/", "a[href*='recipe']"),
    ("The Mediterranean Dish", "https://www.themediterraneandish.com", "https://www.themediterraneandish.com/recipes/", "a[href*='recipe']"),
    ("Once Upon a Chef", "https://www.onceuponachef.com", "https://www.onceuponachef.com/recipes/", "a[href*='recipe']"),
    ("Ambitious Kitchen", "https://www.ambitiouskitchen.com", "https://www.ambitiouskitchen.com/recipes/", "a[href*='recipe']"),
    ("Two Peas & Their Pod", "https://www.twopeasandtheirpod.com", "https://www.twopeasandtheirpod.com/recipes/", "a[href*='recipe']"),
    ("The Kitchn", "https://www.thekitchn.com", "https://www.thekitchn.com/recipes/", "a[href*='recipe']"),
    ("Delish", "https://www.delish.com", "https://www.delish.com/cooking/recipes/", "a[href*='recipe']"),
    ("Food52", "https://food52.com", "https://food52.com/recipes/", "a[href*='recipe']"),
    ("Yummly", "https://www.yummly.com", "https://www.yummly.com/recipes/", "a[href*='recipe']"),
    ("Eating Well", "https://www.eatingwell.com", "https://www.eatingwell.com/recipes/", "a[href*='recipe']"),
    ("Real Simple", "https://www.realsimple.com", "https://www.realsimple.com/food-recipes/", "a[href*='recipe']"),
    ("MyRecipes", "https://www.myrecipes.com", "https://www.myrecipes.com/recipes/", "a[href*='recipe']"),
]

RECIPE_SOURCES: List[RecipeSource] = [
    RecipeSource(name, base, listing, selector, SOURCE_PRIORITIES.get(name, DEFAULT_PRIORITY))
    for name, base, listing, selector in _SOURCE_TABLE
]


def select_sources(label: str, limit: int) -> List[RecipeSource]:
    """
    Pick the sources a crawl job discovers from.

    A label naming a source (case-insensitive) restricts discovery to it;
    any other label takes the ``limit`` highest-priority sources.
    """
    wanted = label.strip().lower()
    named = [s for s in RECIPE_SOURCES if s.name.lower() == wanted]
    if named:
        return named
    return sorted(RECIPE_SOURCES, key=lambda s: s.priority)[:limit]
