"""
Recipe extraction from raw HTML.
"""

from .heuristic_extractor import HeuristicExtractor
from .jsonld_extractor import JsonLdExtractor
from .microdata_extractor import MicrodataExtractor
from .models import ExtractedRecipe, ExtractionFailure
from .pattern_extractor import PatternExtractor
from .pipeline import ExtractionOutcome, ExtractionPipeline
from .protocols import RecipeExtractor
from .sanitizer import sanitize_recipe, strip_html, strip_html_list
from .tagging import AutoTags, generate_auto_tags
from .validation import filter_meaningful_ingredients, is_valid_recipe

__all__ = [
    "AutoTags",
    "ExtractedRecipe",
    "ExtractionFailure",
    "ExtractionOutcome",
    "ExtractionPipeline",
    "HeuristicExtractor",
    "JsonLdExtractor",
    "MicrodataExtractor",
    "PatternExtractor",
    "RecipeExtractor",
    "filter_meaningful_ingredients",
    "generate_auto_tags",
    "is_valid_recipe",
    "sanitize_recipe",
    "strip_html",
    "strip_html_list",
]
