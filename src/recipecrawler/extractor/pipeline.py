"""
Cascading recipe extraction.

Runs the configured stages in order over one parsed document. Every candidate
is sanitized, stripped of placeholder ingredients and validated before it is
accepted; the first stage whose candidate validates wins.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Union

import structlog
from bs4 import BeautifulSoup

from ..config.config import ExtractionSettings
from ..observability.metrics import METRICS
from ..protocols import ConfigurationError
from .heuristic_extractor import HeuristicExtractor
from .jsonld_extractor import JsonLdExtractor
from .microdata_extractor import MicrodataExtractor
from .models import ExtractedRecipe, ExtractionFailure
from .pattern_extractor import PatternExtractor
from .protocols import RecipeExtractor
from .sanitizer import sanitize_recipe
from .tagging import generate_auto_tags
from .validation import filter_meaningful_ingredients, validation_errors

logger = structlog.get_logger(__name__)

ExtractionOutcome = Union[ExtractedRecipe, ExtractionFailure]


def default_stages() -> Dict[str, RecipeExtractor]:
    stages: List[RecipeExtractor] = [
        JsonLdExtractor(),
        MicrodataExtractor(),
        PatternExtractor(),
        HeuristicExtractor(),
    ]
    return {stage.name: stage for stage in stages}


class ExtractionPipeline:
    """
    Converts raw HTML into a validated recipe or an explicit failure.

    Features:
    - Configurable stage cascade order
    - Uniform sanitization and validation regardless of stage
    - Placeholder-ingredient filtering
    - Optional keyword auto-tagging
    - Per-stage performance metrics
    """

    def __init__(
        self,
        settings: Optional[ExtractionSettings] = None,
        stages: Optional[Mapping[str, RecipeExtractor]] = None,
    ) -> None:
        self.settings = settings or ExtractionSettings()
        self.logger = logger.bind(component="ExtractionPipeline")
        self._stages: Dict[str, RecipeExtractor] = dict(stages) if stages is not None else default_stages()

        self._validate_cascade_order()

        self._stage_metrics: Dict[str, Dict[str, float]] = {
            name: {"attempts": 0, "candidates": 0, "successes": 0, "total_time": 0.0} for name in self._stages
        }

    def _validate_cascade_order(self) -> None:
        for stage_name in self.settings.cascade_order:
            if stage_name not in self._stages:
                raise ConfigurationError(
                    f"Invalid extractor '{stage_name}' in cascade_order. "
                    f"Available extractors: {list(self._stages.keys())}"
                )

    @property
    def cascade_order(self) -> List[str]:
        return list(self.settings.cascade_order)

    async def extract(self, html: str, source_url: str) -> ExtractionOutcome:
        """Run the cascade off the event loop; parsing large pages is CPU-bound."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.extract_sync, html, source_url)

    def extract_sync(self, html: str, source_url: str) -> ExtractionOutcome:
        if not html or not html.strip():
            return ExtractionFailure(reason="empty document")

        soup = BeautifulSoup(html, "lxml")
        tried: List[str] = []
        rejected = False
        rejected_title: Optional[str] = None

        for stage_name in self.settings.cascade_order:
            stage = self._stages[stage_name]
            tried.append(stage_name)
            stats = self._stage_metrics[stage_name]
            stats["attempts"] += 1
            start_time = time.perf_counter()

            try:
                candidate = stage.extract(soup, url=source_url)
            except Exception as e:
                self.logger.error(
                    "Extractor failed",
                    event_type="extractor_failed",
                    extractor=stage_name,
                    url=source_url,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue
            finally:
                stats["total_time"] += time.perf_counter() - start_time

            if candidate is None:
                self.logger.debug("Extractor found nothing", extractor=stage_name, url=source_url)
                continue

            stats["candidates"] += 1
            recipe = self._clean(candidate, stage_name, source_url)
            errors = validation_errors(recipe, self.settings)
            if errors:
                rejected = True
                rejected_title = rejected_title or recipe.title or None
                self.logger.debug(
                    "Candidate rejected",
                    extractor=stage_name,
                    url=source_url,
                    errors=errors,
                )
                continue

            stats["successes"] += 1
            METRICS["extraction_success"].labels(stage=stage_name).inc()
            self.logger.info(
                "Extraction completed",
                extractor=stage_name,
                url=source_url,
                ingredients=len(recipe.ingredients),
                directions=len(recipe.directions),
            )
            return self._tag(recipe) if self.settings.auto_tag else recipe

        if rejected:
            reason = "extracted recipe failed minimum content checks"
        else:
            reason = "no extractor produced a recipe"
        return ExtractionFailure(
            reason=reason,
            stages_tried=tuple(tried),
            rejected_candidate=rejected,
            candidate_title=rejected_title,
        )

    def _clean(self, candidate: ExtractedRecipe, stage_name: str, source_url: str) -> ExtractedRecipe:
        recipe = sanitize_recipe(candidate)
        return replace(
            recipe,
            ingredients=filter_meaningful_ingredients(recipe.ingredients, self.settings),
            source=recipe.source or source_url,
            stage=stage_name,
        )

    @staticmethod
    def _tag(recipe: ExtractedRecipe) -> ExtractedRecipe:
        tags = generate_auto_tags(recipe.title, recipe.ingredients, recipe.directions)
        return replace(
            recipe,
            category=recipe.category or tags.category,
            cuisine=recipe.cuisine or tags.cuisine,
            difficulty=recipe.difficulty or tags.difficulty,
            dietary_restrictions=list(recipe.dietary_restrictions) or tags.dietary_restrictions,
            tags=list(dict.fromkeys([*recipe.tags, *tags.tags])),
        )

    def get_metrics(self) -> Dict[str, Dict[str, float]]:
        """
        Get extraction performance metrics.

        Returns:
            Dictionary of metrics per stage
        """
        metrics = {}
        for stage_name, raw in self._stage_metrics.items():
            attempts = raw["attempts"]
            metrics[stage_name] = {
                "attempts": attempts,
                "candidates": raw["candidates"],
                "successes": raw["successes"],
                "success_rate": raw["successes"] / attempts if attempts > 0 else 0.0,
                "total_time": raw["total_time"],
                "avg_time": raw["total_time"] / attempts if attempts > 0 else 0.0,
            }
        return metrics
