"""
Data models for recipe extraction results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from recipecrawler.protocols import ErrorKind


@dataclass(slots=True, frozen=True)
class ExtractedRecipe:
    """Candidate recipe produced by one extraction stage."""

    title: str
    ingredients: List[str]
    directions: List[str]
    image_url: Optional[str] = None
    prep_time_minutes: Optional[int] = None
    cook_time_minutes: Optional[int] = None
    total_time_minutes: Optional[int] = None
    servings: Optional[int] = None
    category: Optional[str] = None
    cuisine: Optional[str] = None
    difficulty: Optional[str] = None
    dietary_restrictions: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    source: Optional[str] = None
    stage: Optional[str] = None


@dataclass(slots=True, frozen=True)
class ExtractionFailure:
    """No stage produced a recipe that passed validation."""

    reason: str
    stages_tried: Tuple[str, ...] = ()
    rejected_candidate: bool = False
    candidate_title: Optional[str] = None

    @property
    def error_kind(self) -> ErrorKind:
        # A stage parsed something recipe-shaped but it failed the content invariant.
        if self.rejected_candidate:
            return ErrorKind.INVALID_RECIPE
        return ErrorKind.EXTRACTION_FAILURE
