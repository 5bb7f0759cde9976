"""
Core contracts and dataclasses for the recipe crawler.

Defines the error taxonomy shared by every stage of the acquisition pipeline,
the per-URL outcome record, the stored recipe shape and the storage protocol
the orchestrator consumes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Protocol, runtime_checkable
from uuid import uuid4

if TYPE_CHECKING:
    from recipecrawler.extractor.models import ExtractedRecipe

# ============================================================================
# Enums and Exceptions
# ============================================================================


class ErrorKind(Enum):
    """Why a single URL failed to turn into a stored recipe."""

    BLOCKED = "blocked"
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    EXTRACTION_FAILURE = "extraction_failure"
    INVALID_RECIPE = "invalid_recipe"
    STORAGE_ERROR = "storage_error"


class RecipeCrawlerError(Exception):
    """Base class for recipe crawler errors."""


class StorageError(RecipeCrawlerError):
    """An external storage call failed after retries."""


class ConfigurationError(RecipeCrawlerError):
    """Configuration is internally inconsistent."""


# ============================================================================
# Data Structures
# ============================================================================


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class UrlOutcome:
    """Result of processing one URL through fetch, extraction and storage."""

    url: str
    success: bool
    error_kind: Optional[ErrorKind] = None
    reason: str = ""
    recipe_id: Optional[str] = None
    collection_links: List[str] = field(default_factory=list)

    @property
    def is_collection(self) -> bool:
        return bool(self.collection_links)


@dataclass
class StoredRecipe:
    """A recipe as persisted by the external storage layer."""

    title: str
    ingredients: List[str]
    directions: List[str]
    source: str
    id: str = field(default_factory=lambda: str(uuid4()))
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
    is_auto_scraped: bool = True
    scraped_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def from_extracted(cls, recipe: ExtractedRecipe, *, is_auto_scraped: bool = True) -> StoredRecipe:
        """Build a storable record from an extraction result."""
        return cls(
            title=recipe.title,
            ingredients=list(recipe.ingredients),
            directions=list(recipe.directions),
            source=recipe.source or "",
            image_url=recipe.image_url,
            prep_time_minutes=recipe.prep_time_minutes,
            cook_time_minutes=recipe.cook_time_minutes,
            total_time_minutes=recipe.total_time_minutes,
            servings=recipe.servings,
            category=recipe.category,
            cuisine=recipe.cuisine,
            difficulty=recipe.difficulty,
            dietary_restrictions=list(recipe.dietary_restrictions),
            tags=list(recipe.tags),
            is_auto_scraped=is_auto_scraped,
        )


@dataclass
class CrawledUrlRecord:
    """Ledger entry describing the last crawl attempt of a URL."""

    url: str
    domain: str
    success: bool
    recipe_id: Optional[str] = None
    error_message: Optional[str] = None
    crawled_at: datetime = field(default_factory=_utcnow)


# ============================================================================
# Protocols
# ============================================================================


@runtime_checkable
class RecipeStorage(Protocol):
    """Durable recipe store consumed by the crawl orchestrator."""

    async def get_recipe_by_source(self, url: str) -> Optional[StoredRecipe]:
        """Return the recipe stored for an exact source URL."""
        ...

    async def is_url_crawled(self, url: str) -> bool:
        """Return True if the URL was already crawled successfully."""
        ...

    async def mark_url_crawled(
        self,
        url: str,
        domain: str,
        success: bool,
        recipe_id: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> None:
        """Record the outcome of a crawl attempt."""
        ...

    async def create_recipe(self, recipe: ExtractedRecipe) -> StoredRecipe:
        """Persist an extracted recipe."""
        ...

    async def get_all_recipes(self) -> List[StoredRecipe]:
        """Return every stored recipe."""
        ...
