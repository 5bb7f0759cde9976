"""
Protocols for pluggable recipe extraction stages.
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from bs4 import BeautifulSoup

from .models import ExtractedRecipe


@runtime_checkable
class RecipeExtractor(Protocol):
    """One stage of the extraction cascade."""

    name: str

    def extract(self, soup: BeautifulSoup, *, url: str) -> Optional[ExtractedRecipe]:
        """Extract a candidate recipe from a parsed page.

        Args:
            soup: Parsed HTML document
            url: Source URL, used to resolve relative links

        Returns:
            A raw candidate, or None if the stage found nothing recipe-shaped
        """
        ...
