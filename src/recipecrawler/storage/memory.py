"""
In-memory reference implementation of the recipe storage protocol.
"""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional

from ..extractor.models import ExtractedRecipe
from ..protocols import CrawledUrlRecord, StoredRecipe


class InMemoryRecipeStore:
    """
    Dictionary-backed :class:`~recipecrawler.protocols.RecipeStorage`.

    Suitable for tests and single-process runs; nothing survives a restart.
    """

    def __init__(self) -> None:
        self._recipes: Dict[str, StoredRecipe] = {}
        self._by_source: Dict[str, str] = {}
        self._crawled: Dict[str, CrawledUrlRecord] = {}
        self._lock = asyncio.Lock()

    async def get_recipe_by_source(self, url: str) -> Optional[StoredRecipe]:
        recipe_id = self._by_source.get(url)
        return self._recipes.get(recipe_id) if recipe_id else None

    async def is_url_crawled(self, url: str) -> bool:
        record = self._crawled.get(url)
        return record is not None and record.success

    async def mark_url_crawled(
        self,
        url: str,
        domain: str,
        success: bool,
        recipe_id: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> None:
        existing = self._crawled.get(url)
        if (
            existing is not None
            and existing.success == success
            and existing.recipe_id == recipe_id
            and existing.error_message == error_message
        ):
            return
        self._crawled[url] = CrawledUrlRecord(
            url=url,
            domain=domain,
            success=success,
            recipe_id=recipe_id,
            error_message=error_message,
        )

    async def create_recipe(self, recipe: ExtractedRecipe) -> StoredRecipe:
        async with self._lock:
            stored = StoredRecipe.from_extracted(recipe)
            self._recipes[stored.id] = stored
            if stored.source:
                self._by_source[stored.source] = stored.id
            return stored

    async def get_all_recipes(self) -> List[StoredRecipe]:
        return list(self._recipes.values())

    def get_crawl_record(self, url: str) -> Optional[CrawledUrlRecord]:
        return self._crawled.get(url)

    def crawled_urls(self) -> List[CrawledUrlRecord]:
        return list(self._crawled.values())

    def __len__(self) -> int:
        return len(self._recipes)
