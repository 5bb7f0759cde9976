"""
Duplicate lookups against the external recipe store.

Every storage call goes through :func:`call_with_retry`; once retries are
exhausted the failure surfaces as :class:`StorageError`.
"""

from __future__ import annotations

import asyncio
import re
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Set, TypeVar

import structlog
from tenacity import AsyncRetrying, RetryError, stop_after_attempt, wait_exponential
from tenacity.wait import wait_base

from ..protocols import RecipeStorage, StorageError, StoredRecipe

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_YOUTUBE_URL = re.compile(
    r"(?:(?:www\.)?youtube\.com/watch\?v=|youtu\.be/|(?:www\.)?youtube\.com/embed/|(?:www\.)?youtube\.com/shorts/)"
    r"([^&\n?#]+)"
)
_BARE_VIDEO_ID = re.compile(r"^([a-zA-Z0-9_-]{11})$")


def extract_youtube_video_id(url: str) -> Optional[str]:
    """Video id from watch, youtu.be, embed or shorts URLs, or a bare 11-char id."""
    if not url:
        return None
    match = _YOUTUBE_URL.search(url) or _BARE_VIDEO_ID.match(url)
    return match.group(1) if match else None


async def call_with_retry(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    attempts: int = 3,
    wait: Optional[wait_base] = None,
) -> T:
    """Await ``func(*args)``, retrying on any exception; raise StorageError when exhausted."""
    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait if wait is not None else wait_exponential(multiplier=0.5, max=4),
        ):
            with attempt:
                return await func(*args)
    except RetryError as e:
        cause = e.last_attempt.exception()
        raise StorageError(f"{getattr(func, '__name__', 'storage call')} failed after {attempts} attempts: {cause}") from cause
    raise StorageError("storage retry loop exited without a result")


async def find_existing_recipe(
    storage: RecipeStorage,
    url: str,
    *,
    attempts: int = 3,
    wait: Optional[wait_base] = None,
) -> Optional[StoredRecipe]:
    """
    Look up a stored recipe for ``url``.

    YouTube URLs match on video id across every stored recipe, so the same
    video under a different URL shape is still a duplicate. Other URLs match
    on the exact source.
    """
    video_id = extract_youtube_video_id(url)
    if video_id:
        recipes = await call_with_retry(storage.get_all_recipes, attempts=attempts, wait=wait)
        for recipe in recipes:
            if extract_youtube_video_id(recipe.source) == video_id:
                return recipe
        return None
    return await call_with_retry(storage.get_recipe_by_source, url, attempts=attempts, wait=wait)


async def is_already_handled(
    storage: RecipeStorage,
    url: str,
    *,
    attempts: int = 3,
    wait: Optional[wait_base] = None,
) -> bool:
    """True when ``url`` has a stored recipe or a successful entry in the crawl ledger."""
    if await find_existing_recipe(storage, url, attempts=attempts, wait=wait) is not None:
        return True
    return bool(await call_with_retry(storage.is_url_crawled, url, attempts=attempts, wait=wait))


async def batch_check_existing(
    storage: RecipeStorage,
    urls: Iterable[str],
    batch_size: int = 10,
    *,
    attempts: int = 1,
    wait: Optional[wait_base] = None,
) -> Set[str]:
    """
    Return the subset of ``urls`` already stored or already crawled.

    The ledger catches pages that never become a recipe, such as collection
    pages. Batches run concurrently; a URL whose check fails is treated as
    not stored so it still gets crawled.
    """
    url_list: List[str] = list(urls)
    existing: Set[str] = set()
    for i in range(0, len(url_list), batch_size):
        batch = url_list[i : i + batch_size]
        results = await asyncio.gather(
            *(is_already_handled(storage, url, attempts=attempts, wait=wait) for url in batch),
            return_exceptions=True,
        )
        for url, result in zip(batch, results):
            if isinstance(result, Exception):
                logger.warning("Existence check failed", url=url, error=str(result))
                continue
            if isinstance(result, BaseException):
                raise result
            if result:
                existing.add(url)
    return existing
