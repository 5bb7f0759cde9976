"""
Recipe storage: the in-memory reference store and duplicate lookups.
"""

from .lookup import (
    batch_check_existing,
    call_with_retry,
    extract_youtube_video_id,
    find_existing_recipe,
    is_already_handled,
)
from .memory import InMemoryRecipeStore

__all__ = [
    "InMemoryRecipeStore",
    "batch_check_existing",
    "call_with_retry",
    "extract_youtube_video_id",
    "find_existing_recipe",
    "is_already_handled",
]
