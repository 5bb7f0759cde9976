"""
Bounded in-memory record of recently attempted URLs.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import structlog

from ..config.config import CacheConfig

logger = structlog.get_logger(__name__)


def _now_ms() -> float:
    return time.time() * 1000.0


@dataclass
class CacheEntry:
    url: str
    last_attempt_at: float
    success: bool


class BoundedUrlCache:
    """
    Remembers the last attempt per URL so cooled-down URLs can be skipped.

    Inserting a new URL at capacity first evicts the oldest fraction of
    entries by last-attempt time, so the size never exceeds ``max_size``.
    """

    def __init__(self, config: Optional[CacheConfig] = None, clock: Callable[[], float] = _now_ms) -> None:
        self.config = config or CacheConfig()
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, url: object) -> bool:
        return url in self._entries

    @property
    def max_size(self) -> int:
        return self.config.max_size

    def set(self, url: str, success: bool) -> CacheEntry:
        if url not in self._entries and len(self._entries) >= self.max_size:
            self._evict_oldest()
        entry = CacheEntry(url=url, last_attempt_at=self._clock(), success=success)
        self._entries[url] = entry
        return entry

    def get(self, url: str) -> Optional[CacheEntry]:
        return self._entries.get(url)

    def _evict_oldest(self) -> None:
        count = max(1, int(self.max_size * self.config.eviction_fraction))
        oldest = sorted(self._entries.values(), key=lambda e: e.last_attempt_at)[:count]
        for entry in oldest:
            del self._entries[entry.url]
        logger.debug("Evicted URL cache entries", evicted=len(oldest), remaining=len(self._entries))

    def cooldown_for(self, entry: CacheEntry) -> int:
        return self.config.success_cooldown_ms if entry.success else self.config.failure_cooldown_ms

    def should_skip(self, url: str, cooldown_ms: Optional[int] = None) -> bool:
        """True while the URL is inside its cooldown window.

        Without an explicit ``cooldown_ms`` the window depends on whether the
        last attempt succeeded.
        """
        entry = self._entries.get(url)
        if entry is None:
            return False
        window = cooldown_ms if cooldown_ms is not None else self.cooldown_for(entry)
        return self._clock() - entry.last_attempt_at < window

    def cleanup(self) -> int:
        """Drop entries well past their cooldown. Returns how many were removed."""
        now = self._clock()
        success_limit = self.config.success_cooldown_ms * self.config.success_retention_multiplier
        failure_limit = self.config.failure_cooldown_ms * self.config.failure_retention_multiplier
        stale = [
            url
            for url, entry in self._entries.items()
            if now - entry.last_attempt_at > (success_limit if entry.success else failure_limit)
        ]
        for url in stale:
            del self._entries[url]
        if stale:
            logger.info("URL cache cleanup", removed=len(stale), remaining=len(self._entries))
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()
