"""
User Agent Rotation with Realistic Browser Fingerprints

Supplies the browser identities the strategy ladder refreshes on every
attempt, so consecutive requests to a host do not share one fingerprint.
"""

from __future__ import annotations

import random
from typing import Optional

REFERERS = [
    "https://www.google.com/search?q=recipe",
    "https://www.bing.com/search?q=best+recipe",
    "https://duckduckgo.com/?q=homemade+recipe",
    "https://www.pinterest.com/search/pins/?q=recipe",
    "https://www.reddit.com/r/Cooking/",
]


class UserAgentRotator:
    """
    Picks desktop browser identities and search referers.

    Seed it with a ``random.Random`` for deterministic tests.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

        self.desktop_agents = [
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
            "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:121.0) Gecko/20100101 Firefox/121.0",
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.2 Safari/605.1.15",
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36 Edg/121.0.0.0",
        ]

    def get_random_user_agent(self) -> str:
        """Get a random desktop browser user agent."""
        return self._rng.choice(self.desktop_agents)

    def get_random_referer(self) -> str:
        return self._rng.choice(REFERERS)

    @staticmethod
    def is_refreshable(user_agent: str) -> bool:
        """Desktop Chrome and Firefox identities are swapped for a fresh one per attempt."""
        return ("Chrome" in user_agent or "Firefox" in user_agent) and "Mobile" not in user_agent
