"""
Strategy catalog: the escalation ladder as data.

Each :class:`StrategyConfig` is one request configuration. The executor runs
them in order, cheapest first, ending with headless-browser automation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple
from urllib.parse import urlparse

from ..config.config import CrawlerConfig
from .user_agents import UserAgentRotator


class StrategyKind(Enum):
    HTTP = "http"
    STEALTH = "stealth"
    BROWSER = "browser"


@dataclass(frozen=True)
class StrategyConfig:
    """One immutable rung of the escalation ladder."""

    name: str
    headers: Mapping[str, str] = field(default_factory=dict)
    timeout_ms: int = 20_000
    max_redirects: int = 10
    delay_range: Tuple[int, int] = (1000, 3000)
    kind: StrategyKind = StrategyKind.HTTP

    def __post_init__(self) -> None:
        low, high = self.delay_range
        if low < 0 or high < low:
            raise ValueError(f"invalid delay range for strategy {self.name}: {self.delay_range}")
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))


_CHROME_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
_FIREFOX_UA = "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0"

STANDARD_STRATEGIES: Tuple[StrategyConfig, ...] = (
    StrategyConfig(
        name="standard",
        timeout_ms=20_000,
        max_redirects=15,
        headers={
            "User-Agent": _CHROME_UA,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7",
            "Accept-Language": "en-US,en;q=0.9,es;q=0.8",
            "Accept-Encoding": "gzip, deflate, br",
            "Cache-Control": "max-age=0",
            "Sec-Ch-Ua": '"Google Chrome";v="121", "Chromium";v="121", "Not_A Brand";v="24"',
            "Sec-Ch-Ua-Mobile": "?0",
            "Sec-Ch-Ua-Platform": '"Windows"',
            "Sec-Fetch-Dest": "document",
            "Sec-Fetch-Mode": "navigate",
            "Sec-Fetch-Site": "none",
            "Sec-Fetch-User": "?1",
            "Upgrade-Insecure-Requests": "1",
        },
    ),
    StrategyConfig(
        name="mobile",
        timeout_ms=20_000,
        max_redirects=10,
        headers={
            "User-Agent": "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1",
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
            "Accept-Encoding": "gzip, deflate, br",
            "Upgrade-Insecure-Requests": "1",
        },
    ),
    StrategyConfig(
        name="simple",
        timeout_ms=20_000,
        max_redirects=5,
        headers={
            "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
            "Accept": "text/html",
            "Accept-Language": "en-US",
        },
    ),
    StrategyConfig(
        name="firefox",
        timeout_ms=20_000,
        max_redirects=10,
        headers={
            "User-Agent": _FIREFOX_UA,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
            "Accept-Encoding": "gzip, deflate, br",
            "Referer": "https://www.google.com/",
            "Upgrade-Insecure-Requests": "1",
            "Sec-Fetch-Dest": "document",
            "Sec-Fetch-Mode": "navigate",
            "Sec-Fetch-Site": "cross-site",
            "Sec-Fetch-User": "?1",
        },
    ),
    StrategyConfig(
        name="safari",
        timeout_ms=20_000,
        max_redirects=8,
        headers={
            "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.2 Safari/605.1.15",
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
            "Accept-Encoding": "gzip, deflate, br",
            "Referer": "https://www.pinterest.com/",
            "Upgrade-Insecure-Requests": "1",
        },
    ),
    StrategyConfig(
        name="googlebot",
        timeout_ms=15_000,
        max_redirects=5,
        delay_range=(1000, 2000),
        headers={
            "User-Agent": "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)",
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en",
            "Accept-Encoding": "gzip, deflate",
        },
    ),
    StrategyConfig(
        name="bingbot",
        timeout_ms=15_000,
        max_redirects=3,
        delay_range=(2000, 3000),
        headers={
            "User-Agent": "Mozilla/5.0 (compatible; bingbot/2.0; +http://www.bing.com/bingbot.htm)",
            "Accept": "*/*",
            "Accept-Encoding": "gzip, deflate",
        },
    ),
    StrategyConfig(
        name="curl",
        timeout_ms=10_000,
        max_redirects=0,
        delay_range=(500, 1000),
        headers={"User-Agent": "curl/7.68.0"},
    ),
)

ADVANCED_STRATEGIES: Tuple[StrategyConfig, ...] = (
    StrategyConfig(
        name="browser-emulation",
        timeout_ms=30_000,
        max_redirects=15,
        delay_range=(2000, 5000),
        headers={
            "User-Agent": _CHROME_UA,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7",
            "Accept-Language": "en-US,en;q=0.9",
            "Accept-Encoding": "gzip, deflate, br",
            "Referer": "https://www.google.com/search?q=recipe",
            "Cache-Control": "max-age=0",
            "Upgrade-Insecure-Requests": "1",
            "Sec-Fetch-Dest": "document",
            "Sec-Fetch-Mode": "navigate",
            "Sec-Fetch-Site": "cross-site",
            "Sec-Fetch-User": "?1",
            "Sec-Ch-Ua": '"Not A(Brand";v="99", "Google Chrome";v="121", "Chromium";v="121"',
            "Sec-Ch-Ua-Mobile": "?0",
            "Sec-Ch-Ua-Platform": '"Windows"',
            "DNT": "1",
        },
    ),
    StrategyConfig(
        name="residential-proxy",
        timeout_ms=20_000,
        max_redirects=8,
        delay_range=(4000, 7000),
        headers={
            "User-Agent": _FIREFOX_UA,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.7,es;q=0.3",
            "Accept-Encoding": "gzip, deflate, br",
            "Referer": "https://www.bing.com/",
            "Upgrade-Insecure-Requests": "1",
            "Sec-Fetch-Dest": "document",
            "Sec-Fetch-Mode": "navigate",
            "Sec-Fetch-Site": "cross-site",
        },
    ),
)

# Headers are generated per URL by stealth_headers().
STEALTH_STRATEGY = StrategyConfig(
    name="ultimate-stealth",
    timeout_ms=35_000,
    max_redirects=20,
    delay_range=(8000, 13000),
    kind=StrategyKind.STEALTH,
)

BROWSER_STRATEGY = StrategyConfig(
    name="browser-automation",
    timeout_ms=45_000,
    max_redirects=20,
    delay_range=(2000, 4000),
    kind=StrategyKind.BROWSER,
)


def stealth_headers(url: str, rotator: Optional[UserAgentRotator] = None) -> Dict[str, str]:
    """A complete desktop-Chrome header set with a rotated identity and referer."""
    rotator = rotator or UserAgentRotator()
    parsed = urlparse(url)
    return {
        "User-Agent": rotator.get_random_user_agent(),
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.9",
        "Accept-Language": "en-US,en;q=0.9,es;q=0.8,fr;q=0.7",
        "Accept-Encoding": "gzip, deflate, br",
        "Referer": rotator.get_random_referer(),
        "Origin": f"{parsed.scheme}://{parsed.netloc}",
        "Cache-Control": "max-age=0",
        "Upgrade-Insecure-Requests": "1",
        "Sec-Fetch-Dest": "document",
        "Sec-Fetch-Mode": "navigate",
        "Sec-Fetch-Site": "same-origin",
        "Sec-Fetch-User": "?1",
        "Sec-Ch-Ua": '"Google Chrome";v="121", "Not:A-Brand";v="99", "Chromium";v="121"',
        "Sec-Ch-Ua-Mobile": "?0",
        "Sec-Ch-Ua-Platform": '"Windows"',
        "DNT": "1",
    }


def domain_of(url: str) -> str:
    host = (urlparse(url).hostname or "").lower()
    return host[4:] if host.startswith("www.") else host


class StrategyCatalog:
    """Builds the ladder a given domain is crawled with."""

    def __init__(self, config: Optional[CrawlerConfig] = None) -> None:
        self.config = config or CrawlerConfig()
        all_strategies = (*STANDARD_STRATEGIES, *ADVANCED_STRATEGIES, STEALTH_STRATEGY, BROWSER_STRATEGY)
        self._by_name: Dict[str, StrategyConfig] = {s.name: s for s in all_strategies}

    def is_protected(self, domain: str) -> bool:
        domain = domain.lower()
        return any(domain == p or domain.endswith("." + p) for p in self.config.protected_domains)

    def ladder_for(self, domain: str) -> List[StrategyConfig]:
        """Protected domains get every rung; others a short standard prefix."""
        if self.is_protected(domain):
            ladder = [*STANDARD_STRATEGIES, *ADVANCED_STRATEGIES, STEALTH_STRATEGY]
        else:
            ladder = list(STANDARD_STRATEGIES[: self.config.standard_ladder_size])
        if self.config.use_browser_automation:
            ladder.append(BROWSER_STRATEGY)
        return ladder

    def get(self, name: str) -> StrategyConfig:
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"Unknown strategy '{name}'. Available: {sorted(self._by_name)}") from None

    def names(self) -> List[str]:
        return list(self._by_name)
