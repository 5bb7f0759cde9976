"""
Fetching, pacing and URL bookkeeping for the recipe crawler.
"""

from .browser import BrowserFetcher
from .collection import CollectionDetector, page_title
from .executor import StrategyExecutor
from .rate_limiter import AdaptiveRateLimiter, DomainThrottle
from .results import (
    FetchBlocked,
    FetchNetworkError,
    FetchNotFound,
    FetchResult,
    FetchSuccess,
    FetchTimeout,
    detect_challenge,
    error_kind_of,
    status_code_of,
)
from .sources import RECIPE_SOURCES, RecipeSource, select_sources
from .strategies import (
    ADVANCED_STRATEGIES,
    BROWSER_STRATEGY,
    STANDARD_STRATEGIES,
    STEALTH_STRATEGY,
    StrategyCatalog,
    StrategyConfig,
    StrategyKind,
    domain_of,
    stealth_headers,
)
from .url_cache import BoundedUrlCache, CacheEntry
from .user_agents import UserAgentRotator

__all__ = [
    "ADVANCED_STRATEGIES",
    "AdaptiveRateLimiter",
    "BROWSER_STRATEGY",
    "BoundedUrlCache",
    "BrowserFetcher",
    "CacheEntry",
    "CollectionDetector",
    "DomainThrottle",
    "FetchBlocked",
    "FetchNetworkError",
    "FetchNotFound",
    "FetchResult",
    "FetchSuccess",
    "FetchTimeout",
    "RECIPE_SOURCES",
    "RecipeSource",
    "STANDARD_STRATEGIES",
    "STEALTH_STRATEGY",
    "StrategyCatalog",
    "StrategyConfig",
    "StrategyExecutor",
    "StrategyKind",
    "UserAgentRotator",
    "detect_challenge",
    "domain_of",
    "error_kind_of",
    "status_code_of",
    "page_title",
    "select_sources",
    "stealth_headers",
]
