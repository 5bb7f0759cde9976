"""
Strategy executor: one generic fetch routine driven by the strategy table.

HTTP rungs go through httpx with one pooled client per redirect limit; the
browser rung is delegated to :class:`BrowserFetcher`. Transport exceptions
are classified into :data:`FetchResult` values and never escape.
"""

from __future__ import annotations

import asyncio
import random
import time
from typing import Awaitable, Callable, Dict, Optional, Sequence

import httpx
import structlog

from ..config.config import CrawlerConfig
from ..observability.metrics import METRICS
from .browser import BrowserFetcher
from .rate_limiter import DomainThrottle
from .results import (
    FetchBlocked,
    FetchNetworkError,
    FetchNotFound,
    FetchResult,
    FetchSuccess,
    FetchTimeout,
    describe,
    page_result,
)
from .strategies import StrategyConfig, StrategyKind, domain_of, stealth_headers
from .user_agents import UserAgentRotator

logger = structlog.get_logger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]
AcceptFunc = Callable[[FetchSuccess], Awaitable[bool]]


def outcome_label(result: FetchResult) -> str:
    return {
        FetchSuccess: "success",
        FetchBlocked: "blocked",
        FetchNotFound: "not_found",
        FetchTimeout: "timeout",
    }.get(type(result), "network_error")


class StrategyExecutor:
    """
    Runs strategies against a URL and classifies what came back.

    Features:
    - Randomized per-strategy delay before every attempt
    - Per-strategy headers, timeout and redirect limit
    - Fresh browser identity per attempt for Chrome/Firefox rungs
    - Challenge-page detection on 2xx responses
    - Short-circuit on 404
    - Every request to a throttled domain, ladder rung or listing page,
      waits its turn on the shared :class:`DomainThrottle`
    """

    def __init__(
        self,
        config: Optional[CrawlerConfig] = None,
        *,
        rotator: Optional[UserAgentRotator] = None,
        browser: Optional[BrowserFetcher] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: SleepFunc = asyncio.sleep,
        rng: Optional[random.Random] = None,
        throttle: Optional[DomainThrottle] = None,
    ) -> None:
        self.config = config or CrawlerConfig()
        self.throttle = throttle
        self.rotator = rotator or UserAgentRotator(rng)
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._transport = transport
        self._browser = browser
        self._clients: Dict[int, httpx.AsyncClient] = {}
        self.logger = logger.bind(component="StrategyExecutor")

    def _client_for(self, max_redirects: int) -> httpx.AsyncClient:
        client = self._clients.get(max_redirects)
        if client is None:
            client = httpx.AsyncClient(
                http2=self.config.http2 and self._transport is None,
                verify=self.config.verify_ssl,
                follow_redirects=True,
                max_redirects=max_redirects,
                transport=self._transport,
            )
            self._clients[max_redirects] = client
        return client

    def _browser_fetcher(self) -> BrowserFetcher:
        if self._browser is None:
            self._browser = BrowserFetcher(headless=self.config.browser_headless)
        return self._browser

    def build_headers(self, url: str, strategy: StrategyConfig) -> Dict[str, str]:
        if strategy.kind is StrategyKind.STEALTH:
            return stealth_headers(url, self.rotator)
        headers = dict(strategy.headers)
        user_agent = headers.get("User-Agent")
        if user_agent and UserAgentRotator.is_refreshable(user_agent):
            headers["User-Agent"] = self.rotator.get_random_user_agent()
        return headers

    async def execute(self, url: str, strategy: StrategyConfig) -> FetchResult:
        """Wait out the strategy's delay, issue one request and classify it."""
        low, high = strategy.delay_range
        await self._sleep(self._rng.uniform(low, high) / 1000.0)

        headers = self.build_headers(url, strategy)
        start_time = time.perf_counter()
        if strategy.kind is StrategyKind.BROWSER:
            user_agent = headers.get("User-Agent") or self.rotator.get_random_user_agent()
            result = await self._paced(url, lambda: self._browser_fetcher().fetch(url, strategy, user_agent))
        else:
            result = await self._paced(url, lambda: self._fetch_http(url, strategy, headers))

        METRICS["fetch_latency_seconds"].labels(strategy=strategy.name).observe(time.perf_counter() - start_time)
        METRICS["fetch_attempts"].labels(strategy=strategy.name, outcome=outcome_label(result)).inc()
        self.logger.debug("Fetch attempt", url=url, strategy=strategy.name, outcome=describe(result))
        return result

    async def _paced(self, url: str, fetch: Callable[[], Awaitable[FetchResult]]) -> FetchResult:
        """Run one request inside the domain throttle when it covers the URL's host."""
        domain = domain_of(url)
        if self.throttle is None or not self.throttle.applies_to(domain):
            return await fetch()
        await self.throttle.wait_for_domain(domain)
        result = await fetch()
        self.throttle.record_result(domain, result)
        return result

    async def _fetch_http(self, url: str, strategy: StrategyConfig, headers: Dict[str, str]) -> FetchResult:
        client = self._client_for(strategy.max_redirects)
        try:
            response = await client.get(url, headers=headers, timeout=strategy.timeout_ms / 1000.0)
        except httpx.TimeoutException:
            return FetchTimeout(strategy=strategy.name)
        except httpx.TooManyRedirects as e:
            return FetchNetworkError(reason=f"too many redirects: {e}", strategy=strategy.name)
        except httpx.HTTPError as e:
            return FetchNetworkError(reason=str(e) or type(e).__name__, strategy=strategy.name)

        return self.classify_response(response, strategy.name)

    @staticmethod
    def classify_response(response: httpx.Response, strategy_name: str) -> FetchResult:
        status = response.status_code
        if status == 404:
            return FetchNotFound(strategy=strategy_name)
        if status in (403, 429):
            return FetchBlocked(status_code=status, strategy=strategy_name)
        if status >= 400:
            return FetchNetworkError(reason=f"HTTP {status}", strategy=strategy_name, status_code=status)

        return page_result(response.text, str(response.url), strategy_name, status)

    async def execute_sequential(
        self,
        url: str,
        strategies: Sequence[StrategyConfig],
        accept: Optional[AcceptFunc] = None,
    ) -> FetchResult:
        """
        Try strategies in order until one yields a usable page.

        Args:
            url: Target URL
            strategies: Ladder, cheapest first
            accept: Optional check on a fetched page; a rejected page moves on
                to the next strategy

        Returns:
            The first accepted success, ``FetchNotFound`` as soon as one is
            seen, otherwise the last result obtained
        """
        if not strategies:
            return FetchNetworkError(reason="no strategies configured")

        last: FetchResult = FetchNetworkError(reason="no strategies attempted")
        for strategy in strategies:
            result = await self.execute(url, strategy)
            last = result

            if isinstance(result, FetchNotFound):
                self.logger.info("Page not found, aborting ladder", url=url, strategy=strategy.name)
                return result

            if isinstance(result, FetchSuccess):
                if accept is None or await accept(result):
                    self.logger.info("Strategy succeeded", url=url, strategy=strategy.name)
                    return result
                self.logger.debug("Page fetched but not usable", url=url, strategy=strategy.name)
                continue

            self.logger.debug("Strategy failed", url=url, strategy=strategy.name, outcome=describe(result))

        self.logger.warning("All strategies exhausted", url=url, outcome=describe(last))
        return last

    async def fetch_listing(self, url: str, referer: Optional[str] = None) -> FetchResult:
        """Plain single fetch for source listing pages, without the ladder delay."""
        headers = {
            "User-Agent": self.rotator.get_random_user_agent(),
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        }
        if referer:
            headers["Referer"] = referer
        return await self._paced(url, lambda: self._get_listing(url, headers))

    async def _get_listing(self, url: str, headers: Dict[str, str]) -> FetchResult:
        client = self._client_for(10)
        try:
            response = await client.get(url, headers=headers, timeout=self.config.discovery_timeout_seconds)
        except httpx.TimeoutException:
            return FetchTimeout(strategy="discovery")
        except httpx.HTTPError as e:
            return FetchNetworkError(reason=str(e) or type(e).__name__, strategy="discovery")
        return self.classify_response(response, "discovery")

    async def aclose(self) -> None:
        for client in self._clients.values():
            await client.aclose()
        self._clients.clear()
        if self._browser is not None:
            await self._browser.close()
