"""
Headless-browser tier of the escalation ladder.

Playwright is imported lazily so environments that never reach the browser
tier do not need a browser installed.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import structlog

from .results import FetchBlocked, FetchNetworkError, FetchNotFound, FetchResult, FetchTimeout, page_result
from .strategies import StrategyConfig

logger = structlog.get_logger(__name__)

_LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--no-sandbox",
    "--disable-dev-shm-usage",
]

_HIDE_WEBDRIVER = "Object.defineProperty(navigator, 'webdriver', { get: () => undefined });"

_RECIPE_SELECTORS = 'script[type="application/ld+json"], [itemtype*="Recipe"], .recipe, #recipe, .ingredients'

# Scroll in steps so lazy-loaded sections render, stopping after 5000px.
_SCROLL_SCRIPT = """
async () => {
    let total = 0;
    while (total < Math.min(document.body.scrollHeight, 5000)) {
        window.scrollBy(0, 250);
        total += 250;
        await new Promise((resolve) => setTimeout(resolve, 100));
    }
}
"""


class BrowserFetcher:
    """Fetches pages through a shared headless Chromium instance."""

    def __init__(self, headless: bool = True) -> None:
        self.headless = headless
        self._playwright: Optional[Any] = None
        self._browser: Optional[Any] = None
        self._lock = asyncio.Lock()
        self.logger = logger.bind(component="BrowserFetcher")

    async def _ensure_browser(self) -> Any:
        async with self._lock:
            if self._browser is None:
                from playwright.async_api import async_playwright

                self._playwright = await async_playwright().start()
                self._browser = await self._playwright.chromium.launch(headless=self.headless, args=_LAUNCH_ARGS)
                self.logger.info("Browser launched", headless=self.headless)
            return self._browser

    async def fetch(self, url: str, strategy: StrategyConfig, user_agent: str) -> FetchResult:
        from playwright.async_api import Error as PlaywrightError
        from playwright.async_api import TimeoutError as PlaywrightTimeoutError

        context = None
        try:
            browser = await self._ensure_browser()
            context = await browser.new_context(
                user_agent=user_agent,
                viewport={"width": 1920, "height": 1080},
                locale="en-US",
            )
            await context.add_init_script(_HIDE_WEBDRIVER)
            page = await context.new_page()
            response = await page.goto(url, wait_until="domcontentloaded", timeout=strategy.timeout_ms)

            status = response.status if response is not None else 200
            if status == 404:
                return FetchNotFound(strategy=strategy.name)
            if status in (403, 429):
                return FetchBlocked(status_code=status, strategy=strategy.name)
            if status >= 400:
                return FetchNetworkError(reason=f"HTTP {status}", strategy=strategy.name, status_code=status)

            try:
                await page.wait_for_selector(_RECIPE_SELECTORS, timeout=5000)
            except PlaywrightTimeoutError:
                self.logger.debug("No recipe markers rendered", url=url)
            await page.evaluate(_SCROLL_SCRIPT)

            return page_result(await page.content(), page.url, strategy.name, status)
        except PlaywrightTimeoutError:
            return FetchTimeout(strategy=strategy.name)
        except PlaywrightError as e:
            return FetchNetworkError(reason=str(e), strategy=strategy.name)
        finally:
            if context is not None:
                await context.close()

    async def close(self) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
