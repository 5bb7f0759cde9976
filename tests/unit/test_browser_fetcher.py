"""
Tests for the browser tier with a mocked Playwright browser.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from recipecrawler.crawler import (
    BROWSER_STRATEGY,
    BrowserFetcher,
    FetchBlocked,
    FetchNotFound,
    FetchSuccess,
)

pytest.importorskip("playwright.async_api")

URL = "https://www.allrecipes.com/recipe/1/soda-bread/"
USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/124.0 Safari/537.36"


def _fetcher(html: str, status: int = 200):
    page = MagicMock()
    page.goto = AsyncMock(return_value=MagicMock(status=status))
    page.wait_for_selector = AsyncMock()
    page.evaluate = AsyncMock()
    page.content = AsyncMock(return_value=html)
    page.url = URL

    context = MagicMock()
    context.add_init_script = AsyncMock()
    context.new_page = AsyncMock(return_value=page)
    context.close = AsyncMock()

    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)

    fetcher = BrowserFetcher()
    fetcher._browser = browser
    return fetcher, context


@pytest.mark.unit
class TestBrowserFetch:
    @pytest.mark.asyncio
    async def test_rendered_recipe_is_success(self, soda_bread_html):
        fetcher, context = _fetcher(soda_bread_html)

        result = await fetcher.fetch(URL, BROWSER_STRATEGY, USER_AGENT)

        assert isinstance(result, FetchSuccess)
        assert result.final_url == URL
        assert "Irish Soda Bread" in result.html
        context.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_challenge_page_is_blocked(self, challenge_html):
        fetcher, context = _fetcher(challenge_html)

        result = await fetcher.fetch(URL, BROWSER_STRATEGY, USER_AGENT)

        assert isinstance(result, FetchBlocked)
        assert result.status_code == 200
        assert result.strategy == BROWSER_STRATEGY.name
        context.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_page_short_circuits(self):
        fetcher, context = _fetcher("", status=404)

        result = await fetcher.fetch(URL, BROWSER_STRATEGY, USER_AGENT)

        assert isinstance(result, FetchNotFound)
        context.close.assert_awaited_once()
