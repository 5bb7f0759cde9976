"""
Tests for the strategy executor using an httpx mock transport.
"""

import random

import brotli
import httpx
import pytest

from recipecrawler.config import CrawlerConfig, ThrottleConfig
from recipecrawler.crawler import (
    STANDARD_STRATEGIES,
    DomainThrottle,
    FetchBlocked,
    FetchNetworkError,
    FetchNotFound,
    FetchSuccess,
    FetchTimeout,
    StrategyCatalog,
    StrategyExecutor,
    detect_challenge,
)
from recipecrawler.crawler.executor import outcome_label

URL = "https://example.com/recipe/soup"


def _executor(handler, config, sleep):
    return StrategyExecutor(
        config.crawler,
        transport=httpx.MockTransport(handler),
        sleep=sleep,
        rng=random.Random(3),
    )


@pytest.mark.unit
class TestChallengeDetection:
    def test_markers(self, challenge_html):
        assert detect_challenge(challenge_html) == "just a moment..."
        assert detect_challenge("<div class='cf-browser-verification'></div>") == "cf-browser-verification"

    def test_only_page_head_is_scanned(self):
        assert detect_challenge("x" * 25_000 + "Access Denied") is None

    def test_clean_page(self, soda_bread_html):
        assert detect_challenge(soda_bread_html) is None


@pytest.mark.unit
class TestExecute:
    """Single-attempt classification."""

    @pytest.mark.asyncio
    async def test_success(self, executor, router, soda_bread_html):
        router.add(URL, html=soda_bread_html)
        result = await executor.execute(URL, STANDARD_STRATEGIES[0])
        assert isinstance(result, FetchSuccess)
        assert result.final_url == URL
        assert result.strategy == "standard"
        assert "Irish Soda Bread" in result.html

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status, expected",
        [(404, FetchNotFound), (403, FetchBlocked), (429, FetchBlocked), (500, FetchNetworkError)],
    )
    async def test_status_classification(self, executor, router, status, expected):
        router.add(URL, status=status)
        result = await executor.execute(URL, STANDARD_STRATEGIES[0])
        assert isinstance(result, expected)
        assert outcome_label(result) != "success"

    @pytest.mark.asyncio
    async def test_challenge_page_is_blocked(self, executor, router, challenge_html):
        router.add(URL, html=challenge_html)
        result = await executor.execute(URL, STANDARD_STRATEGIES[0])
        assert isinstance(result, FetchBlocked)
        assert result.status_code == 200
        assert "challenge" in result.reason

    @pytest.mark.asyncio
    async def test_timeout(self, test_config, sleep_recorder):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        executor = _executor(handler, test_config, sleep_recorder)
        result = await executor.execute(URL, STANDARD_STRATEGIES[0])
        await executor.aclose()
        assert isinstance(result, FetchTimeout)

    @pytest.mark.asyncio
    async def test_connection_error(self, test_config, sleep_recorder):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        executor = _executor(handler, test_config, sleep_recorder)
        result = await executor.execute(URL, STANDARD_STRATEGIES[0])
        await executor.aclose()
        assert isinstance(result, FetchNetworkError)
        assert "refused" in result.reason

    @pytest.mark.asyncio
    async def test_redirects_followed(self, executor, router, soda_bread_html):
        router.add_handler(URL, lambda r: httpx.Response(301, headers={"Location": "https://example.com/final"}))
        router.add("https://example.com/final", html=soda_bread_html)
        result = await executor.execute(URL, STANDARD_STRATEGIES[0])
        assert isinstance(result, FetchSuccess)
        assert result.final_url == "https://example.com/final"

    @pytest.mark.asyncio
    async def test_curl_does_not_follow_redirects(self, executor, router, soda_bread_html):
        router.add_handler(URL, lambda r: httpx.Response(302, headers={"Location": "https://example.com/final"}))
        router.add("https://example.com/final", html=soda_bread_html)
        curl = StrategyCatalog().get("curl")
        result = await executor.execute(URL, curl)
        assert isinstance(result, FetchNetworkError)
        assert router.hits("https://example.com/final") == 0

    @pytest.mark.asyncio
    async def test_delay_within_strategy_range(self, test_config, router, sleep_recorder):
        router.add(URL, html="<html></html>")
        executor = _executor(router, test_config, sleep_recorder)
        strategy = STANDARD_STRATEGIES[0]
        await executor.execute(URL, strategy)
        await executor.aclose()
        low, high = strategy.delay_range
        assert low / 1000 <= sleep_recorder.calls[0] <= high / 1000

    @pytest.mark.asyncio
    async def test_chrome_identity_refreshed(self, executor, router):
        router.add(URL, html="<html></html>")
        await executor.execute(URL, STANDARD_STRATEGIES[0])
        sent = router.requests[-1].headers["user-agent"]
        assert sent in executor.rotator.desktop_agents

    @pytest.mark.asyncio
    async def test_crawler_identity_kept(self, executor, router):
        router.add(URL, html="<html></html>")
        await executor.execute(URL, StrategyCatalog().get("googlebot"))
        assert "Googlebot" in router.requests[-1].headers["user-agent"]


@pytest.mark.unit
class TestExecuteSequential:
    """Ladder escalation semantics."""

    @pytest.mark.asyncio
    async def test_escalates_past_block(self, executor, router, soda_bread_html):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(403, text="Forbidden")
            return httpx.Response(200, text=soda_bread_html)

        router.add_handler(URL, handler)
        result = await executor.execute_sequential(URL, STANDARD_STRATEGIES[:3])
        assert isinstance(result, FetchSuccess)
        assert result.strategy == "mobile"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_not_found_stops_ladder(self, executor, router):
        router.add(URL, status=404)
        result = await executor.execute_sequential(URL, STANDARD_STRATEGIES)
        assert isinstance(result, FetchNotFound)
        assert router.hits(URL) == 1

    @pytest.mark.asyncio
    async def test_all_blocked_returns_last(self, executor, router):
        router.add(URL, status=429)
        result = await executor.execute_sequential(URL, STANDARD_STRATEGIES[:3])
        assert isinstance(result, FetchBlocked)
        assert result.strategy == "simple"
        assert router.hits(URL) == 3

    @pytest.mark.asyncio
    async def test_rejected_page_moves_on(self, executor, router):
        router.add(URL, html="<html><body>thin page</body></html>")
        seen = []

        async def accept(page):
            seen.append(page.strategy)
            return page.strategy == "simple"

        result = await executor.execute_sequential(URL, STANDARD_STRATEGIES[:4], accept)
        assert isinstance(result, FetchSuccess)
        assert result.strategy == "simple"
        assert seen == ["standard", "mobile", "simple"]

    @pytest.mark.asyncio
    async def test_every_page_rejected_returns_last_success(self, executor, router):
        router.add(URL, html="<html></html>")

        async def reject(page):
            return False

        result = await executor.execute_sequential(URL, STANDARD_STRATEGIES[:2], reject)
        assert isinstance(result, FetchSuccess)
        assert result.strategy == "mobile"

    @pytest.mark.asyncio
    async def test_empty_ladder(self, executor):
        result = await executor.execute_sequential(URL, [])
        assert isinstance(result, FetchNetworkError)


@pytest.mark.unit
class TestFetchListing:
    @pytest.mark.asyncio
    async def test_listing_sends_referer_without_delay(self, test_config, router, sleep_recorder):
        router.add("https://example.com/recipes/", html="<html></html>")
        executor = _executor(router, test_config, sleep_recorder)
        result = await executor.fetch_listing("https://example.com/recipes/", referer="https://example.com")
        await executor.aclose()
        assert isinstance(result, FetchSuccess)
        assert result.strategy == "discovery"
        assert router.requests[-1].headers["referer"] == "https://example.com"
        assert sleep_recorder.calls == []

    @pytest.mark.asyncio
    async def test_listing_waits_for_throttled_domain(self, test_config, router, sleep_recorder):
        clock = SteppingClock()
        throttle = _throttle(clock)
        listing = "https://www.allrecipes.com/recipes/"
        router.add(listing, html="<html></html>")
        executor = _executor(router, test_config, sleep_recorder)
        executor.throttle = throttle

        await executor.fetch_listing(listing)
        await executor.fetch_listing(listing)
        await executor.aclose()

        assert clock.slept == [5.0]
        assert throttle.get_domain_stats("allrecipes.com")["consecutive_successes"] == 2


@pytest.mark.unit
class TestCompressedResponses:
    @pytest.mark.asyncio
    async def test_brotli_body_is_decoded(self, executor, router, soda_bread_html):
        body = brotli.compress(soda_bread_html.encode("utf-8"))
        router.add_handler(
            URL,
            lambda request: httpx.Response(
                200,
                content=body,
                headers={"Content-Encoding": "br", "Content-Type": "text/html; charset=utf-8"},
            ),
        )

        result = await executor.execute(URL, STANDARD_STRATEGIES[0])

        assert "br" in router.requests[-1].headers["accept-encoding"]
        assert isinstance(result, FetchSuccess)
        assert "Irish Soda Bread" in result.html


class SteppingClock:
    """Monotonic clock that only advances when the throttle sleeps."""

    def __init__(self) -> None:
        self.now = 1000.0
        self.slept = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.slept.append(seconds)
        self.now += seconds


def _throttle(clock: SteppingClock) -> DomainThrottle:
    config = ThrottleConfig(default_interval_seconds=5.0, max_jitter_seconds=0.0)
    return DomainThrottle(config, ["allrecipes.com"], clock=clock, sleep=clock.sleep)


@pytest.mark.unit
class TestDomainPacing:
    """Every request to a protected host goes through the domain throttle."""

    PROTECTED_URL = "https://www.allrecipes.com/recipe/1/soda-bread/"

    @pytest.mark.asyncio
    async def test_each_ladder_attempt_is_spaced(self, router, sleep_recorder):
        clock = SteppingClock()
        throttle = _throttle(clock)
        request_times = []

        def blocked(request):
            request_times.append(clock.now)
            return httpx.Response(403)

        router.add_handler(self.PROTECTED_URL, blocked)
        config = CrawlerConfig(use_browser_automation=False, http2=False)
        executor = StrategyExecutor(
            config,
            transport=httpx.MockTransport(router),
            sleep=sleep_recorder,
            rng=random.Random(3),
            throttle=throttle,
        )
        ladder = StrategyCatalog(config).ladder_for("allrecipes.com")

        result = await executor.execute_sequential(self.PROTECTED_URL, ladder)
        await executor.aclose()

        assert isinstance(result, FetchBlocked)
        assert len(request_times) == len(ladder)
        gaps = [later - earlier for earlier, later in zip(request_times, request_times[1:])]
        assert min(gaps) >= 5.0
        stats = throttle.get_domain_stats("allrecipes.com")
        assert stats["blocked_responses"] == len(ladder)
        assert stats["interval_seconds"] == 30.0

    @pytest.mark.asyncio
    async def test_challenge_page_backs_off_domain(self, router, sleep_recorder, test_config, challenge_html):
        throttle = _throttle(SteppingClock())
        router.add(self.PROTECTED_URL, html=challenge_html)
        executor = _executor(router, test_config, sleep_recorder)
        executor.throttle = throttle

        result = await executor.execute(self.PROTECTED_URL, STANDARD_STRATEGIES[0])
        await executor.aclose()

        assert isinstance(result, FetchBlocked)
        assert result.status_code == 200
        stats = throttle.get_domain_stats("allrecipes.com")
        assert stats["blocked_responses"] == 1
        assert stats["interval_seconds"] == 7.5

    @pytest.mark.asyncio
    async def test_unprotected_domain_is_not_throttled(self, executor, router, soda_bread_html):
        clock = SteppingClock()
        executor.throttle = _throttle(clock)
        router.add(URL, html=soda_bread_html)

        await executor.execute(URL, STANDARD_STRATEGIES[0])
        await executor.execute(URL, STANDARD_STRATEGIES[0])

        assert clock.slept == []
        assert executor.throttle.get_domain_stats("example.com") == {"exists": False}
