"""
Shared fixtures for the recipe crawler test suite.

Provides deterministic configuration, an in-memory store, canned recipe
pages and an httpx mock transport so no test touches the network or sleeps.
"""

# Standard library imports
import asyncio
import json
import os
import random
from typing import AsyncGenerator, Callable, Dict, List

# Third-party imports
import httpx
import pytest
import pytest_asyncio
from tenacity import wait_none

# Local imports
from recipecrawler.config import Config
from recipecrawler.crawler import DomainThrottle, StrategyExecutor
from recipecrawler.orchestrator import CrawlOrchestrator
from recipecrawler.storage import InMemoryRecipeStore

# Keep a developer's config file or environment out of the tests.
for _key in [k for k in os.environ if k.startswith("RECIPE_CRAWLER_")]:
    del os.environ[_key]

# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests across modules")


@pytest_asyncio.fixture(autouse=True)
async def cleanup_tasks() -> AsyncGenerator[None, None]:
    """
    Cancel any asyncio task a test leaves behind so background crawl jobs
    and scheduler loops never leak into the next test.
    """
    tasks_before = asyncio.all_tasks()
    yield
    tasks_after = asyncio.all_tasks()
    new_tasks = tasks_after - tasks_before

    for task in new_tasks:
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                print(f"Unexpected error during task cleanup: {e}")


# ============================================================================
# Helpers
# ============================================================================


class SleepRecorder:
    """Stand-in for asyncio.sleep that records requested durations."""

    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def total(self) -> float:
        return sum(self.calls)


async def no_sleep(_seconds: float) -> None:
    return None


def recipe_page(
    title: str,
    ingredients: List[str],
    directions: List[str],
    extra_head: str = "",
) -> str:
    """A minimal page carrying a schema.org Recipe as JSON-LD."""
    node = {
        "@context": "https://schema.org",
        "@type": "Recipe",
        "name": title,
        "recipeIngredient": ingredients,
        "recipeInstructions": [{"@type": "HowToStep", "text": step} for step in directions],
    }
    return (
        "<!DOCTYPE html><html><head>"
        f"<title>{title}</title>{extra_head}"
        f'<script type="application/ld+json">{json.dumps(node)}</script>'
        f"</head><body><h1>{title}</h1></body></html>"
    )


class Router:
    """Maps URLs to canned responses for ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.routes: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, url: str, status: int = 200, html: str = "") -> None:
        self.routes[url] = lambda request: httpx.Response(status, text=html)

    def add_handler(self, url: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[url] = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(str(request.url))
        if handler is None:
            return httpx.Response(404, text="<html><body>Not here</body></html>")
        return handler(request)

    def hits(self, url: str) -> int:
        return sum(1 for request in self.requests if str(request.url) == url)


# ============================================================================
# Core Test Fixtures
# ============================================================================


@pytest.fixture
def test_config() -> Config:
    """Configuration tuned for fast, offline tests."""
    config = Config()
    config.crawler.use_browser_automation = False
    config.crawler.standard_ladder_size = 2
    config.crawler.inter_source_delay_ms = 0
    config.crawler.http2 = False
    config.throttle.max_jitter_seconds = 0.0
    config.orchestrator.batch_size = 4
    return config


@pytest.fixture
def make_recipe_page() -> Callable[..., str]:
    return recipe_page


@pytest.fixture
def store() -> InMemoryRecipeStore:
    return InMemoryRecipeStore()


@pytest.fixture
def router() -> Router:
    return Router()


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest_asyncio.fixture
async def executor(test_config: Config, router: Router) -> AsyncGenerator[StrategyExecutor, None]:
    executor = StrategyExecutor(
        test_config.crawler,
        transport=httpx.MockTransport(router),
        sleep=no_sleep,
        rng=random.Random(42),
    )
    yield executor
    await executor.aclose()


@pytest.fixture
def orchestrator(test_config: Config, store: InMemoryRecipeStore, executor: StrategyExecutor) -> CrawlOrchestrator:
    throttle = DomainThrottle(test_config.throttle, test_config.crawler.protected_domains, sleep=no_sleep)
    return CrawlOrchestrator(
        test_config,
        store,
        executor=executor,
        throttle=throttle,
        sleep=no_sleep,
        retry_wait=wait_none(),
    )


# ============================================================================
# Sample Pages
# ============================================================================


@pytest.fixture
def soda_bread_html() -> str:
    """JSON-LD recipe nested in an @graph, the way most recipe blogs publish it."""
    graph = {
        "@context": "https://schema.org",
        "@graph": [
            {"@type": "WebSite", "name": "Example Kitchen"},
            {
                "@type": "WebPage",
                "name": "Irish Soda Bread",
                "mainEntity": {
                    "@type": ["Recipe", "NewsArticle"],
                    "name": "Irish Soda Bread",
                    "image": [{"@type": "ImageObject", "url": "/images/soda-bread.jpg"}],
                    "prepTime": "PT15M",
                    "cookTime": "PT1H",
                    "totalTime": "PT1H15M",
                    "recipeYield": ["8", "8 slices"],
                    "recipeCategory": "Bread",
                    "recipeCuisine": "Irish",
                    "keywords": "bread, irish, quick",
                    "recipeIngredient": [
                        "4 cups all-purpose flour",
                        "1 teaspoon baking soda",
                        "1 teaspoon <b>salt</b>",
                        "1 3/4 cups buttermilk",
                    ],
                    "recipeInstructions": [
                        {
                            "@type": "HowToSection",
                            "name": "Dough",
                            "itemListElement": [
                                {"@type": "HowToStep", "text": "Preheat the oven to 425&deg;F."},
                                {"@type": "HowToStep", "text": "Whisk the flour, baking soda and salt."},
                            ],
                        },
                        {"@type": "HowToStep", "text": "Stir in the buttermilk and bake for 35 minutes."},
                    ],
                },
            },
        ],
    }
    return (
        "<!DOCTYPE html><html><head><title>Irish Soda Bread | Example Kitchen</title>"
        f'<script type="application/ld+json">{json.dumps(graph)}</script>'
        "</head><body><h1>Irish Soda Bread</h1><p>A classic loaf.</p></body></html>"
    )


@pytest.fixture
def microdata_html() -> str:
    return """
    <html><body>
      <div itemscope itemtype="https://schema.org/Recipe">
        <h1 itemprop="name">Lemon Garlic Chicken</h1>
        <img itemprop="image" src="/img/lemon-chicken.jpg" alt="Lemon chicken">
        <meta itemprop="prepTime" content="PT10M">
        <time itemprop="cookTime" datetime="PT25M">25 minutes</time>
        <span itemprop="recipeYield">4 servings</span>
        <ul>
          <li itemprop="recipeIngredient">4 chicken thighs</li>
          <li itemprop="recipeIngredient">2 cloves garlic</li>
          <li itemprop="recipeIngredient">1 lemon, juiced</li>
        </ul>
        <div itemprop="recipeInstructions">
          <ol>
            <li>Season the chicken with salt and pepper.</li>
            <li>Sear skin side down until golden.</li>
            <li>Add garlic and lemon and roast for 20 minutes.</li>
          </ol>
        </div>
      </div>
    </body></html>
    """


@pytest.fixture
def unstructured_html() -> str:
    """A recipe with no structured data at all."""
    return """
    <html><head><title>Banana Bread</title></head><body>
      <h1 class="recipe-title">Simple Banana Bread</h1>
      <p>Prep time: 15 minutes</p>
      <p>Serves: 8</p>
      <img src="/uploads/banana-bread-recipe.jpg" width="600" height="400" alt="banana bread recipe">
      <ul class="ingredients">
        <li>3 ripe bananas</li>
        <li>2 cups flour</li>
        <li>1 cup sugar</li>
        <li>1 large egg</li>
      </ul>
      <ol class="instructions">
        <li>Heat the oven to 350 degrees and grease a loaf pan.</li>
        <li>Mix the bananas, sugar and egg in a large bowl.</li>
        <li>Stir in the flour and bake for 60 minutes.</li>
      </ol>
    </body></html>
    """


@pytest.fixture
def collection_html() -> str:
    return """
    <html><head><title>15 Best Soup Recipes for Winter</title></head><body>
      <h1>15 Best Soup Recipes for Winter</h1>
      <div class="recipe-card"><a href="/recipe/tomato-soup">Creamy Tomato Soup</a></div>
      <div class="recipe-card"><a href="/recipe/lentil-soup">Lentil Soup</a></div>
      <div class="recipe-card"><a href="/recipe/tomato-soup">Creamy Tomato Soup (again)</a></div>
      <a href="https://www.pinterest.com/pin/recipe/123">Pin it</a>
      <a href="/category/recipe-soups">More soups</a>
      <a href="/about">About</a>
    </body></html>
    """


@pytest.fixture
def challenge_html() -> str:
    return "<html><head><title>Just a moment...</title></head><body>Checking your browser</body></html>"
