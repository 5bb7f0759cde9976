"""
Tests for collection page detection and recipe link harvesting.
"""

import pytest

from recipecrawler.config import CollectionConfig
from recipecrawler.crawler import CollectionDetector, page_title

BASE = "https://example.com/soups/15-best-soups"


@pytest.fixture
def detector():
    return CollectionDetector(CollectionConfig(), max_links=50)


@pytest.mark.unit
class TestCollectionUrls:
    @pytest.mark.parametrize(
        "url",
        [
            "https://example.com/recipes/",
            "https://example.com/recipes",
            "https://example.com/category/soup",
            "https://example.com/collection/weeknight",
            "https://example.com/search?q=soup",
            "https://example.com/best-chili-recipes",
        ],
    )
    def test_listing_urls(self, detector, url):
        assert detector.is_collection_page(url)

    @pytest.mark.parametrize(
        "url",
        ["https://example.com/recipe/tomato-soup", "https://example.com/recipes/123/lentil-soup"],
    )
    def test_recipe_urls(self, detector, url):
        assert not detector.is_collection_page(url)


@pytest.mark.unit
class TestCollectionTitles:
    @pytest.mark.parametrize(
        "title",
        [
            "15 Best Soup Recipes for Winter",
            "The Ultimate Guide to Sourdough",
            "Recipes for a Crowd",
            "Our Holiday Cookie Roundup",
            "30 Weeknight Dinner Recipes",
        ],
    )
    def test_roundups(self, detector, title):
        assert detector.is_collection_title(title)

    @pytest.mark.parametrize("title", ["Irish Soda Bread", "Lemon Garlic Chicken", "", None])
    def test_single_recipes(self, detector, title):
        assert not detector.is_collection_title(title)

    def test_patterns_are_configurable(self):
        detector = CollectionDetector(CollectionConfig(title_patterns=[r"^menu:"]))
        assert detector.is_collection_title("Menu: Sunday Lunch")
        assert not detector.is_collection_title("15 Best Soup Recipes")


@pytest.mark.unit
class TestLinkHarvesting:
    def test_links_filtered_and_deduplicated(self, detector, collection_html):
        links = detector.extract_links_from_collection(collection_html, BASE)
        assert links == ["https://example.com/recipe/tomato-soup", "https://example.com/recipe/lentil-soup"]

    def test_cap(self, collection_html):
        detector = CollectionDetector(CollectionConfig(), max_links=1)
        assert len(detector.extract_links_from_collection(collection_html, BASE)) == 1

    def test_falls_through_to_later_selectors(self, detector):
        html = '<div class="post-title"><a href="/2024/05/summer-salad/">Summer Salad</a></div>'
        links = detector.extract_links_from_collection(html, BASE)
        assert links == ["https://example.com/2024/05/summer-salad/"]

    def test_page_linking_to_itself(self, detector):
        html = '<a href="/recipes/soups">Soups</a><a href="/recipe/pho">Pho</a>'
        links = detector.extract_links_from_collection(html, "https://example.com/recipes/soups")
        assert links == ["https://example.com/recipe/pho"]

    def test_no_links(self, detector):
        assert detector.extract_links_from_collection("<html><body>Nothing</body></html>", BASE) == []


@pytest.mark.unit
class TestPageTitle:
    def test_prefers_h1(self):
        assert page_title("<title>T</title><h1>Heading</h1>") == "Heading"

    def test_og_title(self):
        html = '<head><meta property="og:title" content="OG Title"><title>Doc</title></head><body></body>'
        assert page_title(html) == "OG Title"

    def test_document_title(self):
        assert page_title("<head><title>Doc</title></head>") == "Doc"

    def test_none(self):
        assert page_title("<p>text</p>") is None
