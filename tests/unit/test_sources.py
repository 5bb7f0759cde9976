"""
Tests for the discovery source catalog.
"""

import pytest

from recipecrawler.crawler import RECIPE_SOURCES, select_sources


@pytest.mark.unit
class TestSources:
    def test_catalog_shape(self):
        names = [s.name for s in RECIPE_SOURCES]
        assert len(names) == len(set(names))
        for source in RECIPE_SOURCES:
            assert source.listing_url.startswith("https://")
            assert source.link_selector

    def test_priority_order(self):
        selected = select_sources("popular", 5)
        assert len(selected) == 5
        priorities = [s.priority for s in selected]
        assert priorities == sorted(priorities)
        assert priorities[0] == 1

    def test_named_source(self):
        selected = select_sources("allrecipes", 12)
        assert [s.name for s in selected] == ["AllRecipes"]

    def test_limit_larger_than_catalog(self):
        assert len(select_sources("popular", 1000)) == len(RECIPE_SOURCES)
