"""
Integration tests for the cascading extraction pipeline.
"""

import json

import pytest

from recipecrawler.config import ExtractionSettings
from recipecrawler.extractor import ExtractedRecipe, ExtractionFailure, ExtractionPipeline
from recipecrawler.extractor.pipeline import default_stages
from recipecrawler.protocols import ErrorKind


def _jsonld_page(node: dict, body: str = "") -> str:
    return (
        f'<html><head><script type="application/ld+json">{json.dumps(node)}</script></head>'
        f"<body>{body}</body></html>"
    )


@pytest.mark.integration
class TestExtractionPipeline:
    def test_structured_data_short_circuits_cascade(self, soda_bread_html):
        pipeline = ExtractionPipeline(ExtractionSettings())
        outcome = pipeline.extract_sync(soda_bread_html, "https://example.com/soda-bread")

        assert isinstance(outcome, ExtractedRecipe)
        assert outcome.stage == "json_ld"
        assert outcome.title == "Irish Soda Bread"
        assert outcome.source == "https://example.com/soda-bread"
        # Sanitized on the way out.
        assert "1 teaspoon salt" in outcome.ingredients
        assert outcome.directions[0] == "Preheat the oven to 425°F."

        metrics = pipeline.get_metrics()
        assert metrics["json_ld"]["successes"] == 1
        assert metrics["microdata"]["attempts"] == 0
        assert metrics["pattern"]["attempts"] == 0
        assert metrics["heuristic"]["attempts"] == 0

    def test_auto_tags_fill_missing_fields(self, soda_bread_html):
        outcome = ExtractionPipeline().extract_sync(soda_bread_html, "https://example.com/soda-bread")
        # Fields present in the markup win over keyword tagging.
        assert outcome.category == "Bread"
        assert outcome.cuisine == "Irish"
        assert outcome.difficulty in {"easy", "medium", "hard"}
        assert "quick" in outcome.tags

    def test_auto_tag_can_be_disabled(self, unstructured_html):
        outcome = ExtractionPipeline(ExtractionSettings(auto_tag=False)).extract_sync(
            unstructured_html, "https://example.com/banana"
        )
        assert outcome.difficulty is None
        assert outcome.dietary_restrictions == []

    def test_falls_through_to_microdata(self, microdata_html):
        outcome = ExtractionPipeline().extract_sync(microdata_html, "https://example.com/chicken")
        assert isinstance(outcome, ExtractedRecipe)
        assert outcome.stage == "microdata"

    def test_falls_through_to_pattern(self, unstructured_html):
        outcome = ExtractionPipeline().extract_sync(unstructured_html, "https://example.com/banana")
        assert isinstance(outcome, ExtractedRecipe)
        assert outcome.stage == "pattern"
        assert outcome.title == "Simple Banana Bread"

    def test_placeholder_ingredients_make_recipe_invalid(self):
        page = _jsonld_page(
            {
                "@type": "Recipe",
                "name": "Mystery Dish",
                "recipeIngredient": ["n/a", "5"],
                "recipeInstructions": ["Cook it."],
            },
            body="<h1>Mystery Dish</h1>",
        )
        outcome = ExtractionPipeline().extract_sync(page, "https://example.com/mystery")

        assert isinstance(outcome, ExtractionFailure)
        assert outcome.error_kind is ErrorKind.INVALID_RECIPE
        assert outcome.candidate_title == "Mystery Dish"

    def test_invalid_structured_data_falls_through_to_valid_stage(self, unstructured_html):
        node = {"@type": "Recipe", "name": "Broken", "recipeIngredient": [], "recipeInstructions": []}
        page = unstructured_html.replace("</head>", f'<script type="application/ld+json">{json.dumps(node)}</script></head>')
        outcome = ExtractionPipeline().extract_sync(page, "https://example.com/banana")
        assert isinstance(outcome, ExtractedRecipe)
        assert outcome.stage == "pattern"

    def test_non_recipe_page(self):
        page = "<html><body><h1>About us</h1><p>We are a small company.</p></body></html>"
        outcome = ExtractionPipeline().extract_sync(page, "https://example.com/about")
        assert isinstance(outcome, ExtractionFailure)
        assert outcome.error_kind is ErrorKind.EXTRACTION_FAILURE
        assert outcome.stages_tried == ("json_ld", "microdata", "pattern", "heuristic")

    def test_empty_document(self):
        outcome = ExtractionPipeline().extract_sync("   ", "https://example.com/empty")
        assert isinstance(outcome, ExtractionFailure)
        assert outcome.reason == "empty document"

    def test_custom_cascade_order(self, soda_bread_html):
        pipeline = ExtractionPipeline(ExtractionSettings(cascade_order=["heuristic", "json_ld"]))
        outcome = pipeline.extract_sync(soda_bread_html, "https://example.com/soda-bread")
        assert isinstance(outcome, ExtractedRecipe)
        assert outcome.stage == "json_ld"
        assert pipeline.get_metrics()["heuristic"]["attempts"] == 1

    def test_failing_stage_is_skipped(self, soda_bread_html):
        class Exploding:
            name = "exploding"

            def extract(self, soup, *, url):
                raise RuntimeError("bad selector")

        stages = {"exploding": Exploding(), **default_stages()}
        settings = ExtractionSettings(cascade_order=["exploding", "json_ld"])
        outcome = ExtractionPipeline(settings, stages).extract_sync(soda_bread_html, "https://example.com/soda")
        assert isinstance(outcome, ExtractedRecipe)

    @pytest.mark.asyncio
    async def test_async_extract(self, soda_bread_html):
        outcome = await ExtractionPipeline().extract(soda_bread_html, "https://example.com/soda-bread")
        assert isinstance(outcome, ExtractedRecipe)
