"""
Integration tests for the service container lifecycle.
"""

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from recipecrawler.container import RecipeCrawlerService
from recipecrawler.orchestrator import JobStatus

RECIPE_URL = "https://kitchen.example.com/recipes/oat-cookies"


@pytest.fixture
def service(test_config, router, make_recipe_page):
    router.add(RECIPE_URL, html=make_recipe_page("Oat Cookies", ["2 cups oats", "1 cup butter"], ["Bake."]))
    service = RecipeCrawlerService(test_config, transport=httpx.MockTransport(router))
    service.orchestrator.discover_urls = AsyncMock(return_value=[RECIPE_URL])
    return service


@pytest.mark.integration
class TestServiceLifecycle:
    @pytest.mark.asyncio
    async def test_context_manager_runs_and_shuts_down(self, service):
        async with service.lifecycle() as running:
            assert running is service
            assert service.is_running

        assert not service.is_running

    @pytest.mark.asyncio
    async def test_health_status_reports_components(self, service):
        async with service:
            health = service.get_health_status()

        assert health["is_running"] is True
        assert health["auto_crawl_running"] is False
        assert health["jobs"] == 0
        assert health["running_jobs"] == 0
        assert health["url_cache_entries"] == 0
        assert health["batch_delay_ms"] == service.config.rate_limiter.base_delay_ms
        assert health["config_path"] is None
        assert health["service_id"] == service.service_id

    @pytest.mark.asyncio
    async def test_crawl_through_service_stores_recipe(self, service):
        async with service:
            job_id = await service.start_crawling("popular")
            await service.orchestrator.wait_for_job(job_id)
            job = service.get_crawl_status(job_id)

            assert job.status is JobStatus.COMPLETED
            assert job.succeeded == 1
            assert [j.id for j in service.get_all_crawl_jobs()] == [job_id]
            assert await service.storage.get_recipe_by_source(RECIPE_URL) is not None
            assert len(service.cache) == 1

            service.clear_url_cache()
            assert len(service.cache) == 0

    @pytest.mark.asyncio
    async def test_shutdown_runs_sync_and_async_handlers(self, service):
        sync_handler = MagicMock()
        async_calls = []

        async def async_handler():
            async_calls.append("closed")

        service.add_shutdown_handler(sync_handler)
        service.add_shutdown_handler(async_handler)

        async with service:
            pass

        sync_handler.assert_called_once()
        assert async_calls == ["closed"]

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_block_shutdown(self, service):
        later = MagicMock()
        service.add_shutdown_handler(MagicMock(side_effect=RuntimeError("boom")))
        service.add_shutdown_handler(later)

        async with service:
            pass

        later.assert_called_once()
        assert not service.is_running

    @pytest.mark.asyncio
    async def test_shutdown_is_idempotent(self, service):
        handler = MagicMock()
        service.add_shutdown_handler(handler)

        async with service:
            pass
        await service.shutdown()

        handler.assert_called_once()


@pytest.mark.integration
class TestAutoCrawl:
    @pytest.mark.asyncio
    async def test_start_and_stop_auto_crawl(self, service):
        async with service:
            job_id = await service.start_auto_crawling()

            assert job_id is not None
            assert service.is_auto_crawl_running()
            assert service.get_health_status()["auto_crawl_running"] is True

            await service.orchestrator.wait_for_job(job_id)
            await service.stop_auto_crawling()

            assert not service.is_auto_crawl_running()
            assert service.get_crawl_status(job_id).status is JobStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_shutdown_stops_auto_crawl(self, service):
        service.config.scheduler.run_immediately = False
        service.config.scheduler.ignore_time_of_day = False
        service.scheduler._now = lambda: datetime(2024, 1, 1, 12, 0)

        async with service:
            job_id = await service.start_auto_crawling()
            assert job_id is None
            assert service.is_auto_crawl_running()

        assert not service.is_auto_crawl_running()
        assert service.get_all_crawl_jobs() == []
