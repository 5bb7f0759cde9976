"""
Service container wiring the crawler components together.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Dict, List, Optional
from uuid import uuid4

import httpx
import structlog

from recipecrawler.config import Config, load_config
from recipecrawler.crawler import (
    AdaptiveRateLimiter,
    BoundedUrlCache,
    CollectionDetector,
    DomainThrottle,
    StrategyCatalog,
    StrategyExecutor,
    UserAgentRotator,
)
from recipecrawler.extractor import ExtractionPipeline
from recipecrawler.orchestrator import CrawlJob, CrawlOrchestrator
from recipecrawler.protocols import RecipeStorage
from recipecrawler.scheduler import AutoCrawlScheduler
from recipecrawler.storage import InMemoryRecipeStore


class RecipeCrawlerService:
    """
    Owns one instance of every crawler component and their lifecycle.

    The URL cache, rate limiter and domain throttle are constructed once
    here and shared by reference with the orchestrator, so nothing relies on
    module-level state.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        *,
        config_path: Optional[Path] = None,
        storage: Optional[RecipeStorage] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config_path = config_path
        self.config: Config = config if config is not None else load_config(config_path)
        self.storage: RecipeStorage = storage if storage is not None else InMemoryRecipeStore()
        self.logger = structlog.get_logger(self.__class__.__name__)
        self.service_id = str(uuid4())
        self.is_running = False
        self._shutdown_handlers: List[Callable[[], Any]] = []

        cfg = self.config
        self.throttle = DomainThrottle(cfg.throttle, cfg.crawler.protected_domains)
        self.executor = StrategyExecutor(
            cfg.crawler, rotator=UserAgentRotator(), transport=transport, throttle=self.throttle
        )
        self.pipeline = ExtractionPipeline(cfg.extraction)
        self.cache = BoundedUrlCache(cfg.cache)
        self.limiter = AdaptiveRateLimiter(cfg.rate_limiter)
        self.orchestrator = CrawlOrchestrator(
            cfg,
            self.storage,
            executor=self.executor,
            pipeline=self.pipeline,
            catalog=StrategyCatalog(cfg.crawler),
            cache=self.cache,
            limiter=self.limiter,
            throttle=self.throttle,
            detector=CollectionDetector(cfg.collection, max_links=cfg.orchestrator.max_collection_links),
        )
        self.scheduler = AutoCrawlScheduler(self.orchestrator, cfg.scheduler)

    async def __aenter__(self) -> RecipeCrawlerService:
        self.is_running = True
        self.logger.info("Recipe crawler service started", service_id=self.service_id)
        return self

    async def __aexit__(self, exc_type: Optional[type], exc_val: Optional[BaseException], exc_tb: Optional[object]) -> None:
        await self.shutdown()

    @asynccontextmanager
    async def lifecycle(self) -> AsyncIterator[RecipeCrawlerService]:
        async with self as service:
            yield service

    # --- exposed operations ---

    async def start_crawling(self, source_label: str = "popular") -> str:
        return await self.orchestrator.start_crawling(source_label)

    def get_crawl_status(self, job_id: str) -> Optional[CrawlJob]:
        return self.orchestrator.get_crawl_status(job_id)

    def get_all_crawl_jobs(self) -> List[CrawlJob]:
        return self.orchestrator.get_all_crawl_jobs()

    def clear_url_cache(self) -> None:
        self.orchestrator.clear_url_cache()

    async def start_auto_crawling(self) -> Optional[str]:
        return await self.scheduler.start()

    async def stop_auto_crawling(self) -> None:
        await self.scheduler.stop()

    def is_auto_crawl_running(self) -> bool:
        return self.scheduler.is_running()

    # --- lifecycle ---

    def add_shutdown_handler(self, handler: Callable[[], Any]) -> None:
        self._shutdown_handlers.append(handler)

    async def shutdown(self) -> None:
        """Stop scheduling, cancel running jobs and release network resources."""
        if not self.is_running:
            return
        self.logger.info("Shutting down recipe crawler service", service_id=self.service_id)

        for handler in self._shutdown_handlers:
            try:
                if asyncio.iscoroutinefunction(handler):
                    await handler()
                else:
                    handler()
            except Exception as e:
                self.logger.error("Error in shutdown handler", error=str(e))

        await self.scheduler.stop()
        await self.orchestrator.shutdown()
        await self.executor.aclose()

        self.is_running = False
        self.logger.info("Recipe crawler service shutdown complete")

    def get_health_status(self) -> Dict[str, Any]:
        jobs = self.orchestrator.get_all_crawl_jobs()
        return {
            "service_id": self.service_id,
            "is_running": self.is_running,
            "auto_crawl_running": self.is_auto_crawl_running(),
            "jobs": len(jobs),
            "running_jobs": sum(1 for j in jobs if not j.is_finished),
            "url_cache_entries": len(self.cache),
            "batch_delay_ms": self.limiter.get_delay(),
            "config_path": str(self.config_path) if self.config_path else None,
        }
