"""
Crawl job orchestration.

A job discovers candidate URLs from the prioritized sources, drops the ones
already stored, then pushes the rest through fetch, extraction and storage
in fixed-size concurrent batches. Per-URL failures are recorded and never
abort the job.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Union
from urllib.parse import urljoin, urlparse
from uuid import uuid4

import structlog
from selectolax.parser import HTMLParser
from structlog.contextvars import bind_contextvars, bound_contextvars, unbind_contextvars
from tenacity.wait import wait_base

from .config.config import Config
from .crawler.collection import CollectionDetector, page_title
from .crawler.executor import StrategyExecutor
from .crawler.rate_limiter import AdaptiveRateLimiter, DomainThrottle
from .crawler.results import FetchResult, FetchSuccess, describe, error_kind_of
from .crawler.sources import RecipeSource, select_sources
from .crawler.strategies import StrategyCatalog, domain_of
from .crawler.url_cache import BoundedUrlCache
from .extractor.models import ExtractedRecipe, ExtractionFailure
from .extractor.pipeline import ExtractionPipeline
from .observability.metrics import METRICS
from .protocols import ErrorKind, RecipeStorage, StorageError, UrlOutcome
from .storage.lookup import batch_check_existing, call_with_retry, find_existing_recipe

logger = structlog.get_logger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


class JobStatus(Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class CrawlJob:
    """Progress record of one crawl run."""

    source_label: str
    id: str = field(default_factory=lambda: str(uuid4()))
    urls: List[str] = field(default_factory=list)
    processed: int = 0
    total: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: JobStatus = JobStatus.RUNNING
    finished_at: Optional[datetime] = None
    succeeded: int = 0
    failed: int = 0
    collections: int = 0
    error: Optional[str] = None
    seen: Set[str] = field(default_factory=set, repr=False)

    @property
    def is_finished(self) -> bool:
        return self.status is not JobStatus.RUNNING

    def add_urls(self, urls: List[str]) -> List[str]:
        """Append URLs not seen before in this job; returns the ones added."""
        added = [u for u in dict.fromkeys(urls) if u not in self.seen]
        self.seen.update(added)
        self.urls.extend(added)
        self.total = len(self.urls)
        return added

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source_label": self.source_label,
            "status": self.status.value,
            "processed": self.processed,
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "collections": self.collections,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "error": self.error,
        }


@dataclass
class PageVerdict:
    """Fetch result for a URL and what extraction made of the last page fetched."""

    result: Optional[FetchResult] = None
    outcome: Optional[Union[ExtractedRecipe, ExtractionFailure]] = None
    is_collection: bool = False


class CrawlOrchestrator:
    """
    Drives crawl jobs end to end.

    Features:
    - Prioritized source discovery with cooldown and collection filtering
    - Batch existence check against storage before crawling
    - Bounded batch concurrency with staggered starts
    - Adaptive inter-batch delay and per-domain throttling
    - Collection pages fanned out into the running job
    - Capped job history
    """

    def __init__(
        self,
        config: Config,
        storage: RecipeStorage,
        *,
        executor: Optional[StrategyExecutor] = None,
        pipeline: Optional[ExtractionPipeline] = None,
        catalog: Optional[StrategyCatalog] = None,
        cache: Optional[BoundedUrlCache] = None,
        limiter: Optional[AdaptiveRateLimiter] = None,
        throttle: Optional[DomainThrottle] = None,
        detector: Optional[CollectionDetector] = None,
        sleep: SleepFunc = asyncio.sleep,
        retry_wait: Optional[wait_base] = None,
    ) -> None:
        self.config = config
        self.storage = storage
        self.executor = executor or StrategyExecutor(config.crawler)
        self.pipeline = pipeline or ExtractionPipeline(config.extraction)
        self.catalog = catalog or StrategyCatalog(config.crawler)
        self.cache = cache or BoundedUrlCache(config.cache)
        self.limiter = limiter or AdaptiveRateLimiter(config.rate_limiter)
        self.throttle = throttle or self.executor.throttle or DomainThrottle(
            config.throttle, config.crawler.protected_domains
        )
        # Every request the executor issues, listing pages included, is paced here.
        self.executor.throttle = self.throttle
        self.detector = detector or CollectionDetector(
            config.collection, max_links=config.orchestrator.max_collection_links
        )
        self._sleep = sleep
        self._retry_wait = retry_wait

        self._jobs: Dict[str, CrawlJob] = {}
        self._tasks: Dict[str, asyncio.Task[None]] = {}
        self.logger = logger.bind(component="CrawlOrchestrator")

    # ------------------------------------------------------------------
    # Public surface
    # ------------------------------------------------------------------

    async def start_crawling(self, source_label: str = "popular") -> str:
        """Create a job and run it in the background. Returns the job id."""
        job = CrawlJob(source_label=source_label)
        self._jobs[job.id] = job
        self._trim_history()

        task = asyncio.create_task(self._run_job(job), name=f"crawl-job-{job.id}")
        self._tasks[job.id] = task
        task.add_done_callback(lambda _t, job_id=job.id: self._tasks.pop(job_id, None))

        self.logger.info("Crawl job started", job_id=job.id, source_label=source_label)
        return job.id

    def get_crawl_status(self, job_id: str) -> Optional[CrawlJob]:
        return self._jobs.get(job_id)

    def get_all_crawl_jobs(self) -> List[CrawlJob]:
        return list(self._jobs.values())

    def clear_url_cache(self) -> None:
        size = len(self.cache)
        self.cache.clear()
        self.logger.info("URL cache cleared", entries=size)

    def has_running_job(self) -> bool:
        return any(job.status is JobStatus.RUNNING for job in self._jobs.values())

    async def wait_for_job(self, job_id: str) -> Optional[CrawlJob]:
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.shield(task)
        return self._jobs.get(job_id)

    async def shutdown(self) -> None:
        """Cancel in-flight jobs; they are marked failed."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Job driver
    # ------------------------------------------------------------------

    def _trim_history(self) -> None:
        limit = self.config.orchestrator.job_history_limit
        excess = len(self._jobs) - limit
        if excess <= 0:
            return
        finished = sorted((j for j in self._jobs.values() if j.is_finished), key=lambda j: j.started_at)
        for job in finished[:excess]:
            del self._jobs[job.id]

    async def _run_job(self, job: CrawlJob) -> None:
        bind_contextvars(job_id=job.id)
        METRICS["jobs_running"].inc()
        start_time = time.perf_counter()
        try:
            urls = await self.discover_urls(job.source_label)
            job.add_urls(urls)
            self.logger.info("Discovery finished", job_id=job.id, urls=job.total)
            await self._process_job(job)
            job.status = JobStatus.COMPLETED
        except asyncio.CancelledError:
            job.status = JobStatus.FAILED
            job.error = "cancelled"
            raise
        except Exception as e:
            job.status = JobStatus.FAILED
            job.error = str(e)
            self.logger.error("Crawl job failed", job_id=job.id, error=str(e), exc_info=True)
        finally:
            job.finished_at = datetime.now(timezone.utc)
            METRICS["jobs_running"].dec()
            self.logger.info(
                "Crawl job finished",
                job_id=job.id,
                status=job.status.value,
                processed=job.processed,
                total=job.total,
                succeeded=job.succeeded,
                failed=job.failed,
                duration_seconds=round(time.perf_counter() - start_time, 2),
            )
            unbind_contextvars("job_id")
            self._trim_history()

    async def _process_job(self, job: CrawlJob) -> None:
        batch_size = self.config.orchestrator.batch_size
        index = 0
        while index < len(job.urls):
            batch = job.urls[index : index + batch_size]
            stagger_ms = self.limiter.get_delay() / batch_size

            results = await asyncio.gather(
                *(self._process_with_delay(url, i * stagger_ms) for i, url in enumerate(batch)),
                return_exceptions=True,
            )
            for url, result in zip(batch, results):
                self._apply_result(job, url, result)

            index += len(batch)
            job.processed = index

            if index < len(job.urls):
                await self._sleep(self.limiter.get_delay() / 1000.0)

    def _apply_result(self, job: CrawlJob, url: str, result: Union[UrlOutcome, BaseException]) -> None:
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            job.failed += 1
            self.logger.error("Unexpected error processing URL", url=url, error=str(result), exc_info=result)
            return

        if not result.success:
            job.failed += 1
            return

        job.succeeded += 1
        if result.is_collection:
            job.collections += 1
            added = job.add_urls(result.collection_links)
            if added:
                self.logger.info("Collection links queued", url=url, added=len(added), total=job.total)

    async def _process_with_delay(self, url: str, delay_ms: float) -> UrlOutcome:
        if delay_ms > 0:
            await self._sleep(delay_ms / 1000.0)
        return await self.scrape_and_store(url)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    async def discover_urls(self, source_label: str) -> List[str]:
        """Candidate recipe URLs for a job, minus those already stored or crawled."""
        cfg = self.config.orchestrator
        sources = select_sources(source_label, cfg.max_concurrent_sources)
        urls: List[str] = []

        for i, source in enumerate(sources):
            found = await self.discover_from_source(source)
            urls.extend(found[: cfg.max_urls_per_source])
            if i < len(sources) - 1 and self.config.crawler.inter_source_delay_ms:
                await self._sleep(self.config.crawler.inter_source_delay_ms / 1000.0)

        unique = list(dict.fromkeys(urls))
        existing = await batch_check_existing(
            self.storage,
            unique,
            cfg.existence_check_batch_size,
            wait=self._retry_wait,
        )
        if existing:
            self.logger.info("Skipping stored or crawled URLs", count=len(existing))
        return [u for u in unique if u not in existing]

    async def discover_from_source(self, source: RecipeSource) -> List[str]:
        result = await self.executor.fetch_listing(source.listing_url, referer=source.base_url)
        if not isinstance(result, FetchSuccess):
            self.logger.warning("Source discovery failed", source=source.name, outcome=describe(result))
            return []

        urls: List[str] = []
        tree = HTMLParser(result.html)
        for node in tree.css(source.link_selector):
            href = (node.attributes.get("href") or "").strip()
            if not href:
                continue
            full_url = urljoin(source.base_url + "/", href)
            if urlparse(full_url).scheme not in ("http", "https"):
                continue
            if self.cache.should_skip(full_url) or self.detector.is_collection_page(full_url):
                continue
            urls.append(full_url)

        candidates = list(dict.fromkeys(urls))[: self.config.orchestrator.discovery_candidates_per_source]
        self.logger.debug("Source discovered", source=source.name, candidates=len(candidates))
        return candidates

    # ------------------------------------------------------------------
    # Per-URL processing
    # ------------------------------------------------------------------

    async def fetch_and_extract(self, url: str) -> PageVerdict:
        """
        Climb the domain's ladder until a fetched page extracts cleanly.

        A page whose headline reads like a roundup is accepted too, so the
        ladder stops there and the caller can harvest its links.
        """
        domain = domain_of(url)
        verdict = PageVerdict()

        async def accept(page: FetchSuccess) -> bool:
            outcome = await self.pipeline.extract(page.html, url)
            verdict.outcome = outcome
            if isinstance(outcome, ExtractedRecipe):
                verdict.is_collection = self.detector.is_collection_title(outcome.title)
                return True
            title = outcome.candidate_title or page_title(page.html)
            verdict.is_collection = self.detector.is_collection_title(title)
            return verdict.is_collection

        verdict.result = await self.executor.execute_sequential(url, self.catalog.ladder_for(domain), accept)
        return verdict

    async def scrape_and_store(self, url: str) -> UrlOutcome:
        """
        Fetch, extract and store one URL.

        Never raises for fetch, extraction or storage failures; those come
        back as an unsuccessful :class:`UrlOutcome` and are recorded in the
        cache, the limiter and the storage ledger.
        """
        with bound_contextvars(url=url):
            return await self._scrape_and_store(url)

    async def _scrape_and_store(self, url: str) -> UrlOutcome:
        domain = domain_of(url)
        attempts = self.config.orchestrator.storage_retry_attempts

        try:
            existing = await find_existing_recipe(self.storage, url, attempts=attempts, wait=self._retry_wait)
        except StorageError as e:
            return await self._fail(url, domain, ErrorKind.STORAGE_ERROR, str(e))
        if existing is not None:
            self.cache.set(url, True)
            self.logger.debug("Recipe already stored", url=url, recipe_id=existing.id)
            return UrlOutcome(url=url, success=True, recipe_id=existing.id, reason="already stored")

        verdict = await self.fetch_and_extract(url)
        result = verdict.result

        if not isinstance(result, FetchSuccess):
            kind = error_kind_of(result) or ErrorKind.NETWORK_ERROR
            return await self._fail(url, domain, kind, describe(result))

        if verdict.is_collection:
            links = self.detector.extract_links_from_collection(result.html, result.final_url)
            self.logger.info("Collection page found", url=url, links=len(links))
            await self._succeed(url, domain, None)
            return UrlOutcome(url=url, success=True, reason="collection page", collection_links=links)

        outcome = verdict.outcome
        if not isinstance(outcome, ExtractedRecipe):
            failure = outcome if isinstance(outcome, ExtractionFailure) else ExtractionFailure("page not extracted")
            return await self._fail(url, domain, failure.error_kind, failure.reason)

        try:
            stored = await call_with_retry(self.storage.create_recipe, outcome, attempts=attempts, wait=self._retry_wait)
        except StorageError as e:
            return await self._fail(url, domain, ErrorKind.STORAGE_ERROR, str(e))

        METRICS["recipes_stored"].inc()
        await self._succeed(url, domain, stored.id)
        self.logger.info("Recipe stored", url=url, title=stored.title, recipe_id=stored.id, stage=outcome.stage)
        return UrlOutcome(url=url, success=True, recipe_id=stored.id)

    async def _succeed(self, url: str, domain: str, recipe_id: Optional[str]) -> None:
        self.cache.set(url, True)
        self.limiter.record_success()
        await self._mark_crawled(url, domain, True, recipe_id=recipe_id)

    async def _fail(self, url: str, domain: str, kind: ErrorKind, reason: str) -> UrlOutcome:
        self.cache.set(url, False)
        self.limiter.record_failure()
        METRICS["url_failures"].labels(error_kind=kind.value).inc()
        log = self.logger.warning if kind in (ErrorKind.BLOCKED, ErrorKind.STORAGE_ERROR) else self.logger.info
        log("URL failed", url=url, error_kind=kind.value, reason=reason)
        await self._mark_crawled(url, domain, False, error_message=reason)
        return UrlOutcome(url=url, success=False, error_kind=kind, reason=reason)

    async def _mark_crawled(
        self,
        url: str,
        domain: str,
        success: bool,
        recipe_id: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> None:
        try:
            await call_with_retry(
                self.storage.mark_url_crawled,
                url,
                domain,
                success,
                recipe_id,
                error_message,
                attempts=self.config.orchestrator.storage_retry_attempts,
                wait=self._retry_wait,
            )
        except StorageError as e:
            self.logger.warning("Could not record crawl outcome", url=url, error=str(e))
