"""
recipecrawler - adaptive recipe acquisition crawler.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .config import Config
from .container import RecipeCrawlerService
from .orchestrator import CrawlJob, CrawlOrchestrator, JobStatus

__all__ = ["__version__", "Config", "CrawlJob", "CrawlOrchestrator", "JobStatus", "RecipeCrawlerService"]
