"""
Configuration package for the recipe crawler.
"""

from .config import (
    CacheConfig,
    CollectionConfig,
    Config,
    CrawlerConfig,
    ExtractionSettings,
    MonitoringConfig,
    OrchestratorConfig,
    RateLimiterConfig,
    SchedulerConfig,
    ThrottleConfig,
    load_config,
)

__all__ = [
    "CacheConfig",
    "CollectionConfig",
    "Config",
    "CrawlerConfig",
    "ExtractionSettings",
    "MonitoringConfig",
    "OrchestratorConfig",
    "RateLimiterConfig",
    "SchedulerConfig",
    "ThrottleConfig",
    "load_config",
]
