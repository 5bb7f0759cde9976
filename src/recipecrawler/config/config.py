"""
Configuration management for the recipe crawler using Pydantic.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Setup Logging ---
log = logging.getLogger(__name__)

KNOWN_STAGES = ("json_ld", "microdata", "pattern", "heuristic")

# --- Nested Configuration Models ---


class CrawlerConfig(BaseModel):
    """HTTP transport and strategy ladder configuration."""

    http2: bool = Field(default=True, description="Negotiate HTTP/2 where the server supports it.")
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates.")
    discovery_timeout_seconds: float = Field(default=15.0, description="Timeout for source listing pages.")
    protected_domains: List[str] = Field(
        default=["allrecipes.com", "foodnetwork.com"],
        description="Domains that get the full escalation ladder and per-domain throttling.",
    )
    standard_ladder_size: int = Field(default=5, ge=1, description="Standard strategies tried on ordinary domains.")
    use_browser_automation: bool = Field(default=True, description="Append the headless-browser tier to ladders.")
    browser_headless: bool = True
    inter_source_delay_ms: int = Field(default=1000, ge=0, description="Pause between source listing fetches.")


class RateLimiterConfig(BaseModel):
    """Adaptive inter-batch delay."""

    base_delay_ms: float = 1000.0
    min_delay_ms: float = 500.0
    max_delay_ms: float = 3000.0
    speedup_ratio: float = Field(default=0.8, description="Success ratio above which the delay shrinks.")
    slowdown_ratio: float = Field(default=0.5, description="Success ratio below which the delay grows.")
    speedup_factor: float = 0.7
    slowdown_factor: float = 1.5
    history_ceiling: int = Field(default=100, ge=2, description="Counters are halved once their sum exceeds this.")

    @model_validator(mode="after")
    def check_bounds(self) -> RateLimiterConfig:
        if not self.min_delay_ms <= self.base_delay_ms <= self.max_delay_ms:
            raise ValueError("rate limiter delays must satisfy min <= base <= max")
        if self.slowdown_ratio > self.speedup_ratio:
            raise ValueError("slowdown_ratio must not exceed speedup_ratio")
        return self


class ThrottleConfig(BaseModel):
    """Per-domain minimum request spacing."""

    default_interval_seconds: float = 8.0
    min_interval_seconds: float = 5.0
    max_interval_seconds: float = 30.0
    max_jitter_seconds: float = 3.0
    backoff_factor: float = 1.5
    speedup_factor: float = 0.9
    success_streak: int = Field(default=5, ge=1, description="Consecutive 200s needed before speeding up.")
    throttle_all_domains: bool = Field(default=False, description="Throttle every domain, not only protected ones.")


class CacheConfig(BaseModel):
    """Bounded URL cache sizing and cooldowns."""

    max_size: int = Field(default=10_000, ge=1)
    eviction_fraction: float = Field(default=0.2, gt=0.0, le=1.0)
    success_cooldown_ms: int = 2 * 60 * 60 * 1000
    failure_cooldown_ms: int = 15 * 60 * 1000
    success_retention_multiplier: int = 3
    failure_retention_multiplier: int = 4


class OrchestratorConfig(BaseModel):
    """Crawl job sizing."""

    max_concurrent_sources: int = Field(default=12, ge=1, description="Sources visited per discovery pass.")
    max_urls_per_source: int = Field(default=20, ge=1, description="Recipe URLs kept per source per pass.")
    discovery_candidates_per_source: int = Field(default=40, ge=1)
    batch_size: int = Field(default=16, ge=1, description="URLs processed concurrently per batch.")
    max_collection_links: int = Field(default=50, ge=0)
    job_history_limit: int = Field(default=50, ge=1, description="Finished jobs retained for status queries.")
    existence_check_batch_size: int = Field(default=10, ge=1)
    storage_retry_attempts: int = Field(default=3, ge=1)


class SchedulerConfig(BaseModel):
    """Recurring background crawl."""

    crawl_interval_ms: int = Field(default=5 * 60 * 1000, ge=1000)
    run_immediately: bool = Field(default=True, description="First job on start ignores time-of-day.")
    ignore_time_of_day: bool = Field(default=False, description="Scheduled jobs ignore time-of-day.")
    off_peak_start_hour: int = Field(default=22, ge=0, le=23)
    off_peak_end_hour: int = Field(default=7, ge=0, le=23)
    default_source_label: str = "popular"


class ExtractionSettings(BaseModel):
    """Configuration for the recipe extraction cascade."""

    cascade_order: List[str] = Field(
        default=list(KNOWN_STAGES),
        description="Order of extraction stages to try in cascade",
    )
    min_title_length: int = 1
    min_ingredients: int = 2
    min_directions: int = 1
    min_meaningful_ingredient_length: int = Field(
        default=3, description="Ingredients must be strictly longer than this after trimming."
    )
    non_meaningful_markers: List[str] = Field(default=["n/a", "tbd", "see description", "varies"])
    auto_tag: bool = True

    @field_validator("cascade_order")
    @classmethod
    def validate_cascade_order(cls, v: List[str]) -> List[str]:
        """Ensure cascade order is not empty."""
        if not v:
            raise ValueError("cascade_order must contain at least one extractor")
        return v


class CollectionConfig(BaseModel):
    """Pattern tables for roundup detection and link harvesting."""

    url_patterns: List[str] = Field(
        default=[
            "/collection/",
            "/category/",
            "/recipes-",
            "collections",
            "categories",
            "/search",
            "/tags",
            "/cuisine",
            "/diet",
            "/cold-soup-recipes",
            "/soup-recipes",
            "/vegetarian-recipes",
            "/brunch-recipes",
            "/meal-prep",
            "/best-",
            "/top-",
            "/-ideas",
            "-ideas/",
        ]
    )
    # Regexes matched against the lowercased URL path; "/recipes/" as the last segment is a listing.
    url_regexes: List[str] = Field(default=[r"/recipes/?$"])
    title_patterns: List[str] = Field(
        default=[
            r"\d+\s+(best|top|favorite|good)\s+.*(recipe|idea|way|thing)",
            r"best\s+.*(recipe|idea)s?\s*$",
            r"(recipe|idea)s?\s+(for|to)\s+",
            r"roundup",
            r"collection",
            r"guide\s+to",
            r"ways\s+to",
            r"things\s+to",
            r"ultimate.*guide",
            r"complete.*guide",
            r"meal\s+prep\s+ideas",
            r"^\d+.*recipes?$",
            r"^\d+.*best",
            r"^\d+.*top",
        ]
    )
    link_selectors: List[str] = Field(
        default=[
            'a[href*="recipe"]',
            'a[href*="/recipe/"]',
            'a[href*="/recipes/"]',
            ".recipe-card a",
            "a.recipe-link",
            ".recipe-title a",
            'h2 a[href*="recipe"]',
            'h3 a[href*="recipe"]',
            ".entry-title a",
            ".post-title a",
        ]
    )
    excluded_link_fragments: List[str] = Field(default=["/tag/", "/category/", "/author/", "/search", "#"])
    excluded_domains: List[str] = Field(
        default=["pinterest.com", "facebook.com", "instagram.com", "youtube.com", "twitter.com"]
    )
    recipe_link_patterns: List[str] = Field(default=[r"recipe", r"/\d{4}/\d{2}/", r"/food/", r"/cooking/"])


class MonitoringConfig(BaseModel):
    """Configuration for logging and metrics."""

    log_level: str = Field(default="INFO", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: str | None = Field(default=None, description="Path to log file. If None, logs to console.")
    metrics_enabled: bool = False
    metrics_port: int = Field(default=9090, description="Port for the Prometheus metrics exporter.")

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


# --- Main Configuration Class ---


class Config(BaseSettings):
    project_name: str = "recipecrawler"
    version: str = "0.1.0"
    crawler: CrawlerConfig = Field(default_factory=CrawlerConfig)
    rate_limiter: RateLimiterConfig = Field(default_factory=RateLimiterConfig)
    throttle: ThrottleConfig = Field(default_factory=ThrottleConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    collection: CollectionConfig = Field(default_factory=CollectionConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = SettingsConfigDict(env_prefix="RECIPE_CRAWLER_", env_nested_delimiter="__", case_sensitive=False)

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        log.debug("Loading configuration from YAML file: %s", path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found or is not a file: {path}")
        with open(path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
        if not yaml_data:
            log.warning("Configuration file is empty: %s. Using default settings.", path)
            return cls.model_validate({})
        return cls.model_validate(yaml_data or {})


def find_config_file() -> Path | None:
    current_dir = Path.cwd()
    paths_to_check = [
        current_dir / "config.yaml",
        current_dir / "config.yml",
    ]
    for path in paths_to_check:
        if path.exists():
            return path
    return None


def load_config(path: Optional[Path] = None) -> Config:
    """Load from an explicit path, else a discovered config file, else env/defaults."""
    config_path = path or find_config_file()
    if config_path:
        return Config.from_yaml(config_path)
    return Config()
