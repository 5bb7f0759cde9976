"""
Defines and manages Prometheus metrics for the crawler.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

from prometheus_client import REGISTRY as _PROM_REGISTRY
from prometheus_client import Counter as _OrigCounter
from prometheus_client import Gauge as _OrigGauge
from prometheus_client import Histogram as _OrigHistogram
from prometheus_client import start_http_server

if TYPE_CHECKING:
    from recipecrawler.config.config import MonitoringConfig

# ---------------------------------------------------------------------------
# Duplicate-safe Prometheus metric wrappers
# ---------------------------------------------------------------------------
# Defined before any metric creation so re-importing this module (tests reload
# it) reuses the registered collectors instead of raising on registration.


def _duplicate_safe_factory(metric_cls):
    """Return a factory that reuses an existing collector if already present."""

    def _factory(name: str, documentation: str, *args, **kwargs):  # type: ignore[override]
        existing = _PROM_REGISTRY._names_to_collectors.get(name)
        if existing is not None:
            return existing  # type: ignore[return-value]

        try:
            return metric_cls(name, documentation, *args, **kwargs)  # type: ignore[call-arg]
        except ValueError:
            # Registration lost the race, fall back to the now-existing collector.
            return _PROM_REGISTRY._names_to_collectors[name]  # type: ignore[return-value]

    return _factory


Counter = _duplicate_safe_factory(_OrigCounter)  # type: ignore[assignment]
Gauge = _duplicate_safe_factory(_OrigGauge)  # type: ignore[assignment]
Histogram = _duplicate_safe_factory(_OrigHistogram)  # type: ignore[assignment]


def _create_metrics() -> Dict[str, Any]:
    return {
        "fetch_attempts": Counter(
            "recipecrawler_fetch_attempts_total",
            "Fetch attempts by strategy and outcome",
            ["strategy", "outcome"],
        ),
        "fetch_latency_seconds": Histogram(
            "recipecrawler_fetch_latency_seconds",
            "Latency of a single strategy attempt",
            ["strategy"],
        ),
        "extraction_success": Counter(
            "recipecrawler_extraction_success_total",
            "Recipes accepted per extraction stage",
            ["stage"],
        ),
        "recipes_stored": Counter(
            "recipecrawler_recipes_stored_total",
            "Recipes written to storage",
        ),
        "url_failures": Counter(
            "recipecrawler_url_failures_total",
            "Per-URL failures by error kind",
            ["error_kind"],
        ),
        "jobs_running": Gauge(
            "recipecrawler_jobs_running",
            "Crawl jobs currently running",
        ),
        "batch_delay_ms": Gauge(
            "recipecrawler_batch_delay_milliseconds",
            "Current adaptive inter-batch delay",
        ),
    }


METRICS: Dict[str, Any] = _create_metrics()


def start_metrics_server(config: MonitoringConfig) -> bool:
    """Expose the registry over HTTP when metrics are enabled.

    Returns:
        True if the exporter was started.
    """
    if not config.metrics_enabled:
        return False
    start_http_server(config.metrics_port)
    return True
