"""
Logging and metrics for the recipe crawler.
"""

from .logging import configure_logging
from .metrics import METRICS, start_metrics_server

__all__ = ["METRICS", "configure_logging", "start_metrics_server"]
