#!/usr/bin/env python3
"""
Production entry point for the recipe crawler.

Runs the auto-crawl service until SIGTERM/SIGINT, logging a health snapshot
periodically. ``python main.py health`` prints the health status and exits.
"""

from __future__ import annotations

import asyncio
import json
import os
import signal
import sys
from pathlib import Path

import structlog

from recipecrawler.config import load_config
from recipecrawler.container import RecipeCrawlerService
from recipecrawler.observability import configure_logging, start_metrics_server

logger = structlog.get_logger(__name__)

HEALTH_LOG_INTERVAL_SECONDS = 60


def _config_path() -> Path | None:
    config_path = os.getenv("RECIPE_CRAWLER_CONFIG")
    return Path(config_path) if config_path else None


async def health_check() -> dict:
    """Perform health check for container orchestration."""
    try:
        service = RecipeCrawlerService(config_path=_config_path())
        return {
            "status": "healthy",
            "timestamp": asyncio.get_running_loop().time(),
            **service.get_health_status(),
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e),
            "timestamp": asyncio.get_running_loop().time(),
        }


async def run_production_service() -> None:
    """Run auto-crawling until a shutdown signal arrives."""
    config = load_config(_config_path())
    configure_logging(config.monitoring)
    start_metrics_server(config.monitoring)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, stop_event.set)

    try:
        async with RecipeCrawlerService(config) as service:
            logger.info("Recipe crawler production service starting")
            await service.start_auto_crawling()

            while not stop_event.is_set():
                logger.info("Health check", **service.get_health_status())
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=HEALTH_LOG_INTERVAL_SECONDS)
                except asyncio.TimeoutError:
                    continue
            logger.info("Shutdown signal received")
    except Exception as e:
        logger.error("Production service failed", error=str(e))
        raise
    finally:
        logger.info("Recipe crawler production service stopped")


async def main() -> None:
    """Main entry point."""
    if len(sys.argv) > 1 and sys.argv[1] == "health":
        health = await health_check()
        print(json.dumps(health, indent=2))
        sys.exit(0 if health["status"] == "healthy" else 1)

    try:
        await run_production_service()
    except Exception as e:
        logger.error("Unhandled exception in main", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
