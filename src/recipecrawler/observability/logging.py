"""
Structured logging for the crawler, built on structlog over stdlib logging.

Job and URL identifiers are bound as contextvars by the orchestrator, so
every event emitted while a URL climbs the ladder carries ``job_id`` and
``url`` without threading them through each call.
"""
from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any, List

import structlog

if TYPE_CHECKING:
    from recipecrawler.config.config import MonitoringConfig

# HTTP client libraries log every request at INFO; one line per ladder rung
# from our own executor is enough.
NOISY_LOGGERS = ("httpx", "httpcore", "hpack")


def configure_logging(config: MonitoringConfig) -> None:
    """
    Route structlog and stdlib records through one handler.

    JSON lines go to ``config.log_file`` when set, otherwise a console
    renderer writes to stdout.
    """
    shared_processors: List[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    log_renderer: Any
    if config.log_file:
        log_renderer = structlog.processors.JSONRenderer()
        handler: logging.Handler = logging.FileHandler(config.log_file)
    else:
        log_renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
        handler = logging.StreamHandler(sys.stdout)

    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                log_renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(config.log_level.upper())
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, root.level))

    structlog.configure(
        processors=shared_processors
        + [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    structlog.get_logger("recipecrawler.logging").info(
        "Logging configured", level=config.log_level, output=config.log_file or "console"
    )
