"""
Structured Logging Configuration
"""

import logging
import sys

import structlog

from bug_tracker.core.config import settings


def setup_logging(level: str = None, json_output: bool = None) -> None:
    """Configure structlog on top of stdlib logging.

    Called once from the application lifespan. Request-scoped fields
    (request_id, actor_id, ...) come from ``structlog.contextvars``.
    """
    level = level or settings.LOG_LEVEL
    if json_output is None:
        json_output = settings.ENVIRONMENT == "production"

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level),
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer() if json_output
            else structlog.dev.ConsoleRenderer(colors=True)
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
