"""
Logging setup.

Services use structlog (``structlog.get_logger()``); middleware uses the
standard library logger. Both end up on stdout at ``settings.log_level``.
"""

import logging
import sys

import structlog

from flagmetrics.core.config import Settings, settings as default_settings
from flagmetrics.utils.context import add_request_context


def configure_logging(settings: Settings | None = None) -> None:
    """Configure stdlib logging and structlog from settings."""
    settings = settings or default_settings
    level = logging.getLevelName(settings.log_level.upper())

    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        stream=sys.stdout,
        level=level,
    )

    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_request_context,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
