"""structlog configuration for simlog-inspector.

Every module obtains its logger with ``get_logger(__name__)`` and logs
key/value events, e.g. ``logger.info("Operations reconstructed", count=3)``.
"""

from __future__ import annotations

import logging
import sys

import structlog


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """Install the process-wide structlog configuration.

    Logs go to stderr so that report output on stdout stays clean.

    Args:
        level: Minimum log level name (DEBUG, INFO, WARNING, ...).
        json_logs: Render one JSON object per line instead of console text.
    """
    renderer: structlog.typing.Processor
    if json_logs:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.typing.FilteringBoundLogger:
    """Return a structlog logger bound to a module name.

    Args:
        name: Usually ``__name__`` of the calling module.

    Returns:
        A bound logger accepting key/value event context.
    """
    return structlog.get_logger(name)
