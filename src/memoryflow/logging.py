"""Logging setup.

The package logs through structlog on top of the standard library so that
library events (reviews, resets, deletes) and any third-party stdlib logging
end up in the same stream.
"""
import logging

import structlog


def configure_logging(level: int = logging.WARNING) -> None:
    """Configure stdlib logging and structlog with a console renderer."""
    logging.basicConfig(level=level, format="%(message)s")
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
    )


def get_logger(name: str):
    return structlog.get_logger(name)
