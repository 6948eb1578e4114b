"""Structured logging setup."""

import logging

import structlog


def configure_logging(level: str = "INFO", debug: bool = False) -> None:
    """Install the console processor chain used by every prev-review logger."""
    name = "DEBUG" if debug else level.upper()
    numeric_level = getattr(logging, name, logging.INFO)

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
    )
