"""Logging setup shared by the CLI and library users."""

import logging

import structlog


def configure_logging(level: str = "INFO", fmt: str = "console") -> None:
    """
    Route stdlib logging and structlog through the root handler.

    ``fmt="json"`` renders structlog events as JSON lines; ``"console"``
    renders them as ``key=value`` pairs after the usual log prefix.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if fmt == "json":
        logging.basicConfig(level=log_level, format="%(message)s", force=True)
        processors = [
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ]
    else:
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            force=True,
        )
        processors = [
            structlog.contextvars.merge_contextvars,
            structlog.processors.KeyValueRenderer(key_order=["event"]),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
