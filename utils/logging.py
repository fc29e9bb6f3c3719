"""Central logging configuration for the Flask app and its generation workers."""
from __future__ import annotations

import logging
import os

# HTTP client libraries log every request at INFO.
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "anthropic", "urllib3", "engineio")


def configure_logging() -> None:
    """Configure root logging handlers.

    ``LOG_FORMAT=json`` switches to JSON-style lines for cloud log collectors;
    anything else gives a human readable format for local development. The
    thread name is included so records emitted by generation workers can be
    told apart from request handling.
    """

    level = os.getenv("LOG_LEVEL", "INFO").upper()
    log_format = os.getenv("LOG_FORMAT", "text")

    if log_format == "json":
        formatter = logging.Formatter(
            "{\"timestamp\": \"%(asctime)s\", \"level\": \"%(levelname)s\", "
            "\"thread\": \"%(threadName)s\", "
            "\"name\": \"%(name)s\", \"message\": \"%(message)s\"}"
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-7s | %(threadName)s | %(name)s | %(message)s"
        )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
