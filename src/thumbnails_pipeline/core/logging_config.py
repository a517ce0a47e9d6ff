"""Logger setup for Lambda invocations and the local CLI.

Lambda ships anything written to stdout to CloudWatch, so every pipeline
logger writes there through a single handler.
"""

import os
import sys
import logging
from typing import Optional

STRUCTURED_FORMAT = (
    "%(asctime)s | %(name)s | %(levelname)-8s | "
    "%(filename)s:%(lineno)d | %(funcName)s() | %(message)s"
)
SIMPLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(
    name: str = "thumbnails-pipeline",
    level: Optional[str] = None,
    format_type: str = "structured",
) -> logging.Logger:
    """
    Configure and return the logger ``name``.

    Args:
        name: Logger name; pipeline components use "thumbnails-pipeline.<part>"
        level: Explicit level, e.g. "DEBUG" when the ``debug`` variable is set
        format_type: "structured" (source location included) or "simple"

    The level falls back to LOG_LEVEL, then INFO. LOG_FORMAT overrides
    ``format_type``. Warm containers call this once per invocation, so a
    logger that already has a handler keeps it.
    """
    logger = logging.getLogger(name)

    requested = level or os.getenv("LOG_LEVEL", "INFO")
    logger.setLevel(getattr(logging, requested.upper(), logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        if os.getenv("LOG_FORMAT", format_type).lower() == "structured":
            handler.setFormatter(
                logging.Formatter(STRUCTURED_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
            )
        else:
            handler.setFormatter(logging.Formatter(SIMPLE_FORMAT))
        logger.addHandler(handler)

    # The Lambda runtime installs its own root handler; avoid double lines
    logger.propagate = False
    return logger


def get_logger(name: str = "thumbnails-pipeline") -> logging.Logger:
    """Shorthand for ``setup_logger(name)`` with the environment defaults."""
    return setup_logger(name)


def set_debug(logger: logging.Logger) -> None:
    """Switch a logger and the root logger to DEBUG (the ``debug=true`` setting)."""
    logger.setLevel(logging.DEBUG)
    logging.getLogger().setLevel(logging.DEBUG)
