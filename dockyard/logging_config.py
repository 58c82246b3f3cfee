"""dockyard logging configuration.

All modules log through structlog (`logger = get_logger(__name__)`) with
%-style positional arguments. Output goes to stderr so that stdout stays free
for machine-readable command output.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

import structlog

from dockyard.constants import LOG_LEVEL_ENV

get_logger = structlog.get_logger


def _resolve_level(level: Optional[str]) -> int:
    name = (level or os.environ.get(LOG_LEVEL_ENV) or "INFO").upper()
    resolved = logging.getLevelName(name)
    if not isinstance(resolved, int):
        return logging.INFO
    return resolved


def setup_logging(level: Optional[str] = None) -> None:
    """Configure dockyard logging.

    Args:
        level: Optional override for `DOCKYARD_LOG_LEVEL`.
    """
    if level:
        os.environ[LOG_LEVEL_ENV] = level

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_resolve_level(level)),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
