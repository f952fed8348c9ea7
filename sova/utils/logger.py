"""Logging setup shared by the booking store, services and HTTP layer.

Every module asks ``get_logger(__name__)`` for its logger; the first call
installs one stdout handler at ``SOVA_LOG_LEVEL`` so store writes, conflict
warnings and report summaries come out in a single pipe-separated stream.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from sova.utils.config import get_settings


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_configured = False


def configure_logging(level: Optional[str] = None) -> None:
    """Install the root handler; ``level`` overrides ``SOVA_LOG_LEVEL`` on the first call only."""
    global _configured
    if _configured:
        return

    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format=LOG_FORMAT,
        stream=sys.stdout,
    )
    _configured = True


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)
