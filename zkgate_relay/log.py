"""Logging setup for the zkgate-relay server and CLI."""

from __future__ import annotations

import logging
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Optional[str] = "INFO") -> int:
    """
    Configure the root logger with a single stream handler.

    The level is given by name (e.g. ``DEBUG``); an unknown name falls back to
    INFO with a warning. Returns the numeric level in effect.
    """
    level_name = (level or "INFO").upper()
    log_level = logging.getLevelName(level_name)
    invalid = not isinstance(log_level, int)
    if invalid:
        log_level = logging.INFO

    logging.basicConfig(level=log_level, format=LOG_FORMAT, force=True)
    # werkzeug request lines follow the application level
    logging.getLogger("werkzeug").setLevel(log_level)

    if invalid:
        logging.getLogger(__name__).warning(
            "Invalid LOG_LEVEL '%s'. Defaulting to INFO.", level_name
        )
    return log_level
