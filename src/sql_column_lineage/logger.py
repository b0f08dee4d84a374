"""Logging helpers for sql_column_lineage."""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional, Union

LOG_LEVEL_ENV = "SQL_COLUMN_LINEAGE_LOG_LEVEL"

_DEF_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def get_logger(
    name: str = "sql_column_lineage", level: Optional[Union[int, str]] = None
) -> logging.Logger:
    """Return a logger writing to stderr, configured once per name."""

    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_DEF_FORMAT))
        logger.addHandler(handler)
    if level is None:
        level = os.getenv(LOG_LEVEL_ENV, "WARNING").upper()
    logger.setLevel(level)
    return logger
