"""Centralised logging helpers for the Tontoo runtime."""

from __future__ import annotations

import logging
import os
from typing import Dict, Optional

_LOGGER_CACHE: Dict[str, logging.Logger] = {}

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_LEVEL_MAP: Dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def get_logger(name: str = "tontoo") -> logging.Logger:
    """Return a cached :class:`logging.Logger` instance."""

    if name not in _LOGGER_CACHE:
        _LOGGER_CACHE[name] = logging.getLogger(name)
    return _LOGGER_CACHE[name]


def resolve_level(level: Optional[str]) -> int:
    """Map a CLI/env level name to a numeric level, defaulting to INFO."""
    name = (level or os.getenv("TONTOO_LOG_LEVEL", "info")).lower()
    return _LEVEL_MAP.get(name, logging.INFO)


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Configure the ``tontoo`` logger tree for command line use.

    The level comes from ``level``, then ``TONTOO_LOG_LEVEL``, then INFO.
    A single console handler is attached; calling this twice only
    updates the level.
    """
    root_logger = get_logger("tontoo")
    root_logger.setLevel(resolve_level(level))

    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(handler)
        # Prevent propagation to root logger to avoid duplicate messages
        root_logger.propagate = False
    return root_logger


__all__ = ["get_logger", "resolve_level", "configure_logging", "LOG_FORMAT"]
