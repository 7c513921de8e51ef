"""Logging setup shared by the HTTP app and the CLI.

Every module logs through ``logging.getLogger(__name__)``; this module only
attaches a handler to the package root logger so those records go somewhere.
"""

from __future__ import annotations

import logging
import sys

_ROOT_LOGGER = "quickcrawl"
_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: str = "info") -> logging.Logger:
    """Install a stderr handler on the ``quickcrawl`` logger.

    Safe to call more than once: the handler is only added the first time,
    later calls just update the level.

    Args:
        level: Level name, case-insensitive (``debug``, ``info``, ...).
            Unknown names fall back to ``INFO``.
    """
    logger = logging.getLogger(_ROOT_LOGGER)
    resolved = logging.getLevelName(level.upper())
    logger.setLevel(resolved if isinstance(resolved, int) else logging.INFO)

    if not any(getattr(h, "_quickcrawl", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%H:%M:%S"))
        handler._quickcrawl = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    return logger
