"""
Logging setup for governance-sync.

Each module gets a logger with its own console handler. Output is tuned
through the environment:

- GOV_LOG_LEVEL: default level, e.g. ``WARNING`` (INFO when unset)
- GOV_LOG_LEVELS: per-module overrides, e.g.
  ``governance_sync.sync=DEBUG,governance_sync.ledger=WARNING``; the longest
  matching prefix wins
- GOV_LOG_FORMAT: a logging.Formatter format string
"""

import logging
import os
from typing import Dict, Optional

_DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _parse_level(raw: str) -> Optional[int]:
    level = logging.getLevelName(raw.strip().upper())
    return level if isinstance(level, int) else None


def _module_levels() -> Dict[str, int]:
    """Parse GOV_LOG_LEVELS; malformed entries are ignored."""
    levels: Dict[str, int] = {}
    for entry in os.getenv("GOV_LOG_LEVELS", "").split(","):
        name, sep, raw = entry.partition("=")
        if not sep or not name.strip():
            continue
        level = _parse_level(raw)
        if level is not None:
            levels[name.strip()] = level
    return levels


def level_for(name: str) -> int:
    """Level a logger called ``name`` starts with."""
    best = None
    for prefix, level in _module_levels().items():
        if name == prefix or name.startswith(prefix + "."):
            if best is None or len(prefix) > len(best[0]):
                best = (prefix, level)
    if best is not None:
        return best[1]
    return _parse_level(os.getenv("GOV_LOG_LEVEL", "INFO")) or logging.INFO


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a configured logger with a stream handler.

    The first time a logger is created, a StreamHandler is attached with the
    GOV_LOG_FORMAT formatter and the level from GOV_LOG_LEVELS or
    GOV_LOG_LEVEL. Subsequent calls reuse the existing configuration.
    """
    logger = logging.getLogger(name if name else __name__)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter(os.getenv("GOV_LOG_FORMAT") or _DEFAULT_FORMAT)
        )
        logger.addHandler(handler)
        logger.setLevel(level_for(logger.name))

    return logger
