from __future__ import annotations

import logging
import os
from typing import Optional

from .config_loader import PipelineConfig

LOG_LEVEL_ENV = "CONTACTS_RECONCILE_LOG_LEVEL"
DEFAULT_LEVEL = "WARNING"
DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def level_name_for(config: PipelineConfig, level_override: Optional[str] = None) -> str:
    """Pick the level name: env var, then caller override, then YAML, then WARNING."""
    for candidate in (os.getenv(LOG_LEVEL_ENV), level_override, config.logging.level):
        if candidate and candidate.strip():
            return candidate.strip()
    return DEFAULT_LEVEL


def _level_number(name: str) -> int:
    if name.isdigit():
        return int(name)
    # getLevelName maps registered names to numbers and anything else to "Level <name>"
    value = logging.getLevelName(name.upper())
    return value if isinstance(value, int) else logging.INFO


def configure_logging(config: PipelineConfig, level_override: Optional[str] = None) -> int:
    """
    Set the root logger level and return it.

    A stream handler using ``config.logging.format`` is installed only when the
    root logger has none yet, so hosts that configured logging keep their
    handlers. Unknown level names fall back to INFO.
    """
    level = _level_number(level_name_for(config, level_override))
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(config.logging.format or DEFAULT_FORMAT))
        root.addHandler(handler)
    root.setLevel(level)
    return level
