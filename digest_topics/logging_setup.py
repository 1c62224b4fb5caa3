"""Console logging for scripts."""

import logging
from typing import Optional


def configure_logging(level: Optional[str] = None) -> None:
    """Apply a console handler to the root logger. Defaults to LOG_LEVEL from settings."""
    if level is None:
        from .config import get_settings
        level = get_settings().log_level

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )
