"""
Logging - Root logger setup for entry points.
"""

from __future__ import annotations

import logging

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging once; later calls are no-ops."""
    if logging.getLogger().handlers:
        return

    from .settings import get_settings

    log_level = (level or get_settings().log_level).upper()
    logging.basicConfig(level=log_level, format=DEFAULT_FORMAT)
