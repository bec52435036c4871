"""Logging setup applied once when the application is created."""

from __future__ import annotations

import logging

from .config import get_settings

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging() -> None:
    settings = get_settings()
    level = getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(level=level, format=_FORMAT)
    logging.getLogger("health_api").setLevel(level)
