"""Core utilities for the rate limiter."""

from ratewindow.app.core.config import Settings, settings
from ratewindow.app.core.logging import get_logger, setup_logging
from ratewindow.app.core.utils import now_ms

__all__ = [
    "Settings",
    "settings",
    "get_logger",
    "setup_logging",
    "now_ms",
]
