"""Configuration and logging helpers."""

from .config import AppSettings, get_settings
from .logging import get_logger, setup_logging

__all__ = ["AppSettings", "get_settings", "get_logger", "setup_logging"]
