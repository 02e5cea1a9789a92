"""Shared utilities: configuration, logging, password hashing."""

from .config import Settings, get_settings, reload_settings
from .logging import get_logger, setup_logging

__all__ = ["Settings", "get_settings", "reload_settings", "get_logger", "setup_logging"]
