"""Core configuration and utilities.

This package contains:
- Configuration management (config.py)
- Logging setup (logging.py)
"""

from flowdag.core.config import Settings, get_settings, settings
from flowdag.core.logging import LogContext, get_logger, setup_logging

__all__ = [
    "LogContext",
    "Settings",
    "get_logger",
    "get_settings",
    "settings",
    "setup_logging",
]
