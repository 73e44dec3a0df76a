"""
Onchange Utilities Package.

Configuration, logging and error types shared across all modules.
Requires Python 3.11+.
"""

from onchange.utils.config import RestartConfig, Settings, get_settings
from onchange.utils.errors import (
    ConfigError,
    OnchangeError,
    ProcessError,
    ProcessExitError,
    ProcessKillError,
    ProcessStartError,
    WatchError,
)
from onchange.utils.logger import configure_logging, get_logger, LoggerMixin

__all__ = [
    "RestartConfig",
    "Settings",
    "get_settings",
    "ConfigError",
    "OnchangeError",
    "ProcessError",
    "ProcessExitError",
    "ProcessKillError",
    "ProcessStartError",
    "WatchError",
    "configure_logging",
    "get_logger",
    "LoggerMixin",
]
