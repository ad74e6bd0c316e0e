"""VentureDAO logging system.

This module configures the standard library loggers used by the governance
engine, with JSON or text output.
"""

from .core import (
    LogConfig,
    LogLevel,
    LogManager,
    get_logger,
    setup_logging,
    shutdown_logging,
)
from .formatters import JSONFormatter, TextFormatter

__all__ = [
    "LogLevel",
    "LogConfig",
    "LogManager",
    "get_logger",
    "setup_logging",
    "shutdown_logging",
    "JSONFormatter",
    "TextFormatter",
]
