"""Core logging configuration for VentureDAO.

Governance modules log through module-level ``logging.getLogger(__name__)``
loggers under the ``venturedao`` namespace. This module wires those loggers to
handlers and formatters; the library itself never configures logging on
import.
"""

import logging
import sys
import threading
from enum import Enum
from typing import Dict, List, Optional, TextIO


class LogLevel(Enum):
    """Log levels."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    def to_stdlib(self) -> int:
        """Map to the numeric level used by the ``logging`` module."""
        return _STDLIB_LEVELS[self]


_STDLIB_LEVELS: Dict[LogLevel, int] = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.CRITICAL: logging.CRITICAL,
}


class LogConfig:
    """Log configuration."""

    def __init__(
        self,
        name: str = "venturedao",
        level: LogLevel = LogLevel.INFO,
        format_type: str = "json",
        handlers: List[str] = None,
        file_path: Optional[str] = None,
        propagate: bool = False,
        stream: Optional[TextIO] = None,
    ):
        self.name = name
        self.level = level
        self.format_type = format_type
        self.handlers = handlers or ["console"]
        self.file_path = file_path
        self.propagate = propagate
        self.stream = stream

    def validate(self) -> None:
        """Validate configuration."""
        if self.format_type not in ("json", "text"):
            raise ValueError(f"Unknown log format: {self.format_type}")

        for handler in self.handlers:
            if handler not in ("console", "file"):
                raise ValueError(f"Unknown log handler: {handler}")

        if "file" in self.handlers and not self.file_path:
            raise ValueError("File handler requires file_path")


class LogManager:
    """Owns the handlers attached to the package logger."""

    def __init__(self, config: LogConfig = None):
        self.config = config or LogConfig()
        self.config.validate()
        self.logger = logging.getLogger(self.config.name)
        self.handlers: List[logging.Handler] = []
        self._lock = threading.RLock()
        self._setup()

    def _build_formatter(self) -> logging.Formatter:
        from .formatters import JSONFormatter, TextFormatter

        if self.config.format_type == "json":
            return JSONFormatter()
        return TextFormatter()

    def _setup(self) -> None:
        with self._lock:
            formatter = self._build_formatter()
            for name in self.config.handlers:
                if name == "console":
                    handler = logging.StreamHandler(self.config.stream or sys.stderr)
                else:
                    handler = logging.FileHandler(self.config.file_path, encoding="utf-8")
                handler.setFormatter(formatter)
                self.logger.addHandler(handler)
                self.handlers.append(handler)

            self.logger.setLevel(self.config.level.to_stdlib())
            self.logger.propagate = self.config.propagate

    def shutdown(self) -> None:
        """Detach and close every handler this manager installed."""
        with self._lock:
            for handler in self.handlers:
                self.logger.removeHandler(handler)
                handler.close()
            self.handlers.clear()


# Global log manager instance
_global_manager: Optional[LogManager] = None


def get_logger(name: str = "venturedao") -> logging.Logger:
    """Get a logger inside the package namespace."""
    if name != "venturedao" and not name.startswith("venturedao."):
        name = f"venturedao.{name}"
    return logging.getLogger(name)


def setup_logging(config: LogConfig) -> LogManager:
    """Setup logging with configuration."""
    global _global_manager
    if _global_manager is not None:
        _global_manager.shutdown()
    _global_manager = LogManager(config)
    return _global_manager


def shutdown_logging() -> None:
    """Shutdown logging."""
    global _global_manager
    if _global_manager is not None:
        _global_manager.shutdown()
        _global_manager = None
