"""Log formatters for VentureDAO.

This module provides JSON and plain-text formatters for the standard
``logging`` handlers installed by :func:`venturedao.logging.setup_logging`.
"""

import json
import logging
import time
from typing import Any, Dict, Optional

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """JSON log formatter."""

    def __init__(
        self,
        include_timestamp: bool = True,
        include_level: bool = True,
        include_logger: bool = True,
        include_exception: bool = True,
        include_extra: bool = True,
        include_thread: bool = False,
        include_process: bool = False,
        timestamp_format: str = "iso",
        indent: Optional[int] = None,
        ensure_ascii: bool = False,
    ):
        super().__init__()
        self.include_timestamp = include_timestamp
        self.include_level = include_level
        self.include_logger = include_logger
        self.include_exception = include_exception
        self.include_extra = include_extra
        self.include_thread = include_thread
        self.include_process = include_process
        self.timestamp_format = timestamp_format
        self.indent = indent
        self.ensure_ascii = ensure_ascii

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        data: Dict[str, Any] = {}

        if self.include_timestamp:
            data["timestamp"] = self._format_timestamp(record.created)

        if self.include_level:
            data["level"] = record.levelname.lower()

        if self.include_logger:
            data["logger"] = record.name

        if self.include_exception and record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            data["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value),
                "traceback": self.formatException(record.exc_info),
            }

        if self.include_extra:
            extra = self._extract_extra(record)
            if extra:
                data["extra"] = extra

        if self.include_thread:
            data["thread_id"] = record.thread

        if self.include_process:
            data["process_id"] = record.process

        data["message"] = record.getMessage()

        return json.dumps(
            data, indent=self.indent, ensure_ascii=self.ensure_ascii, default=str
        )

    def _format_timestamp(self, timestamp: float) -> str:
        """Format timestamp."""
        if self.timestamp_format == "iso":
            return (
                time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(timestamp))
                + f".{int((timestamp % 1) * 1000000):06d}Z"
            )
        elif self.timestamp_format == "unix":
            return str(timestamp)
        else:
            return time.strftime(self.timestamp_format, time.gmtime(timestamp))

    @staticmethod
    def _extract_extra(record: logging.LogRecord) -> Dict[str, Any]:
        return {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }


class TextFormatter(logging.Formatter):
    """Human readable single-line formatter."""

    def __init__(
        self,
        format_string: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        timestamp_format: str = "%Y-%m-%d %H:%M:%S",
    ):
        super().__init__(fmt=format_string, datefmt=timestamp_format)
