"""
Log formatters for the limit entry executor.

This module provides custom log formatters for structured logging:
- JSON format for machine parsing
- Colored console output
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from colorama import Fore, Style


class JsonFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Example output:
    {
        "timestamp": "2024-01-27T10:30:00.123456+00:00",
        "level": "INFO",
        "logger": "execution.coordinator",
        "correlation_id": "abc-123-def",
        "message": "Limit order filled",
        "category": "ORDERS",
        "data": {...}
    }
    """

    # Standard log record attributes to exclude from "data"
    STANDARD_ATTRS = {
        'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
        'filename', 'module', 'exc_info', 'exc_text', 'stack_info',
        'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
        'thread', 'threadName', 'processName', 'process', 'getMessage',
        'taskName', 'message', 'asctime', 'correlation_id', 'category'
    }

    def __init__(self, include_extra: bool = True, indent: Optional[int] = None):
        """
        Initialize JSON formatter.

        Args:
            include_extra: Include extra fields from log record
            indent: JSON indentation (None for compact, int for pretty print)
        """
        super().__init__()
        self.include_extra = include_extra
        self.indent = indent

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        if getattr(record, 'correlation_id', None):
            log_data['correlation_id'] = record.correlation_id

        if getattr(record, 'category', None):
            log_data['category'] = record.category

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        if self.include_extra:
            extra_data = self._get_extra_fields(record)
            if extra_data:
                log_data['data'] = extra_data

        return json.dumps(log_data, indent=self.indent, default=str)

    def _get_extra_fields(self, record: logging.LogRecord) -> Dict[str, Any]:
        extra = {}
        for key, value in record.__dict__.items():
            if key not in self.STANDARD_ATTRS and not key.startswith('_'):
                extra[key] = value
        return extra


class ColoredFormatter(logging.Formatter):
    """
    Colored console formatter for human-readable logs.

    Highlights log levels with colorama colors and dims the category column.
    """

    COLORS = {
        'DEBUG': Fore.CYAN,
        'INFO': Fore.GREEN,
        'WARNING': Fore.YELLOW,
        'ERROR': Fore.RED,
        'CRITICAL': Fore.MAGENTA,
    }

    DEFAULT_FORMAT = '%(asctime)s | %(levelname)-8s | %(category)s | %(name)s | %(message)s'

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        use_colors: bool = True
    ):
        super().__init__(fmt or self.DEFAULT_FORMAT, datefmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        # Records from third-party loggers carry no category
        if not hasattr(record, 'category'):
            record.category = 'GENERAL'

        formatted = super().format(record)
        if not self.use_colors:
            return formatted

        level_color = self.COLORS.get(record.levelname, Style.RESET_ALL)
        formatted = formatted.replace(
            record.levelname, f"{level_color}{record.levelname}{Style.RESET_ALL}", 1
        )
        if record.category:
            formatted = formatted.replace(
                record.category, f"{Style.DIM}{record.category}{Style.RESET_ALL}", 1
            )
        return formatted
