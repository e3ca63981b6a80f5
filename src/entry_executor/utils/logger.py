"""
Logging system for the limit entry executor.

This module provides category-based structured logging on top of the standard
``logging`` package.

Example Usage:
    from entry_executor.utils import get_logger, setup_logging
    from entry_executor.config import load_config

    config = load_config('config/config.yaml')
    setup_logging(config.logging)

    logger = get_logger('execution.coordinator')

    with logger.correlation_context():
        logger.log_order_event({
            'order_id': 'abc-123',
            'side': 'Buy',
            'order_type': 'Limit',
            'price': 99.98,
            'quantity': 10
        }, msg="Limit order submitted")
"""

import contextvars
import logging
import sys
import threading
import uuid
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .log_formatter import JsonFormatter, ColoredFormatter

# Per-task correlation id; concurrent entries never see each other's id
_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'correlation_id', default=None
)


class LogCategory(Enum):
    """Log categories for organizing log output."""
    ORDERS = "ORDERS"
    SYSTEM = "SYSTEM"
    GENERAL = "GENERAL"


class LoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that adds correlation ID and category support.

    The correlation ID lives in a context variable, so each asyncio task
    (one per entry execution) carries its own.
    """

    def __init__(self, logger: logging.Logger, extra: Optional[Dict[str, Any]] = None):
        super().__init__(logger, extra or {})

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        if 'extra' not in kwargs:
            kwargs['extra'] = {}

        correlation_id = _correlation_id.get()
        if correlation_id and 'correlation_id' not in kwargs['extra']:
            kwargs['extra']['correlation_id'] = correlation_id

        for key, value in self.extra.items():
            if key not in kwargs['extra']:
                kwargs['extra'][key] = value

        return msg, kwargs

    @property
    def correlation_id(self) -> Optional[str]:
        return _correlation_id.get()

    @contextmanager
    def correlation_context(self, correlation_id: Optional[str] = None):
        """
        Context manager for correlation ID scope.

        Args:
            correlation_id: Correlation ID (generates UUID if None)

        Example:
            with logger.correlation_context():
                logger.info("Processing entry")
                # All logs in this block have the same correlation ID
        """
        cid = correlation_id or str(uuid.uuid4())
        token = _correlation_id.set(cid)
        try:
            yield cid
        finally:
            _correlation_id.reset(token)

    def log_order_event(self, event_data: Dict[str, Any], msg: str = "", level: int = logging.INFO) -> None:
        """
        Log an order execution event.

        Args:
            event_data: Order event data dictionary
            msg: Optional message
            level: Log level
        """
        if not msg:
            msg = (
                f"Order: {event_data.get('side', 'unknown')} "
                f"{event_data.get('order_type', 'unknown')} {event_data.get('order_id', 'unknown')}"
            )

        self.log(level, msg, extra={
            'category': LogCategory.ORDERS.value,
            'order_data': event_data
        })

    def log_system_event(self, event_data: Dict[str, Any], msg: str = "", level: int = logging.INFO) -> None:
        """
        Log a system event.

        Args:
            event_data: System event data dictionary
            msg: Optional message
            level: Log level
        """
        if not msg:
            msg = f"System: {event_data.get('event_type', 'unknown')}"

        self.log(level, msg, extra={
            'category': LogCategory.SYSTEM.value,
            'system_data': event_data
        })


class LoggerManager:
    """
    Manager for the logging system.

    Handles initialization, configuration, and lifecycle of loggers.
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        """Singleton pattern for LoggerManager."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._initialized = True
        self._loggers: Dict[str, LoggerAdapter] = {}
        self._handlers: List[logging.Handler] = []
        self._setup_done = False

    def setup_logging(self, settings: Any = None) -> None:
        """
        Setup the logging system.

        Args:
            settings: ``LoggingSettings`` model or a plain dict with the same keys
        """
        if self._setup_done:
            return

        log_config = self._as_dict(settings)

        root = logging.getLogger()
        root.setLevel(self._get_log_level(log_config.get('level', 'INFO')))
        root.handlers = []

        if log_config.get('console', True):
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(ColoredFormatter(use_colors=log_config.get('colors', True)))
            root.addHandler(handler)
            self._handlers.append(handler)

        json_file = log_config.get('json_file')
        if json_file:
            filepath = Path(json_file)
            filepath.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(str(filepath), encoding='utf-8')
            handler.setFormatter(JsonFormatter())
            root.addHandler(handler)
            self._handlers.append(handler)

        self._setup_done = True

        self.get_logger('system').log_system_event({
            'event_type': 'logging_initialized',
            'level': log_config.get('level', 'INFO'),
            'console': log_config.get('console', True),
            'json_file': json_file,
        }, msg="Logging system initialized")

    @staticmethod
    def _as_dict(settings: Any) -> Dict[str, Any]:
        if settings is None:
            return {}
        if isinstance(settings, dict):
            return settings
        data = settings.model_dump()
        level = data.get('level')
        if isinstance(level, Enum):
            data['level'] = level.value
        return data

    @staticmethod
    def _get_log_level(level: Union[str, int]) -> int:
        if isinstance(level, int):
            return level

        levels = {
            'DEBUG': logging.DEBUG,
            'INFO': logging.INFO,
            'WARNING': logging.WARNING,
            'ERROR': logging.ERROR,
            'CRITICAL': logging.CRITICAL
        }
        return levels.get(str(level).upper(), logging.INFO)

    def get_logger(self, name: str) -> LoggerAdapter:
        if name not in self._loggers:
            self._loggers[name] = LoggerAdapter(logging.getLogger(name))
        return self._loggers[name]

    def shutdown(self) -> None:
        """Close handlers installed by setup_logging()."""
        root = logging.getLogger()
        for handler in self._handlers:
            root.removeHandler(handler)
            handler.close()
        self._handlers = []
        self._setup_done = False


# Global logger manager instance
_logger_manager = LoggerManager()


def setup_logging(settings: Any = None) -> None:
    """
    Setup the logging system.

    Example:
        setup_logging({'level': 'DEBUG', 'console': True, 'json_file': 'logs/orders.jsonl'})
    """
    _logger_manager.setup_logging(settings)


def get_logger(name: str) -> LoggerAdapter:
    """
    Get a logger instance.

    Example:
        logger = get_logger('execution.fill_watcher')
        logger.info("Polling order")
    """
    return _logger_manager.get_logger(name)


def shutdown_logging() -> None:
    """Shutdown the logging system."""
    _logger_manager.shutdown()
