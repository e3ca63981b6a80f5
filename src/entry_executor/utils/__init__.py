"""
Utilities package for the limit entry executor.

This package provides:
- Logging system with categories and per-task correlation IDs
- Log formatters (JSON, colored)

Example Usage:
    from entry_executor.utils import get_logger, setup_logging

    setup_logging({'level': 'INFO'})
    logger = get_logger('execution.coordinator')

    with logger.correlation_context():
        logger.log_order_event({'order_id': 'abc', 'side': 'Buy'})
"""

from .logger import (
    setup_logging,
    get_logger,
    shutdown_logging,
    LoggerAdapter,
    LoggerManager,
    LogCategory,
)

from .log_formatter import (
    JsonFormatter,
    ColoredFormatter,
)

__all__ = [
    'setup_logging',
    'get_logger',
    'shutdown_logging',
    'LoggerAdapter',
    'LoggerManager',
    'LogCategory',
    'JsonFormatter',
    'ColoredFormatter',
]
