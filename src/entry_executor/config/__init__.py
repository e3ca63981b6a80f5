"""
Configuration package for the limit entry executor.

This package provides configuration management with support for YAML/JSON files,
environment variable overrides, and Pydantic-based validation.
"""

from .config_manager import (
    ConfigManager,
    ExecutorBotConfig,
    ExchangeSettings,
    ExecutionConfig,
    LoggingSettings,
    LogLevel,
    load_config,
)

__all__ = [
    'ConfigManager',
    'ExecutorBotConfig',
    'ExchangeSettings',
    'ExecutionConfig',
    'LoggingSettings',
    'LogLevel',
    'load_config',
]
