"""
Configuration Manager for the limit entry executor.

This module provides centralized configuration management with support for:
- YAML and JSON configuration files
- Environment variable overrides (a local .env file is read first)
- Pydantic-based validation
- Default values for optional parameters
"""

import os
import json
import yaml
from dotenv import load_dotenv
from pathlib import Path
from typing import Optional, Union, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, validator, ValidationError
from enum import Enum


class LogLevel(str, Enum):
    """Supported log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ExchangeSettings(BaseModel):
    """Exchange connection settings."""
    exchange_id: str = Field(default="bybit", description="Exchange identifier")
    api_key: Optional[str] = Field(default=None, description="API key for authentication")
    api_secret: Optional[str] = Field(default=None, description="API secret for authentication")
    testnet: bool = Field(default=True, description="Use testnet for testing")
    symbol: str = Field(default="APEXUSDT", description="Traded instrument (exchange id)")
    category: str = Field(default="linear", description="Bybit product category")
    timeout_ms: int = Field(default=30000, gt=0, description="HTTP request timeout")

    @validator('exchange_id')
    def validate_exchange_id(cls, v):
        if v != "bybit":
            raise ValueError("exchange_id must be 'bybit'")
        return v

    @validator('symbol')
    def validate_symbol(cls, v):
        if not v:
            raise ValueError("symbol cannot be empty")
        return v.upper()


class ExecutionConfig(BaseModel):
    """
    Limit-order entry execution settings.

    Read-only for the lifetime of an ExecutionCoordinator. Field names accept
    their camelCase aliases (``timeoutMs``, ``slippagePercent``, ...) so that
    existing JSON configs with camelCase keys load unchanged.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    enabled: bool = Field(
        default=True,
        description="Use the limit path; when false every entry is a market order"
    )
    timeout_ms: int = Field(
        default=5000, ge=0, alias="timeoutMs",
        description="How long to wait for the limit order to fill"
    )
    slippage_percent: float = Field(
        default=0.02, ge=0, le=5.0, alias="slippagePercent",
        description="Limit price offset from the reference price in percent"
    )
    fallback_to_market: bool = Field(
        default=True, alias="fallbackToMarket",
        description="Open with a market order when the limit order times out"
    )
    max_retries: int = Field(
        default=1, ge=0, alias="maxRetries",
        description="Extra submission attempts on transport failure"
    )
    poll_interval_ms: int = Field(
        default=200, gt=0, alias="pollIntervalMs",
        description="Delay between order status polls"
    )
    retry_delay_ms: int = Field(
        default=0, ge=0, alias="retryDelayMs",
        description="Delay between submission attempts"
    )
    maker_fee_rate: float = Field(
        default=0.0001, ge=0, lt=0.01, alias="makerFeeRate",
        description="Fee rate charged on limit fills (0.01%)"
    )
    taker_fee_rate: float = Field(
        default=0.0006, ge=0, lt=0.01, alias="takerFeeRate",
        description="Fee rate charged on market fills (0.06%)"
    )

    @validator('taker_fee_rate')
    def validate_fee_order(cls, v, values):
        maker = values.get('maker_fee_rate', 0.0)
        if v < maker:
            raise ValueError("taker_fee_rate must be >= maker_fee_rate")
        return v


class LoggingSettings(BaseModel):
    """Logging settings."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Root logging level")
    console: bool = Field(default=True, description="Log to stdout")
    colors: bool = Field(default=True, description="Colored console output")
    json_file: Optional[str] = Field(
        default=None,
        description="Path of a JSON-lines log file (disabled when unset)"
    )


class ExecutorBotConfig(BaseModel):
    """Complete executor configuration."""
    exchange: ExchangeSettings = Field(default_factory=ExchangeSettings)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


class ConfigManager:
    """
    Configuration manager for the executor.

    Handles loading configuration from YAML/JSON files with support for:
    - Environment variable overrides
    - Validation using Pydantic models
    - Default values for optional parameters

    Environment Variables:
        BYBIT_API_KEY: Override API key
        BYBIT_API_SECRET: Override API secret
        BYBIT_TESTNET: Override testnet mode (true/false)
        BYBIT_SYMBOL: Override traded symbol
        EXECUTION_ENABLED: Enable/disable the limit path (true/false)
        EXECUTION_TIMEOUT_MS: Override fill timeout
        EXECUTION_SLIPPAGE_PERCENT: Override limit price offset
        EXECUTION_FALLBACK_TO_MARKET: Enable/disable market fallback (true/false)
        EXECUTION_MAX_RETRIES: Override submission retries
        LOG_LEVEL: Override log level
    """

    # Environment variable mappings
    ENV_MAPPINGS = {
        'BYBIT_API_KEY': ('exchange', 'api_key'),
        'BYBIT_API_SECRET': ('exchange', 'api_secret'),
        'BYBIT_TESTNET': ('exchange', 'testnet'),
        'BYBIT_SYMBOL': ('exchange', 'symbol'),
        'EXECUTION_ENABLED': ('execution', 'enabled'),
        'EXECUTION_TIMEOUT_MS': ('execution', 'timeout_ms'),
        'EXECUTION_SLIPPAGE_PERCENT': ('execution', 'slippage_percent'),
        'EXECUTION_FALLBACK_TO_MARKET': ('execution', 'fallback_to_market'),
        'EXECUTION_MAX_RETRIES': ('execution', 'max_retries'),
        'LOG_LEVEL': ('logging', 'level'),
    }

    BOOL_FIELDS = [
        ('exchange', 'testnet'),
        ('execution', 'enabled'),
        ('execution', 'fallback_to_market'),
    ]

    INT_FIELDS = [
        ('execution', 'timeout_ms'),
        ('execution', 'max_retries'),
    ]

    FLOAT_FIELDS = [
        ('execution', 'slippage_percent'),
    ]

    def __init__(
        self,
        config_path: Optional[Union[str, Path]] = None,
        env_file: Optional[Union[str, Path]] = None
    ):
        """
        Initialize the configuration manager.

        Args:
            config_path: Path to configuration file (YAML or JSON)
            env_file: Optional .env file loaded before overrides are applied
        """
        self._config_path: Optional[Path] = Path(config_path) if config_path else None
        self._env_file = env_file
        self._config: Optional[ExecutorBotConfig] = None
        self._raw_config: Dict[str, Any] = {}

    def load_config(self, config_path: Optional[Union[str, Path]] = None) -> ExecutorBotConfig:
        """
        Load configuration from file.

        Args:
            config_path: Path to configuration file. If not provided, uses the path
                        specified during initialization.

        Returns:
            ExecutorBotConfig: Validated configuration object

        Raises:
            FileNotFoundError: If configuration file does not exist
            ValueError: If configuration format or values are invalid
        """
        if config_path:
            self._config_path = Path(config_path)

        if not self._config_path:
            raise ValueError("No configuration path specified")

        if not self._config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {self._config_path}"
            )

        # Empty sections fall back to their defaults
        self._raw_config = {
            section: values
            for section, values in self._load_file(self._config_path).items()
            if values is not None
        }

        load_dotenv(self._env_file, override=False)
        self._apply_env_overrides()

        try:
            self._config = ExecutorBotConfig(**self._raw_config)
        except ValidationError as e:
            raise ValueError(f"Configuration validation failed: {e}") from e

        return self._config

    def _load_file(self, path: Path) -> Dict[str, Any]:
        """
        Load configuration from file based on extension.

        Raises:
            ValueError: If file format is not supported or cannot be parsed
        """
        suffix = path.suffix.lower()

        try:
            with open(path, 'r', encoding='utf-8') as f:
                if suffix in ['.yaml', '.yml']:
                    return yaml.safe_load(f) or {}
                elif suffix == '.json':
                    return json.load(f)
                else:
                    raise ValueError(
                        f"Unsupported configuration format: {suffix}. "
                        "Use .yaml, .yml, or .json"
                    )
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML format: {e}") from e
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON format: {e}") from e

    def _apply_env_overrides(self) -> None:
        """
        Apply environment variable overrides to configuration.

        Environment variables take precedence over file configuration.
        """
        for env_var, (section, key) in self.ENV_MAPPINGS.items():
            value = os.getenv(env_var)
            if value is not None:
                converted_value = self._convert_env_value(env_var, value, section, key)

                # An empty YAML section (`execution:`) parses to None
                section_data = self._raw_config.get(section) or {}
                self._raw_config[section] = section_data
                # Aliases win over field names during validation
                alias = self._field_alias(section, key)
                if alias:
                    section_data.pop(alias, None)
                section_data[key] = converted_value

    @staticmethod
    def _field_alias(section: str, key: str) -> Optional[str]:
        section_model = ExecutorBotConfig.model_fields[section].annotation
        field_info = section_model.model_fields.get(key)
        return field_info.alias if field_info else None

    def _convert_env_value(
        self, env_var: str, value: str, section: str, key: str
    ) -> Union[str, bool, int, float]:
        """Convert an environment variable string to the field's type."""
        if (section, key) in self.BOOL_FIELDS:
            return value.lower() in ('true', '1', 'yes', 'on')

        if (section, key) in self.INT_FIELDS:
            try:
                return int(value)
            except ValueError:
                raise ValueError(
                    f"Environment variable {env_var} must be an integer, got: {value}"
                )

        if (section, key) in self.FLOAT_FIELDS:
            try:
                return float(value)
            except ValueError:
                raise ValueError(
                    f"Environment variable {env_var} must be a number, got: {value}"
                )

        return value

    def get_config(self) -> ExecutorBotConfig:
        """
        Get the current configuration.

        Raises:
            ValueError: If no configuration is loaded
        """
        if not self._config:
            raise ValueError("No configuration loaded. Call load_config() first.")
        return self._config

    def get_execution_config(self) -> ExecutionConfig:
        """Get limit-order execution parameters."""
        return self.get_config().execution

    def get_exchange_params(self) -> ExchangeSettings:
        """Get exchange connection parameters."""
        return self.get_config().exchange

    def get_logging_params(self) -> LoggingSettings:
        """Get logging parameters."""
        return self.get_config().logging

    @property
    def is_loaded(self) -> bool:
        """Check if configuration is loaded."""
        return self._config is not None


def load_config(config_path: Union[str, Path]) -> ExecutorBotConfig:
    """
    Load configuration from file.

    Args:
        config_path: Path to configuration file

    Returns:
        ExecutorBotConfig: Validated configuration object
    """
    manager = ConfigManager(config_path)
    return manager.load_config()
