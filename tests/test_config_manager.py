import json
import os

import pytest
import yaml

from entry_executor.config import ConfigManager, ExecutionConfig, LogLevel, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for env_var in ConfigManager.ENV_MAPPINGS:
        monkeypatch.delenv(env_var, raising=False)
    yield
    # load_dotenv writes straight into os.environ
    for env_var in ConfigManager.ENV_MAPPINGS:
        os.environ.pop(env_var, None)


def _write_yaml(path, data):
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


def test_defaults_match_bybit_fee_tiers():
    config = ExecutionConfig()
    assert config.enabled is True
    assert config.timeout_ms == 5000
    assert config.slippage_percent == 0.02
    assert config.fallback_to_market is True
    assert config.max_retries == 1
    assert config.maker_fee_rate == 0.0001
    assert config.taker_fee_rate == 0.0006


def test_execution_config_is_read_only():
    config = ExecutionConfig()
    with pytest.raises(Exception):
        config.timeout_ms = 10


def test_load_yaml_with_camel_case_aliases(tmp_path):
    path = _write_yaml(tmp_path / "config.yaml", {
        "exchange": {"symbol": "apexusdt", "testnet": True},
        "execution": {"timeoutMs": 3000, "slippagePercent": 0.05, "fallbackToMarket": False, "maxRetries": 2},
        "logging": {"level": "DEBUG"},
    })

    config = load_config(path)

    assert config.exchange.symbol == "APEXUSDT"
    assert config.execution.timeout_ms == 3000
    assert config.execution.slippage_percent == 0.05
    assert config.execution.fallback_to_market is False
    assert config.execution.max_retries == 2
    assert config.logging.level is LogLevel.DEBUG


def test_load_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"execution": {"timeout_ms": 2500}}), encoding="utf-8")

    manager = ConfigManager(path)
    manager.load_config()

    assert manager.is_loaded
    assert manager.get_execution_config().timeout_ms == 2500
    assert manager.get_exchange_params().exchange_id == "bybit"


def test_env_overrides_file_values(tmp_path, monkeypatch):
    path = _write_yaml(tmp_path / "config.yaml", {"execution": {"timeoutMs": 3000, "enabled": True}})
    monkeypatch.setenv("EXECUTION_TIMEOUT_MS", "7000")
    monkeypatch.setenv("EXECUTION_ENABLED", "false")
    monkeypatch.setenv("BYBIT_API_KEY", "key-from-env")

    config = ConfigManager(path, env_file=tmp_path / ".env").load_config()

    assert config.execution.timeout_ms == 7000
    assert config.execution.enabled is False
    assert config.exchange.api_key == "key-from-env"


def test_dotenv_file_is_loaded(tmp_path, monkeypatch):
    path = _write_yaml(tmp_path / "config.yaml", {})
    env_file = tmp_path / ".env"
    env_file.write_text("EXECUTION_SLIPPAGE_PERCENT=0.1\n", encoding="utf-8")

    config = ConfigManager(path, env_file=env_file).load_config()

    assert config.execution.slippage_percent == 0.1


def test_invalid_env_value_rejected(tmp_path, monkeypatch):
    path = _write_yaml(tmp_path / "config.yaml", {})
    monkeypatch.setenv("EXECUTION_MAX_RETRIES", "many")

    with pytest.raises(ValueError, match="EXECUTION_MAX_RETRIES"):
        ConfigManager(path, env_file=tmp_path / ".env").load_config()


@pytest.mark.parametrize(
    "execution",
    [
        {"timeoutMs": -1},
        {"slippagePercent": -0.01},
        {"maxRetries": -1},
        {"pollIntervalMs": 0},
        {"makerFeeRate": 0.001, "takerFeeRate": 0.0005},
    ],
)
def test_invalid_execution_values_rejected(tmp_path, execution):
    path = _write_yaml(tmp_path / "config.yaml", {"execution": execution})

    with pytest.raises(ValueError, match="validation failed"):
        ConfigManager(path, env_file=tmp_path / ".env").load_config()


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")


def test_unsupported_format_rejected(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("x = 1", encoding="utf-8")

    with pytest.raises(ValueError, match="Unsupported configuration format"):
        load_config(path)


def test_get_config_before_load_raises():
    with pytest.raises(ValueError, match="No configuration loaded"):
        ConfigManager().get_config()


def test_empty_section_uses_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("execution:\nexchange:\n  symbol: btcusdt\n", encoding="utf-8")

    config = ConfigManager(path, env_file=tmp_path / ".env").load_config()

    assert config.execution == ExecutionConfig()
    assert config.exchange.symbol == "BTCUSDT"


def test_env_override_into_empty_section(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text("execution:\n", encoding="utf-8")
    monkeypatch.setenv("EXECUTION_TIMEOUT_MS", "100")

    config = ConfigManager(path, env_file=tmp_path / ".env").load_config()

    assert config.execution.timeout_ms == 100
