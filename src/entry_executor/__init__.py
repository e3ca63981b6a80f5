"""
Limit entry executor.

Order execution engine for a Bybit trading bot: entries are placed as
maker limit orders with a bounded wait and an optional market fallback.

Subpackages:
    config: Pydantic settings loaded from YAML/JSON and the environment
    exchange: Gateway contract and the CCXT-backed Bybit gateway
    execution: The limit-with-market-fallback protocol
    utils: Category-aware logging
"""

__version__ = "1.0.0"
