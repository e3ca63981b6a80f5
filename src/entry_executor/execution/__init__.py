"""
Execution module for limit-order entries.

This module places entries as GTC limit orders to pay maker fees, waits a
bounded time for the fill, and falls back to a market order when the limit
order does not fill.
"""

from .models import (
    Direction,
    OrderStatus,
    ExecutionPath,
    ExecutionState,
    OrderRequest,
    OrderHandle,
    MarketFill,
    ExecutionResult,
)
from .exceptions import (
    ExecutionError,
    OrderSubmissionFailed,
    OrderRejectedError,
    FillPriceUnavailableError,
)
from .clock import MonotonicClock
from .price_calculator import PriceCalculator, calculate_limit_price
from .fee_calculator import FeeCalculator, OrderType
from .order_submitter import OrderSubmitter
from .fill_watcher import FillWatcher, FillPriceReader
from .order_canceller import OrderCanceller, CancelOutcome
from .market_fallback import MarketFallbackExecutor
from .coordinator import ExecutionCoordinator

__all__ = [
    # Models
    'Direction',
    'OrderStatus',
    'ExecutionPath',
    'ExecutionState',
    'OrderRequest',
    'OrderHandle',
    'MarketFill',
    'ExecutionResult',

    # Exceptions
    'ExecutionError',
    'OrderSubmissionFailed',
    'OrderRejectedError',
    'FillPriceUnavailableError',

    # Components
    'MonotonicClock',
    'PriceCalculator',
    'calculate_limit_price',
    'FeeCalculator',
    'OrderType',
    'OrderSubmitter',
    'FillWatcher',
    'FillPriceReader',
    'OrderCanceller',
    'CancelOutcome',
    'MarketFallbackExecutor',
    'ExecutionCoordinator',
]
