"""Pytest configuration for execution engine tests."""

import sys
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

SRC_ROOT = Path(__file__).parent.parent / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from entry_executor.exchange.gateway import (  # noqa: E402
    CancelResponse,
    ExchangeOrder,
    OrderListResponse,
    SubmitOrderResponse,
)


class FakeClock:
    """Virtual clock: sleeping advances time instantly and is recorded."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def monotonic(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_gateway(symbol: str = "APEXUSDT"):
    gateway = SimpleNamespace(
        symbol=symbol,
        category="linear",
        tick_size=None,
        round_price=lambda price: f"{price:.2f}",
        round_quantity=lambda quantity: f"{quantity:.0f}",
    )
    gateway.set_leverage = AsyncMock()
    gateway.submit_order = AsyncMock(return_value=SubmitOrderResponse(0, order_id="order-1"))
    gateway.get_active_orders = AsyncMock(return_value=OrderListResponse(0))
    gateway.get_historic_orders = AsyncMock(return_value=OrderListResponse(0))
    gateway.cancel_order = AsyncMock(return_value=CancelResponse(0))
    gateway.open_position = AsyncMock(return_value="market-1")
    return gateway


def order_list(*orders):
    """Successful order list response from (order_id, status[, avg_price]) tuples."""
    return OrderListResponse(0, orders=[ExchangeOrder(*order) for order in orders])


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def gateway():
    return make_gateway()
