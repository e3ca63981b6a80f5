from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from ccxt.base.errors import (
    BadRequest,
    ExchangeError as CCXTExchangeError,
    InsufficientFunds,
    InvalidOrder,
    OrderNotFound,
    RequestTimeout,
)

from entry_executor.exchange import (
    BybitGateway,
    BybitGatewayConfig,
    ExchangeError,
    GatewayNotConnectedError,
    NetworkError,
)
from entry_executor.config import ExecutionConfig
from entry_executor.execution import ExecutionCoordinator, ExecutionPath
from entry_executor.execution.models import Direction

from tests.conftest import FakeClock

UNIFIED = "APEX/USDT:USDT"


def _exchange():
    exchange = MagicMock()
    exchange.load_markets = AsyncMock()
    exchange.market.return_value = {"symbol": UNIFIED, "precision": {"price": 0.001, "amount": 1.0}}
    exchange.price_to_precision.side_effect = lambda symbol, price: f"{price:.3f}"
    exchange.amount_to_precision.side_effect = lambda symbol, amount: f"{amount:.0f}"
    exchange.create_order = AsyncMock(return_value={"id": "abc"})
    exchange.fetch_open_orders = AsyncMock(return_value=[])
    exchange.fetch_canceled_and_closed_orders = AsyncMock(return_value=[])
    exchange.cancel_order = AsyncMock(return_value={})
    exchange.set_leverage = AsyncMock()
    exchange.close = AsyncMock()
    return exchange


async def _connected(exchange=None):
    gateway = BybitGateway(BybitGatewayConfig(symbol="APEXUSDT"), exchange=exchange or _exchange())
    await gateway.connect()
    return gateway


def test_calls_before_connect_raise():
    gateway = BybitGateway(BybitGatewayConfig(), exchange=_exchange())
    with pytest.raises(GatewayNotConnectedError):
        gateway.round_price(1.0)


def test_from_config_copies_exchange_settings():
    config = SimpleNamespace(exchange=SimpleNamespace(
        api_key="k", api_secret="s", testnet=False, symbol="BTCUSDT", category="inverse", timeout_ms=10000
    ))

    gateway = BybitGateway.from_config(config)

    assert gateway.symbol == "BTCUSDT"
    assert gateway.config.testnet is False
    assert gateway.config.timeout_ms == 10000
    assert gateway.category == "inverse"


@pytest.mark.asyncio
async def test_rounding_uses_market_precision():
    gateway = await _connected()

    assert gateway.round_price(99.9812) == "99.981"
    assert gateway.round_quantity(10.4) == "10"


@pytest.mark.asyncio
async def test_submit_order_places_limit_order():
    exchange = _exchange()
    gateway = await _connected(exchange)

    response = await gateway.submit_order(
        category="linear", symbol="APEXUSDT", side="Buy", order_type="Limit",
        qty="10", price="99.98", time_in_force="GTC"
    )

    assert response.ok
    assert response.order_id == "abc"
    exchange.create_order.assert_awaited_once_with(
        UNIFIED, "limit", "buy", 10.0, 99.98, {"category": "linear", "timeInForce": "GTC"}
    )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error,code",
    [
        (InsufficientFunds("bybit insufficient balance"), 110007),
        (InvalidOrder("bybit qty invalid"), 10001),
        (CCXTExchangeError('bybit {"retCode":110017,"retMsg":"reduce-only"}'), 110017),
        (CCXTExchangeError("bybit unknown failure"), 10001),
    ],
)
async def test_submit_order_maps_api_errors_to_codes(error, code):
    exchange = _exchange()
    exchange.create_order.side_effect = error
    gateway = await _connected(exchange)

    response = await gateway.submit_order("linear", "APEXUSDT", "Sell", "Limit", "10", "100.02", "GTC")

    assert not response.ok
    assert response.result_code == code


@pytest.mark.asyncio
async def test_transport_failure_raises_network_error():
    exchange = _exchange()
    exchange.create_order.side_effect = RequestTimeout("bybit timed out")
    gateway = await _connected(exchange)

    with pytest.raises(NetworkError):
        await gateway.submit_order("linear", "APEXUSDT", "Buy", "Limit", "10", "99.98", "GTC")


@pytest.mark.asyncio
async def test_order_lists_are_parsed():
    exchange = _exchange()
    exchange.fetch_open_orders.return_value = [
        {"id": "1", "status": "open", "average": None, "info": {"orderStatus": "PartiallyFilled"}},
    ]
    exchange.fetch_canceled_and_closed_orders.return_value = [
        {"id": "2", "status": "closed", "average": None, "info": {"avgPrice": "99.97"}},
        {"id": "3", "status": "canceled", "average": None, "info": {}},
    ]
    gateway = await _connected(exchange)

    active = await gateway.get_active_orders("APEXUSDT")
    history = await gateway.get_historic_orders("APEXUSDT", order_id="2")

    assert active.find("1").order_status == "PartiallyFilled"
    assert history.find("2").order_status == "Filled"
    assert history.find("2").avg_price == 99.97
    assert history.find("3").order_status == "Cancelled"
    exchange.fetch_canceled_and_closed_orders.assert_awaited_once_with(
        UNIFIED, None, None, {"orderId": "2"}
    )


@pytest.mark.asyncio
async def test_cancel_of_missing_order_reports_not_exists():
    exchange = _exchange()
    exchange.cancel_order.side_effect = OrderNotFound("bybit order not found")
    gateway = await _connected(exchange)

    response = await gateway.cancel_order("APEXUSDT", "abc")

    assert response.result_code == 110001
    assert "too late" in response.message


@pytest.mark.asyncio
async def test_open_position_tolerates_unchanged_leverage():
    exchange = _exchange()
    exchange.set_leverage.side_effect = BadRequest('bybit {"retCode":110043,"retMsg":"leverage not modified"}')
    exchange.create_order.return_value = {"id": "market-1"}
    gateway = await _connected(exchange)

    order_id = await gateway.open_position(side=Direction.SHORT, quantity=10, leverage=5)

    assert order_id == "market-1"
    exchange.set_leverage.assert_awaited_once_with(5, UNIFIED)
    exchange.create_order.assert_awaited_once_with(UNIFIED, "market", "sell", 10.0)


@pytest.mark.asyncio
async def test_open_position_rejection_raises():
    exchange = _exchange()
    exchange.create_order.side_effect = InsufficientFunds('bybit {"retCode":110007,"retMsg":"ab not enough"}')
    gateway = await _connected(exchange)

    with pytest.raises(ExchangeError) as exc_info:
        await gateway.open_position(side=Direction.LONG, quantity=10, leverage=5)

    assert exc_info.value.error_code == "110007"


@pytest.mark.asyncio
async def test_close_releases_exchange():
    exchange = _exchange()
    gateway = await _connected(exchange)

    await gateway.close()

    exchange.close.assert_awaited_once()
    with pytest.raises(GatewayNotConnectedError):
        gateway.round_quantity(1)


@pytest.mark.asyncio
async def test_tick_size_read_from_market_precision():
    gateway = await _connected()

    assert gateway.tick_size == 0.001
    assert gateway.category == "linear"


@pytest.mark.asyncio
async def test_set_leverage_tolerates_unchanged_leverage():
    exchange = _exchange()
    exchange.set_leverage.side_effect = BadRequest('bybit {"retCode":110043,"retMsg":"leverage not modified"}')
    gateway = await _connected(exchange)

    await gateway.set_leverage(3)

    exchange.set_leverage.assert_awaited_once_with(3, UNIFIED)


@pytest.mark.asyncio
async def test_set_leverage_rejection_raises():
    exchange = _exchange()
    exchange.set_leverage.side_effect = BadRequest('bybit {"retCode":110013,"retMsg":"leverage exceeds risk limit"}')
    gateway = await _connected(exchange)

    with pytest.raises(ExchangeError, match="Failed to set leverage 50x"):
        await gateway.set_leverage(50)


@pytest.mark.asyncio
async def test_limit_entry_sets_leverage_on_the_exchange():
    exchange = _exchange()
    exchange.fetch_canceled_and_closed_orders.return_value = [
        {"id": "abc", "status": "closed", "average": 99.97, "info": {}},
    ]
    gateway = await _connected(exchange)
    coordinator = ExecutionCoordinator(ExecutionConfig(timeout_ms=1000), gateway, clock=FakeClock())

    result = await coordinator.execute_entry(Direction.LONG, 10, 100.0, leverage=7)

    assert result.path is ExecutionPath.LIMIT
    assert result.fill_price == 99.97
    exchange.set_leverage.assert_awaited_once_with(7, UNIFIED)
    exchange.create_order.assert_awaited_once_with(
        UNIFIED, "limit", "buy", 10.0, 99.98, {"category": "linear", "timeInForce": "GTC"}
    )
