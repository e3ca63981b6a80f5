import asyncio
import logging

import pytest

from entry_executor.config import ExecutionConfig
from entry_executor.exchange.exceptions import ExchangeError, NetworkError
from entry_executor.exchange.gateway import CancelResponse, SubmitOrderResponse
from entry_executor.execution import (
    Direction,
    ExecutionCoordinator,
    ExecutionPath,
    FillPriceUnavailableError,
    OrderRejectedError,
    OrderSubmissionFailed,
)

from tests.conftest import order_list


def _config(**overrides):
    values = dict(timeout_ms=1000, slippage_percent=0.02, poll_interval_ms=200, max_retries=1)
    values.update(overrides)
    return ExecutionConfig(**values)


def _coordinator(gateway, clock, **overrides):
    return ExecutionCoordinator(_config(**overrides), gateway, clock=clock)


@pytest.mark.asyncio
async def test_limit_fill_pays_maker_fee_at_reported_price(gateway, clock):
    gateway.get_historic_orders.return_value = order_list(("order-1", "Filled", 99.97))

    result = await _coordinator(gateway, clock).execute_entry(Direction.LONG, 10, 100.0, 5)

    assert result.filled is True
    assert result.path is ExecutionPath.LIMIT
    assert result.order_id == "order-1"
    assert result.fill_price == 99.97
    assert result.fee_paid == pytest.approx(10 * 99.97 * 0.0001)
    assert result.limit_price == pytest.approx(99.98)
    assert gateway.submit_order.await_args.kwargs["price"] == "99.98"
    gateway.cancel_order.assert_not_awaited()
    gateway.open_position.assert_not_awaited()


@pytest.mark.asyncio
async def test_short_entry_prices_above_reference(gateway, clock):
    gateway.get_historic_orders.return_value = order_list(("order-1", "Filled", 100.02))

    result = await _coordinator(gateway, clock).execute_entry(Direction.SHORT, 10, 100.0, 5)

    assert gateway.submit_order.await_args.kwargs["side"] == "Sell"
    assert gateway.submit_order.await_args.kwargs["price"] == "100.02"
    assert result.path is ExecutionPath.LIMIT


@pytest.mark.asyncio
async def test_timeout_cancels_before_market_fallback(gateway, clock):
    calls = []
    gateway.get_active_orders.return_value = order_list(("order-1", "New"))
    gateway.get_historic_orders.return_value = order_list(("market-1", "Filled", 100.05))
    gateway.cancel_order.side_effect = lambda *args: calls.append("cancel") or CancelResponse(0)
    gateway.open_position.side_effect = lambda **kwargs: calls.append("open") or "market-1"
    started = clock.now

    result = await _coordinator(gateway, clock).execute_entry(Direction.LONG, 10, 100.0, 5)

    assert calls == ["cancel", "open"]
    gateway.cancel_order.assert_awaited_once_with("APEXUSDT", "order-1")
    gateway.open_position.assert_awaited_once_with(side=Direction.LONG, quantity=10, leverage=5)
    assert result.filled is True
    assert result.path is ExecutionPath.MARKET
    assert result.order_id == "market-1"
    assert result.fill_price == 100.05
    assert result.fee_paid == pytest.approx(10 * 100.05 * 0.0006)
    assert clock.now - started >= 1.0


@pytest.mark.asyncio
async def test_cancel_race_still_falls_back(gateway, clock):
    gateway.get_active_orders.return_value = order_list(("order-1", "New"))
    gateway.get_historic_orders.return_value = order_list(("market-1", "Filled", 100.05))
    gateway.cancel_order.return_value = CancelResponse(110001, message="order not exists or too late to cancel")

    result = await _coordinator(gateway, clock).execute_entry(Direction.LONG, 10, 100.0, 5)

    assert result.path is ExecutionPath.MARKET
    gateway.open_position.assert_awaited_once()


@pytest.mark.asyncio
async def test_timeout_without_fallback_returns_not_filled(gateway, clock):
    gateway.get_active_orders.return_value = order_list(("order-1", "New"))

    result = await _coordinator(gateway, clock, fallback_to_market=False).execute_entry(
        Direction.LONG, 10, 100.0, 5
    )

    assert result.filled is False
    assert result.order_id == "order-1"
    assert result.fill_price == 0.0
    assert result.fee_paid == 0.0
    assert result.path is ExecutionPath.NONE
    gateway.cancel_order.assert_awaited_once()
    gateway.open_position.assert_not_awaited()


@pytest.mark.asyncio
async def test_disabled_goes_straight_to_market(gateway, clock):
    gateway.get_historic_orders.return_value = order_list(("market-1", "Filled", 100.05))

    result = await _coordinator(gateway, clock, enabled=False).execute_entry(Direction.LONG, 10, 100.0, 5)

    gateway.submit_order.assert_not_awaited()
    gateway.open_position.assert_awaited_once()
    assert result.path is ExecutionPath.MARKET
    assert result.limit_price is None
    assert result.fee_paid == pytest.approx(10 * 100.05 * 0.0006)


@pytest.mark.asyncio
async def test_submission_failure_propagates_without_fallback(gateway, clock):
    gateway.submit_order.side_effect = NetworkError("Network error")

    with pytest.raises(OrderSubmissionFailed):
        await _coordinator(gateway, clock).execute_entry(Direction.LONG, 10, 100.0, 5)

    assert gateway.submit_order.await_count == 2
    gateway.open_position.assert_not_awaited()


@pytest.mark.asyncio
async def test_rejection_propagates_without_fallback(gateway, clock):
    gateway.submit_order.return_value = SubmitOrderResponse(110007, message="Insufficient balance")

    with pytest.raises(OrderRejectedError, match="Insufficient balance"):
        await _coordinator(gateway, clock).execute_entry(Direction.LONG, 10, 100.0, 5)

    gateway.open_position.assert_not_awaited()


@pytest.mark.asyncio
async def test_market_fallback_error_propagates(gateway, clock):
    gateway.get_active_orders.return_value = order_list(("order-1", "New"))
    gateway.open_position.side_effect = ExchangeError("Market order failed")

    with pytest.raises(ExchangeError, match="Market order failed"):
        await _coordinator(gateway, clock).execute_entry(Direction.LONG, 10, 100.0, 5)


@pytest.mark.asyncio
async def test_filled_without_reported_price_raises(gateway, clock):
    gateway.get_active_orders.return_value = order_list(("order-1", "Filled", None))

    with pytest.raises(FillPriceUnavailableError):
        await _coordinator(gateway, clock).execute_entry(Direction.LONG, 10, 100.0, 5)

    gateway.open_position.assert_not_awaited()


@pytest.mark.asyncio
async def test_invalid_request_rejected_before_any_exchange_call(gateway, clock):
    with pytest.raises(ValueError):
        await _coordinator(gateway, clock).execute_entry(Direction.LONG, 0, 100.0, 5)

    gateway.submit_order.assert_not_awaited()


@pytest.mark.asyncio
async def test_concurrent_entries_are_independent(gateway, clock):
    gateway.submit_order.side_effect = [
        SubmitOrderResponse(0, order_id="order-1"),
        SubmitOrderResponse(0, order_id="order-2"),
    ]
    gateway.get_historic_orders.return_value = order_list(
        ("order-1", "Filled", 99.97),
        ("order-2", "Filled", 100.03),
    )
    coordinator = _coordinator(gateway, clock)

    results = await asyncio.gather(
        coordinator.execute_entry(Direction.LONG, 10, 100.0, 5),
        coordinator.execute_entry(Direction.SHORT, 5, 100.0, 5),
    )

    assert {r.order_id for r in results} == {"order-1", "order-2"}
    assert all(r.path is ExecutionPath.LIMIT for r in results)


@pytest.mark.asyncio
async def test_plain_logger_is_wrapped(gateway, clock):
    gateway.get_historic_orders.return_value = order_list(("order-1", "Filled", 99.97))
    coordinator = ExecutionCoordinator(_config(), gateway, logger=logging.getLogger("test"), clock=clock)

    result = await coordinator.execute_entry(Direction.LONG, 10, 100.0, 5)

    assert result.filled is True


@pytest.mark.asyncio
async def test_limit_path_applies_requested_leverage(gateway, clock):
    gateway.get_historic_orders.return_value = order_list(("order-1", "Filled", 99.97))

    result = await _coordinator(gateway, clock).execute_entry(Direction.LONG, 10, 100.0, leverage=7)

    assert result.path is ExecutionPath.LIMIT
    gateway.set_leverage.assert_awaited_once_with(7)
    gateway.open_position.assert_not_awaited()
