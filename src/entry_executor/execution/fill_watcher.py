"""
Fill watching and fill price lookup.

Both classes here are read-only: they query order state from the gateway and
never modify it. Status is re-fetched on every poll.
"""

from typing import Any, Optional

from ..utils import get_logger, LoggerAdapter
from .clock import DEFAULT_CLOCK
from .models import OrderStatus

DEFAULT_POLL_INTERVAL_MS = 200
DEFAULT_PRICE_READ_ATTEMPTS = 3


def _parse_price(value: Any) -> Optional[float]:
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    return price if price > 0 else None


class FillWatcher:
    """
    Polls the exchange until a limit order is filled, cancelled, or the
    deadline passes.

    Example:
        ```python
        watcher = FillWatcher(gateway, poll_interval_ms=200)
        filled = await watcher.wait_for_fill(order_id, timeout_ms=5000)
        ```
    """

    def __init__(
        self,
        gateway: Any,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        clock: Any = None,
        logger: Optional[LoggerAdapter] = None
    ):
        if poll_interval_ms <= 0:
            raise ValueError(f"Invalid poll interval: {poll_interval_ms}. Must be positive.")

        self.gateway = gateway
        self.poll_interval = poll_interval_ms / 1000.0
        self.clock = clock or DEFAULT_CLOCK
        self.logger = logger or get_logger(__name__)

    async def wait_for_fill(self, order_id: str, timeout_ms: int) -> bool:
        """
        Wait for a limit order to reach a terminal state.

        At least one status check is made, and the loop never sleeps past
        ``timeout_ms`` from the call.

        Args:
            order_id: Order to watch.
            timeout_ms: Deadline relative to now.

        Returns:
            True if the order filled, False if it was cancelled or is still
            open at the deadline.
        """
        started_at = self.clock.monotonic()
        deadline = started_at + max(0, timeout_ms) / 1000.0
        last_status = None
        polls = 0

        self.logger.info(f"Waiting for order {order_id} to fill (timeout: {timeout_ms}ms)")

        while True:
            polls += 1
            status = await self.check_status(order_id)

            if status != last_status:
                self.logger.debug(f"Order {order_id} status: {status.value} (poll {polls})")
                last_status = status

            if status is OrderStatus.FILLED:
                self.logger.info(f"Order {order_id} filled after {polls} polls")
                return True

            if status is OrderStatus.CANCELLED:
                self.logger.info(f"Order {order_id} was cancelled before filling")
                return False

            now = self.clock.monotonic()
            if now >= deadline:
                self.logger.info(
                    f"Timeout waiting for order {order_id} to fill "
                    f"({(now - started_at) * 1000:.0f}ms, {polls} polls)"
                )
                return False

            await self.clock.sleep(min(self.poll_interval, deadline - now))

    async def check_status(self, order_id: str) -> OrderStatus:
        """
        Classify an order from a fresh pair of exchange queries.

        NEW while the order is listed as active; FILLED or CANCELLED once it
        is terminal; UNKNOWN when a query fails or the order is in neither
        list yet (history can lag behind the active list).
        """
        symbol = self.gateway.symbol

        try:
            active = await self.gateway.get_active_orders(symbol)
        except Exception as e:
            self.logger.warning(f"Failed to query active orders for {order_id}: {e}")
            return OrderStatus.UNKNOWN

        if not active.ok:
            self.logger.warning(f"Active order query rejected: {active.message or active.result_code}")
            return OrderStatus.UNKNOWN

        listed = active.find(order_id)
        if listed is not None:
            status = OrderStatus.from_exchange(listed.order_status)
            # The realtime endpoint also lists recently closed orders
            return status if status.is_terminal else OrderStatus.NEW

        try:
            history = await self.gateway.get_historic_orders(symbol, order_id=order_id)
        except Exception as e:
            self.logger.warning(f"Failed to query order history for {order_id}: {e}")
            return OrderStatus.UNKNOWN

        if not history.ok:
            self.logger.warning(f"Order history query rejected: {history.message or history.result_code}")
            return OrderStatus.UNKNOWN

        order = history.find(order_id)
        if order is None:
            self.logger.debug(f"Order {order_id} not active and not yet in history")
            return OrderStatus.UNKNOWN

        status = OrderStatus.from_exchange(order.order_status)
        return status if status.is_terminal else OrderStatus.UNKNOWN


class FillPriceReader:
    """Reads the average fill price of an order from order history."""

    def __init__(
        self,
        gateway: Any,
        attempts: int = DEFAULT_PRICE_READ_ATTEMPTS,
        retry_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        clock: Any = None,
        logger: Optional[LoggerAdapter] = None
    ):
        if attempts < 1:
            raise ValueError(f"Invalid attempts: {attempts}. Must be >= 1.")

        self.gateway = gateway
        self.attempts = attempts
        self.retry_interval = retry_interval_ms / 1000.0
        self.clock = clock or DEFAULT_CLOCK
        self.logger = logger or get_logger(__name__)

    async def read(self, order_id: str) -> Optional[float]:
        """
        Return the reported average fill price, re-reading while history lags.

        Returns:
            Average price, or None if no positive price was reported within
            ``attempts`` reads.
        """
        for attempt in range(1, self.attempts + 1):
            try:
                history = await self.gateway.get_historic_orders(self.gateway.symbol, order_id=order_id)
            except Exception as e:
                self.logger.warning(f"Failed to read fill price for {order_id} (read {attempt}): {e}")
                history = None

            if history is not None and history.ok:
                order = history.find(order_id)
                price = _parse_price(order.avg_price) if order is not None else None
                if price is not None:
                    return price

            if attempt < self.attempts:
                self.logger.debug(f"Average price for {order_id} not reported yet, re-reading")
                await self.clock.sleep(self.retry_interval)

        return None
