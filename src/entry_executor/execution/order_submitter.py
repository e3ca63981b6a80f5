"""
Limit order submission with bounded retry.

Only transport failures (the gateway call raising) are retried. A response
with a non-zero result code is an API-level rejection and fails immediately:
resubmitting a rejected order repeats the rejection.
"""

from typing import Any, Optional

from ..exchange.gateway import GOOD_TIL_CANCELLED, LIMIT_ORDER_TYPE
from ..utils import get_logger, LoggerAdapter
from .clock import DEFAULT_CLOCK
from .exceptions import OrderRejectedError, OrderSubmissionFailed
from .models import OrderHandle, OrderRequest
from .price_calculator import PriceCalculator


class OrderSubmitter:
    """
    Places GTC limit orders through the gateway.

    A transport failure is ambiguous: the exchange may have accepted the
    order even though the response was lost, so a retry can leave a second
    live order. Callers should reconcile open orders on the symbol when an
    entry raises ``OrderSubmissionFailed``.
    """

    def __init__(
        self,
        gateway: Any,
        max_retries: int = 1,
        retry_delay_ms: int = 0,
        clock: Any = None,
        logger: Optional[LoggerAdapter] = None
    ):
        """
        Args:
            gateway: ExchangeGateway implementation.
            max_retries: Extra attempts after the first (total = max_retries + 1).
            retry_delay_ms: Pause between attempts, 0 for immediate retry.
            clock: Time source used for the pause.
            logger: Logger adapter (defaults to this module's logger).
        """
        if max_retries < 0:
            raise ValueError(f"Invalid max_retries: {max_retries}. Must be >= 0.")

        self.gateway = gateway
        self.max_retries = max_retries
        self.retry_delay_ms = retry_delay_ms
        self.clock = clock or DEFAULT_CLOCK
        self.logger = logger or get_logger(__name__)
        self.price_calculator = PriceCalculator()

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    async def submit(self, request: OrderRequest, limit_price: float) -> OrderHandle:
        """
        Apply leverage, then submit a limit order, retrying transport failures.

        The limit price is aligned to the gateway tick size (LONG down, SHORT
        up) before formatting, so rounding never moves it toward the taker side.

        Args:
            request: Entry request (direction, quantity and leverage are used).
            limit_price: Limit price before tick rounding.

        Returns:
            Handle of the accepted order.

        Raises:
            OrderRejectedError: The exchange returned a non-zero result code.
            OrderSubmissionFailed: Every attempt failed in transport.
            ExchangeError: The exchange rejected the leverage (nothing submitted).
        """
        qty = self.gateway.round_quantity(request.quantity)
        price = self.gateway.round_price(self._align_to_tick(request, limit_price))
        side = request.direction.order_side
        last_error: Optional[Exception] = None

        self.logger.info(
            f"Placing limit order: {side} {qty} {self.gateway.symbol} @ {price} "
            f"(reference {request.reference_price}, {request.leverage}x)"
        )

        await self.gateway.set_leverage(request.leverage)

        for attempt in range(1, self.max_attempts + 1):
            try:
                response = await self.gateway.submit_order(
                    category=self.gateway.category,
                    symbol=self.gateway.symbol,
                    side=side,
                    order_type=LIMIT_ORDER_TYPE,
                    qty=qty,
                    price=price,
                    time_in_force=GOOD_TIL_CANCELLED
                )
            except Exception as e:
                last_error = e
                if attempt < self.max_attempts:
                    self.logger.warning(
                        f"Limit order submission failed (attempt {attempt}/{self.max_attempts}), retrying: {e}"
                    )
                    if self.retry_delay_ms > 0:
                        await self.clock.sleep(self.retry_delay_ms / 1000.0)
                continue

            if not response.ok:
                reason = response.message or f"result code {response.result_code}"
                self.logger.error(f"Limit order rejected by exchange: {reason}")
                raise OrderRejectedError(response.result_code, reason)

            if not response.order_id:
                self.logger.error("Exchange accepted limit order without returning an order id")
                raise OrderRejectedError(response.result_code, "missing order id in response")

            self.logger.log_order_event({
                'order_id': response.order_id,
                'side': side,
                'order_type': LIMIT_ORDER_TYPE,
                'price': price,
                'quantity': qty,
                'attempt': attempt,
            }, msg=f"Limit order placed: {response.order_id}")

            return OrderHandle(order_id=response.order_id, submitted_at=self.clock.monotonic())

        self.logger.error(
            f"Limit order submission failed after {self.max_attempts} attempts: {last_error}"
        )
        raise OrderSubmissionFailed(self.max_attempts, last_error)

    def _align_to_tick(self, request: OrderRequest, limit_price: float) -> float:
        tick_size = getattr(self.gateway, 'tick_size', None)
        if not tick_size:
            return limit_price
        return self.price_calculator.round_to_tick_size(limit_price, tick_size, request.direction)
