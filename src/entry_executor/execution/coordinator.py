"""
Execution coordinator for limit-order entries with market fallback.

State machine of one entry:

    INIT -> LIMIT_SUBMITTED -> WAITING_FOR_FILL -> FILLED
                                                -> TIMED_OUT -> CANCELLING
                                                   -> FALLBACK_SUBMITTED -> FALLBACK_RESOLVED

FAILED is reachable from any state on an unrecoverable error. Only
submission failures and market fallback failures escape as exceptions;
timeouts and cancel races end in a returned ``ExecutionResult``.
"""

from typing import Any, Optional

from ..config.config_manager import ExecutionConfig
from ..utils import get_logger, LoggerAdapter
from .clock import DEFAULT_CLOCK
from .exceptions import FillPriceUnavailableError
from .fee_calculator import FeeCalculator, OrderType
from .fill_watcher import FillPriceReader, FillWatcher
from .market_fallback import MarketFallbackExecutor
from .models import (
    Direction,
    ExecutionPath,
    ExecutionResult,
    ExecutionState,
    OrderHandle,
    OrderRequest,
)
from .order_canceller import CancelOutcome, OrderCanceller
from .order_submitter import OrderSubmitter
from .price_calculator import PriceCalculator


class ExecutionCoordinator:
    """
    Turns an approved trade decision into a position.

    The coordinator holds only the read-only config and stateless
    collaborators, so concurrent ``execute_entry`` calls are independent:
    each owns its order handle and polling loop.

    Example:
        ```python
        from entry_executor.config import load_config
        from entry_executor.exchange import BybitGateway
        from entry_executor.execution import ExecutionCoordinator, Direction

        config = load_config('config/config.yaml')
        gateway = BybitGateway.from_config(config)
        await gateway.connect()

        coordinator = ExecutionCoordinator(config.execution, gateway)
        result = await coordinator.execute_entry(
            Direction.LONG, quantity=10, current_price=100.0, leverage=5
        )
        if result.filled:
            print(result.path, result.fill_price, result.fee_paid)
        ```
    """

    def __init__(
        self,
        config: ExecutionConfig,
        gateway: Any,
        logger: Any = None,
        clock: Any = None,
        fee_calculator: Optional[FeeCalculator] = None,
        price_calculator: Optional[PriceCalculator] = None,
        submitter: Optional[OrderSubmitter] = None,
        watcher: Optional[FillWatcher] = None,
        canceller: Optional[OrderCanceller] = None,
        fallback: Optional[MarketFallbackExecutor] = None,
        price_reader: Optional[FillPriceReader] = None
    ):
        """
        Initialize the coordinator.

        Args:
            config: Execution settings, read-only for the coordinator's lifetime.
            gateway: ExchangeGateway implementation.
            logger: LoggerAdapter or plain logging.Logger.
            clock: Time source for polling and retry delays.
            fee_calculator, price_calculator, submitter, watcher, canceller,
            fallback, price_reader: Optional collaborator overrides; built
                from ``config`` when omitted.
        """
        if logger is None:
            logger = get_logger(__name__)
        elif not isinstance(logger, LoggerAdapter):
            logger = LoggerAdapter(logger)

        self.config = config
        self.gateway = gateway
        self.logger = logger
        self.clock = clock or DEFAULT_CLOCK

        self.fee_calculator = fee_calculator or FeeCalculator.from_config(config)
        self.price_calculator = price_calculator or PriceCalculator(config.slippage_percent)
        self.price_reader = price_reader or FillPriceReader(
            gateway,
            retry_interval_ms=config.poll_interval_ms,
            clock=self.clock,
            logger=logger
        )
        self.submitter = submitter or OrderSubmitter(
            gateway,
            max_retries=config.max_retries,
            retry_delay_ms=config.retry_delay_ms,
            clock=self.clock,
            logger=logger
        )
        self.watcher = watcher or FillWatcher(
            gateway,
            poll_interval_ms=config.poll_interval_ms,
            clock=self.clock,
            logger=logger
        )
        self.canceller = canceller or OrderCanceller(gateway, logger=logger)
        self.fallback = fallback or MarketFallbackExecutor(
            gateway,
            fee_calculator=self.fee_calculator,
            price_reader=self.price_reader,
            logger=logger
        )

    async def execute_entry(
        self,
        direction: Direction,
        quantity: float,
        current_price: float,
        leverage: int
    ) -> ExecutionResult:
        """
        Execute one entry.

        Args:
            direction: LONG or SHORT.
            quantity: Position size in contracts.
            current_price: Reference price for the limit offset.
            leverage: Leverage for the position.

        Returns:
            Exactly one ExecutionResult, from the limit path or the market path.

        Raises:
            ValueError: Invalid request parameters.
            OrderRejectedError: The exchange rejected the limit order.
            OrderSubmissionFailed: Limit submission retries were exhausted.
            FillPriceUnavailableError: A fill happened but its price was never reported.
            Exception: Any market fallback failure, unchanged.
        """
        request = OrderRequest(
            direction=direction,
            quantity=quantity,
            reference_price=current_price,
            leverage=leverage
        )

        with self.logger.correlation_context():
            state = ExecutionState.INIT
            try:
                if not self.config.enabled:
                    self.logger.info("Limit execution disabled, using market order")
                    state = self._transition(state, ExecutionState.FALLBACK_SUBMITTED)
                    result = await self._market_entry(request, limit_price=None)
                    self._transition(state, ExecutionState.FALLBACK_RESOLVED, result.order_id)
                    return result

                limit_price = self.price_calculator.calculate_limit_price(
                    direction, current_price, self.config.slippage_percent
                )
                handle = await self.submitter.submit(request, limit_price)
                state = self._transition(state, ExecutionState.LIMIT_SUBMITTED, handle.order_id)

                state = self._transition(state, ExecutionState.WAITING_FOR_FILL, handle.order_id)
                filled = await self.watcher.wait_for_fill(handle.order_id, self.config.timeout_ms)

                if filled:
                    state = self._transition(state, ExecutionState.FILLED, handle.order_id)
                    return await self._resolve_limit_fill(request, handle, limit_price)

                state = self._transition(state, ExecutionState.TIMED_OUT, handle.order_id)
                state = self._transition(state, ExecutionState.CANCELLING, handle.order_id)

                # Advisory: the order may have filled between the last poll
                # and this request, so the outcome never changes the flow.
                outcome = await self.canceller.try_cancel(handle.order_id)
                if outcome is not CancelOutcome.CANCELLED:
                    self.logger.info(
                        f"Cancellation of {handle.order_id} not confirmed ({outcome.value}), continuing"
                    )

                if not self.config.fallback_to_market:
                    self.logger.info(f"Limit order {handle.order_id} not filled, no position opened")
                    return ExecutionResult.not_filled(handle.order_id, limit_price)

                state = self._transition(state, ExecutionState.FALLBACK_SUBMITTED, handle.order_id)
                result = await self._market_entry(request, limit_price=limit_price)
                self._transition(state, ExecutionState.FALLBACK_RESOLVED, result.order_id)
                return result

            except Exception as e:
                self.logger.error(f"Entry execution failed in state {state.value}: {e}")
                self._transition(state, ExecutionState.FAILED)
                raise

    async def _resolve_limit_fill(
        self,
        request: OrderRequest,
        handle: OrderHandle,
        limit_price: float
    ) -> ExecutionResult:
        fill_price = await self.price_reader.read(handle.order_id)
        if fill_price is None:
            raise FillPriceUnavailableError(handle.order_id, self.price_reader.attempts)

        fee_paid = self.fee_calculator.calculate(request.quantity, fill_price, OrderType.LIMIT)
        saved = self.fee_calculator.savings(request.quantity, fill_price)

        result = ExecutionResult(
            order_id=handle.order_id,
            filled=True,
            fill_price=fill_price,
            fee_paid=fee_paid,
            path=ExecutionPath.LIMIT,
            limit_price=limit_price,
        )
        self.logger.log_order_event(
            result.to_dict(),
            msg=f"Limit order filled: {handle.order_id} @ {fill_price} (maker fee {fee_paid:.6f}, saved {saved:.6f})"
        )
        return result

    async def _market_entry(self, request: OrderRequest, limit_price: Optional[float]) -> ExecutionResult:
        fill = await self.fallback.execute(request)
        return ExecutionResult(
            order_id=fill.order_id,
            filled=True,
            fill_price=fill.fill_price,
            fee_paid=fill.fee_paid,
            path=ExecutionPath.MARKET,
            limit_price=limit_price,
        )

    def _transition(
        self,
        current: ExecutionState,
        target: ExecutionState,
        order_id: Optional[str] = None
    ) -> ExecutionState:
        self.logger.debug(
            f"Entry state {current.value} -> {target.value}"
            + (f" (order {order_id})" if order_id else "")
        )
        return target
