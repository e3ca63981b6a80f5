"""
Exchange gateway contract used by the execution engine.

The execution engine never talks to an exchange SDK directly. Everything goes
through an ``ExchangeGateway``: a small async surface modelled on Bybit's v5
order endpoints, returning typed responses that carry the exchange result code.

Result code conventions:
    SUCCESS_CODE (0): the request was accepted.
    ORDER_NOT_EXISTS_CODE (110001): "order not exists or too late to cancel".
    Any other non-zero code: API-level rejection (e.g. insufficient balance).
"""

from dataclasses import dataclass, field
from typing import List, Optional

SUCCESS_CODE = 0
INVALID_REQUEST_CODE = 10001
ORDER_NOT_EXISTS_CODE = 110001
INSUFFICIENT_BALANCE_CODE = 110007

LINEAR_CATEGORY = "linear"
LIMIT_ORDER_TYPE = "Limit"
MARKET_ORDER_TYPE = "Market"
GOOD_TIL_CANCELLED = "GTC"


@dataclass(frozen=True)
class SubmitOrderResponse:
    """Response of an order submission."""
    result_code: int
    order_id: Optional[str] = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.result_code == SUCCESS_CODE


@dataclass(frozen=True)
class ExchangeOrder:
    """One order as listed by the active or historic order endpoints."""
    order_id: str
    order_status: str
    avg_price: Optional[float] = None


@dataclass(frozen=True)
class OrderListResponse:
    """Response of an active or historic order query."""
    result_code: int
    orders: List[ExchangeOrder] = field(default_factory=list)
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.result_code == SUCCESS_CODE

    def find(self, order_id: str) -> Optional[ExchangeOrder]:
        """Return the listed order with ``order_id``, if any."""
        for order in self.orders:
            if order.order_id == order_id:
                return order
        return None


@dataclass(frozen=True)
class CancelResponse:
    """Response of a cancel request."""
    result_code: int
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.result_code == SUCCESS_CODE


class ExchangeGateway:
    """
    Async exchange surface consumed by the execution engine.

    Order and query methods raise only for transport-level failures (network errors,
    timeouts). API-level outcomes are reported through ``result_code``.

    Attributes:
        symbol: Instrument traded through this gateway (e.g. 'APEXUSDT').
        category: Product category sent with every order (e.g. 'linear').
        tick_size: Minimum price increment, None when unknown.
    """

    symbol: str = ""
    category: str = LINEAR_CATEGORY
    tick_size: Optional[float] = None

    def round_price(self, price: float) -> str:
        """Format a price to the instrument's tick size."""
        raise NotImplementedError

    def round_quantity(self, quantity: float) -> str:
        """Format a quantity to the instrument's lot size."""
        raise NotImplementedError

    async def submit_order(
        self,
        category: str,
        symbol: str,
        side: str,
        order_type: str,
        qty: str,
        price: Optional[str] = None,
        time_in_force: Optional[str] = None
    ) -> SubmitOrderResponse:
        raise NotImplementedError

    async def get_active_orders(self, symbol: str) -> OrderListResponse:
        raise NotImplementedError

    async def get_historic_orders(
        self,
        symbol: str,
        order_id: Optional[str] = None
    ) -> OrderListResponse:
        raise NotImplementedError

    async def cancel_order(self, symbol: str, order_id: str) -> CancelResponse:
        raise NotImplementedError

    async def set_leverage(self, leverage: int) -> None:
        """
        Apply leverage to the symbol. Already-set leverage is not an error.

        Raises:
            ExchangeError: If the exchange rejects the leverage.
        """
        raise NotImplementedError

    async def open_position(self, side, quantity: float, leverage: int) -> str:
        """
        Open a position with an immediate market order.

        Args:
            side: ``Direction`` of the position.
            quantity: Position size in contracts.
            leverage: Leverage to apply before the order is placed.

        Returns:
            Exchange order id of the market order.
        """
        raise NotImplementedError
