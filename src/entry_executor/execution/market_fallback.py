"""
Market order fallback.

Opens the position with an immediate market order when the limit order did
not fill. There is no recovery tier beyond this: gateway errors propagate
unchanged.
"""

from typing import Any, Optional

from ..exchange.gateway import MARKET_ORDER_TYPE
from ..utils import get_logger, LoggerAdapter
from .exceptions import FillPriceUnavailableError
from .fee_calculator import FeeCalculator, OrderType
from .fill_watcher import FillPriceReader
from .models import MarketFill, OrderRequest


class MarketFallbackExecutor:
    """Executes an entry as a market order and prices its fill at the taker rate."""

    def __init__(
        self,
        gateway: Any,
        fee_calculator: Optional[FeeCalculator] = None,
        price_reader: Optional[FillPriceReader] = None,
        logger: Optional[LoggerAdapter] = None
    ):
        self.gateway = gateway
        self.fee_calculator = fee_calculator or FeeCalculator()
        self.logger = logger or get_logger(__name__)
        self.price_reader = price_reader or FillPriceReader(gateway, logger=self.logger)

    async def execute(self, request: OrderRequest) -> MarketFill:
        """
        Open the position with a market order.

        Raises:
            FillPriceUnavailableError: History never reported an average price.
            Exception: Any gateway error from opening the position, unchanged.
        """
        self.logger.warning(
            f"Falling back to MARKET order (taker fees apply): "
            f"{request.direction.order_side} {request.quantity} {self.gateway.symbol}"
        )

        order_id = await self.gateway.open_position(
            side=request.direction,
            quantity=request.quantity,
            leverage=request.leverage
        )

        fill_price = await self.price_reader.read(order_id)
        if fill_price is None:
            self.logger.error(f"Market order {order_id} executed but no fill price was reported")
            raise FillPriceUnavailableError(order_id, self.price_reader.attempts)

        fee_paid = self.fee_calculator.calculate(request.quantity, fill_price, OrderType.MARKET)

        self.logger.log_order_event({
            'order_id': order_id,
            'side': request.direction.order_side,
            'order_type': MARKET_ORDER_TYPE,
            'quantity': request.quantity,
            'fill_price': fill_price,
            'fee_paid': fee_paid,
        }, msg=f"Market order filled: {order_id} @ {fill_price}")

        return MarketFill(order_id=order_id, fill_price=fill_price, fee_paid=fee_paid)
