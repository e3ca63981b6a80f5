"""
Fee calculator for entry fills.

Limit fills pay the maker rate and market fills pay the taker rate.
"""

from enum import Enum

DEFAULT_MAKER_FEE_RATE = 0.0001  # 0.01%
DEFAULT_TAKER_FEE_RATE = 0.0006  # 0.06%


class OrderType(Enum):
    """Order type for fee calculation."""
    LIMIT = "limit"
    MARKET = "market"


class FeeCalculator:
    """Computes ``quantity * price * rate`` for the order type's fee tier."""

    def __init__(
        self,
        maker_fee_rate: float = DEFAULT_MAKER_FEE_RATE,
        taker_fee_rate: float = DEFAULT_TAKER_FEE_RATE
    ):
        if maker_fee_rate < 0 or taker_fee_rate < 0:
            raise ValueError("Fee rates must be non-negative")
        self.maker_fee_rate = maker_fee_rate
        self.taker_fee_rate = taker_fee_rate

    @classmethod
    def from_config(cls, config) -> 'FeeCalculator':
        return cls(config.maker_fee_rate, config.taker_fee_rate)

    def rate_for(self, order_type: OrderType) -> float:
        if order_type is OrderType.LIMIT:
            return self.maker_fee_rate
        if order_type is OrderType.MARKET:
            return self.taker_fee_rate
        raise ValueError(f"Unsupported order type: {order_type!r}")

    def calculate(self, quantity: float, price: float, order_type: OrderType) -> float:
        """
        Calculate the fee of a fill.

        Args:
            quantity: Filled quantity.
            price: Average fill price.
            order_type: LIMIT (maker) or MARKET (taker).

        Returns:
            Fee in quote currency, never negative.

        Raises:
            ValueError: On negative quantity or price.
        """
        if quantity < 0 or price < 0:
            raise ValueError(f"Quantity and price must be non-negative (got {quantity}, {price})")
        return quantity * price * self.rate_for(order_type)

    def savings(self, quantity: float, price: float) -> float:
        """Fee saved by filling as maker instead of taker."""
        return (
            self.calculate(quantity, price, OrderType.MARKET)
            - self.calculate(quantity, price, OrderType.LIMIT)
        )
