"""
Price calculator module for limit entry pricing.

This module computes the limit price of an entry order from a reference
price and a slippage tolerance, and aligns prices to exchange tick sizes.
"""

import logging
import math
from decimal import Decimal, ROUND_DOWN, ROUND_UP
from typing import Optional

from .models import Direction

logger = logging.getLogger(__name__)


def calculate_limit_price(
    direction: Direction,
    reference_price: float,
    slippage_percent: float
) -> float:
    """
    Calculate the limit price for an entry order.

    LONG orders bid below the reference price and SHORT orders ask above it,
    so the order rests on the book as a maker order.

    Args:
        direction: Trade direction.
        reference_price: Current market price.
        slippage_percent: Offset in percent (0.02 means 0.02%).

    Returns:
        Limit price.

    Raises:
        ValueError: If reference_price is negative or not finite, or
            slippage_percent is negative or not finite.
    """
    if not isinstance(reference_price, (int, float)) or not math.isfinite(reference_price) or reference_price < 0:
        raise ValueError(f"Invalid reference price: {reference_price}. Must be non-negative and finite.")

    if not math.isfinite(slippage_percent) or slippage_percent < 0:
        raise ValueError(f"Invalid slippage: {slippage_percent}. Must be non-negative.")

    offset_multiplier = slippage_percent / 100.0

    if direction is Direction.LONG:
        limit_price = reference_price * (1 - offset_multiplier)
    elif direction is Direction.SHORT:
        limit_price = reference_price * (1 + offset_multiplier)
    else:
        raise ValueError(f"Invalid direction: {direction!r}")

    logger.debug(
        f"Calculated {direction.value} limit price: {limit_price:.8f} "
        f"({slippage_percent}% from reference: {reference_price})"
    )
    return limit_price


class PriceCalculator:
    """
    Calculator for limit entry pricing.

    Example:
        ```python
        calc = PriceCalculator(default_slippage_percent=0.02)

        limit_price = calc.calculate_limit_price(Direction.LONG, 100.0)
        # Returns: 99.98 (0.02% below the reference price)

        calc.round_to_tick_size(99.987, tick_size=0.01, direction=Direction.LONG)
        # Returns: 99.98
        ```
    """

    def __init__(self, default_slippage_percent: float = 0.02):
        """
        Args:
            default_slippage_percent: Offset used when none is passed.
        """
        self.default_slippage_percent = default_slippage_percent

    def calculate_limit_price(
        self,
        direction: Direction,
        reference_price: float,
        slippage_percent: Optional[float] = None
    ) -> float:
        slippage = slippage_percent if slippage_percent is not None else self.default_slippage_percent
        return calculate_limit_price(direction, reference_price, slippage)

    def round_to_tick_size(
        self,
        price: float,
        tick_size: float,
        direction: Optional[Direction] = None
    ) -> float:
        """
        Round a price to the exchange tick size.

        LONG prices round down and SHORT prices round up, so alignment never
        moves a maker order toward the opposite side of the book. Without a
        direction the price rounds to the nearest tick.

        Raises:
            ValueError: If tick_size is not positive.
        """
        if tick_size <= 0:
            raise ValueError(f"Invalid tick size: {tick_size}. Must be positive.")

        price_dec = Decimal(str(price))
        tick_dec = Decimal(str(tick_size))
        # Drop float representation noise (100.02000000000001) before directional rounding
        ticks = (price_dec / tick_dec).quantize(Decimal('1e-8'))

        if direction is Direction.LONG:
            rounded = ticks.quantize(Decimal('1'), rounding=ROUND_DOWN) * tick_dec
        elif direction is Direction.SHORT:
            rounded = ticks.quantize(Decimal('1'), rounding=ROUND_UP) * tick_dec
        else:
            rounded = ticks.quantize(Decimal('1')) * tick_dec

        return float(rounded)
