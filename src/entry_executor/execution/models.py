"""
Data model for limit-order entry execution.

Every object here is created at the start of an entry execution and discarded
when it returns; nothing is persisted across calls.
"""

import math
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Optional


class Direction(Enum):
    """Trade direction supplied by the signal layer."""
    LONG = "long"
    SHORT = "short"

    @property
    def order_side(self) -> str:
        """Exchange order side that opens a position in this direction."""
        return "Buy" if self is Direction.LONG else "Sell"


class OrderStatus(Enum):
    """Order status as classified from a fresh exchange query."""
    NEW = "new"
    FILLED = "filled"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"

    @classmethod
    def from_exchange(cls, raw_status: Optional[str]) -> 'OrderStatus':
        """
        Classify a Bybit ``orderStatus`` string.

        Args:
            raw_status: Status as reported by the exchange (e.g. 'Filled').

        Returns:
            The matching OrderStatus, UNKNOWN for anything unrecognised.
        """
        if not raw_status:
            return cls.UNKNOWN
        return _STATUS_MAPPING.get(raw_status.lower(), cls.UNKNOWN)

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.FILLED, OrderStatus.CANCELLED)


_STATUS_MAPPING = {
    'new': OrderStatus.NEW,
    'created': OrderStatus.NEW,
    'untriggered': OrderStatus.NEW,
    'partiallyfilled': OrderStatus.NEW,
    'filled': OrderStatus.FILLED,
    'cancelled': OrderStatus.CANCELLED,
    'canceled': OrderStatus.CANCELLED,
    'rejected': OrderStatus.CANCELLED,
    'deactivated': OrderStatus.CANCELLED,
    'partiallyfilledcanceled': OrderStatus.CANCELLED,
}


class ExecutionPath(Enum):
    """Which path produced an ExecutionResult."""
    LIMIT = "limit"
    MARKET = "market"
    NONE = "none"


class ExecutionState(Enum):
    """States of one entry execution."""
    INIT = "init"
    LIMIT_SUBMITTED = "limit_submitted"
    WAITING_FOR_FILL = "waiting_for_fill"
    FILLED = "filled"
    TIMED_OUT = "timed_out"
    CANCELLING = "cancelling"
    FALLBACK_SUBMITTED = "fallback_submitted"
    FALLBACK_RESOLVED = "fallback_resolved"
    FAILED = "failed"


@dataclass(frozen=True)
class OrderRequest:
    """One entry attempt. Never mutated."""
    direction: Direction
    quantity: float
    reference_price: float
    leverage: int = 1

    def __post_init__(self):
        if not isinstance(self.direction, Direction):
            raise ValueError(f"Invalid direction: {self.direction!r}")
        if not math.isfinite(self.quantity) or self.quantity <= 0:
            raise ValueError(f"Invalid quantity: {self.quantity}. Must be positive.")
        # Stricter than the price formula: an entry priced at 0 can never be placed
        if not math.isfinite(self.reference_price) or self.reference_price <= 0:
            raise ValueError(f"Invalid reference price: {self.reference_price}. Must be positive.")
        if self.leverage < 1:
            raise ValueError(f"Invalid leverage: {self.leverage}. Must be >= 1.")


@dataclass(frozen=True)
class OrderHandle:
    """A live limit order owned by one entry execution."""
    order_id: str
    submitted_at: float


@dataclass(frozen=True)
class MarketFill:
    """Outcome of a market fallback."""
    order_id: str
    fill_price: float
    fee_paid: float


@dataclass(frozen=True)
class ExecutionResult:
    """The single output of one entry execution."""
    order_id: str
    filled: bool
    fill_price: float
    fee_paid: float
    path: ExecutionPath = ExecutionPath.NONE
    limit_price: Optional[float] = None

    def __post_init__(self):
        if self.fee_paid < 0:
            raise ValueError(f"fee_paid must be >= 0, got {self.fee_paid}")

    @classmethod
    def not_filled(cls, order_id: str, limit_price: Optional[float] = None) -> 'ExecutionResult':
        """Result of a limit order that timed out without a fallback."""
        return cls(
            order_id=order_id,
            filled=False,
            fill_price=0.0,
            fee_paid=0.0,
            path=ExecutionPath.NONE,
            limit_price=limit_price,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['path'] = self.path.value
        return data
