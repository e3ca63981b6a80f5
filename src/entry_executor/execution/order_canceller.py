"""
Best-effort order cancellation.

"Order does not exist or too late to cancel" is an expected race (the order
filled or was cancelled concurrently) and is returned as a typed outcome,
never raised.
"""

from enum import Enum
from typing import Any, Optional

from ..exchange.gateway import ORDER_NOT_EXISTS_CODE
from ..utils import get_logger, LoggerAdapter

ALREADY_GONE_MARKERS = ('not exists', 'too late')


class CancelOutcome(Enum):
    """Result of a cancel request."""
    CANCELLED = "cancelled"
    ALREADY_GONE = "already_gone"
    FAILED = "failed"


class OrderCanceller:
    """Cancels orders through the gateway without ever raising."""

    def __init__(self, gateway: Any, logger: Optional[LoggerAdapter] = None):
        self.gateway = gateway
        self.logger = logger or get_logger(__name__)

    async def cancel(self, order_id: str) -> bool:
        """
        Cancel an order.

        Returns:
            True only when the exchange confirmed the cancellation.
        """
        return await self.try_cancel(order_id) is CancelOutcome.CANCELLED

    async def try_cancel(self, order_id: str) -> CancelOutcome:
        """Cancel an order and report what happened."""
        try:
            response = await self.gateway.cancel_order(self.gateway.symbol, order_id)
        except Exception as e:
            self.logger.warning(f"Cancel request for order {order_id} failed: {e}")
            return CancelOutcome.FAILED

        if response.ok:
            self.logger.log_order_event({
                'order_id': order_id,
                'event': 'cancelled',
            }, msg=f"Order {order_id} cancelled")
            return CancelOutcome.CANCELLED

        if self._is_already_gone(response.result_code, response.message):
            self.logger.info(
                f"Order {order_id} already filled or cancelled: {response.message or response.result_code}"
            )
            return CancelOutcome.ALREADY_GONE

        self.logger.warning(
            f"Cancel of order {order_id} rejected: {response.message or response.result_code}"
        )
        return CancelOutcome.FAILED

    @staticmethod
    def _is_already_gone(result_code: int, message: str) -> bool:
        if result_code == ORDER_NOT_EXISTS_CODE:
            return True
        text = (message or '').lower()
        return any(marker in text for marker in ALREADY_GONE_MARKERS)
