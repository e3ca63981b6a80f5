"""
Exceptions raised by the execution engine.

Only conditions that leave the caller without a definitive result surface as
exceptions. Fill timeouts, cancel races and transient poll failures are part
of the protocol and are reflected in ``ExecutionResult`` instead.
"""

from typing import Optional


class ExecutionError(Exception):
    """Base exception for execution errors."""

    def __init__(self, message: str, error_code: str = None, details: dict = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class OrderSubmissionFailed(ExecutionError):
    """
    Raised when every limit order submission attempt failed in transport.

    The last attempt's exception is kept in ``last_error``. An order may
    still exist on the exchange if a failed attempt reached it.
    """

    def __init__(self, attempts: int, last_error: Optional[Exception] = None):
        super().__init__(
            f"Failed to place limit order after {attempts} attempts: {last_error}",
            error_code="ORDER_SUBMISSION_FAILED",
            details={'attempts': attempts}
        )
        self.attempts = attempts
        self.last_error = last_error


class OrderRejectedError(ExecutionError):
    """
    Raised when the exchange rejects a submission with a non-zero result code.

    Examples: insufficient balance, invalid quantity. Never retried.
    """

    def __init__(self, result_code: int, reason: str):
        super().__init__(
            f"Limit order rejected: {reason}",
            error_code="ORDER_REJECTED",
            details={'result_code': result_code}
        )
        self.result_code = result_code
        self.reason = reason


class FillPriceUnavailableError(ExecutionError):
    """
    Raised when the exchange never reports an average price for a filled order.

    The position exists on the exchange; the caller has to reconcile it.
    """

    def __init__(self, order_id: str, attempts: int):
        super().__init__(
            f"No average fill price reported for order {order_id} after {attempts} reads",
            error_code="FILL_PRICE_UNAVAILABLE",
            details={'order_id': order_id, 'attempts': attempts}
        )
        self.order_id = order_id
        self.attempts = attempts
