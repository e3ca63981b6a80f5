"""
Custom exceptions for the exchange gateway module.

This module defines the exceptions raised by gateway adapters when talking to
the exchange through CCXT. Only transport-level failures are raised; API-level
rejections are reported through result codes on the gateway responses.
"""


class ExchangeError(Exception):
    """Base exception for all exchange-related errors."""

    def __init__(self, message: str, error_code: str = None, details: dict = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        if self.error_code:
            return f"[{self.error_code}] {self.message}"
        return self.message


class NetworkError(ExchangeError):
    """
    Exception raised for network-related errors.

    These errors are typically transient and can be retried.
    Examples: connection timeouts, DNS resolution failures, connection refused.
    """

    def __init__(self, message: str = "Network error occurred", details: dict = None):
        super().__init__(message, error_code="NETWORK_ERROR", details=details)


class AuthenticationError(ExchangeError):
    """
    Exception raised for authentication failures.

    These errors should not be retried without fixing the credentials.
    """

    def __init__(self, message: str = "Authentication failed", details: dict = None):
        super().__init__(message, error_code="AUTHENTICATION_ERROR", details=details)


class ExchangeNotAvailableError(ExchangeError):
    """
    Exception raised when the exchange is unavailable.

    Examples: exchange maintenance, DDoS protection, temporary outage.
    """

    def __init__(self, message: str = "Exchange is not available", details: dict = None):
        super().__init__(message, error_code="EXCHANGE_NOT_AVAILABLE", details=details)


class GatewayNotConnectedError(ExchangeError):
    """Raised when a gateway method is called before connect()."""

    def __init__(self, message: str = "Gateway not connected. Call connect() first."):
        super().__init__(message, error_code="NOT_CONNECTED")
