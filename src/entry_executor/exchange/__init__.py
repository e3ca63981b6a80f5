"""
Exchange package for the limit entry executor.

This package provides:
- The ExchangeGateway contract consumed by the execution engine
- Typed gateway responses and Bybit result codes
- A CCXT-backed Bybit gateway implementation
"""

from .exceptions import (
    ExchangeError,
    NetworkError,
    AuthenticationError,
    ExchangeNotAvailableError,
    GatewayNotConnectedError,
)

from .gateway import (
    ExchangeGateway,
    SubmitOrderResponse,
    OrderListResponse,
    ExchangeOrder,
    CancelResponse,
    SUCCESS_CODE,
    ORDER_NOT_EXISTS_CODE,
    INSUFFICIENT_BALANCE_CODE,
    INVALID_REQUEST_CODE,
    LINEAR_CATEGORY,
)

from .bybit_gateway import BybitGateway, BybitGatewayConfig

__all__ = [
    # Exceptions
    'ExchangeError',
    'NetworkError',
    'AuthenticationError',
    'ExchangeNotAvailableError',
    'GatewayNotConnectedError',
    # Gateway contract
    'ExchangeGateway',
    'SubmitOrderResponse',
    'OrderListResponse',
    'ExchangeOrder',
    'CancelResponse',
    'SUCCESS_CODE',
    'ORDER_NOT_EXISTS_CODE',
    'INSUFFICIENT_BALANCE_CODE',
    'INVALID_REQUEST_CODE',
    'LINEAR_CATEGORY',
    # Bybit
    'BybitGateway',
    'BybitGatewayConfig',
]
