"""
CCXT-backed Bybit gateway.

This module adapts ``ccxt.async_support.bybit`` to the ``ExchangeGateway``
contract used by the execution engine:
- Unified CCXT orders are mapped to Bybit-style order statuses
- CCXT API errors are mapped to Bybit result codes
- Transport failures are re-raised as ``exchange.exceptions.NetworkError``
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import aiohttp
import ccxt.async_support as ccxt
from ccxt.base.errors import (
    NetworkError as CCXTNetworkError,
    ExchangeError as CCXTExchangeError,
    AuthenticationError as CCXTAuthenticationError,
    ExchangeNotAvailable as CCXTExchangeNotAvailable,
    InsufficientFunds as CCXTInsufficientFunds,
    InvalidOrder as CCXTInvalidOrder,
    OrderNotFound as CCXTOrderNotFound,
)

from .exceptions import (
    ExchangeError,
    NetworkError,
    AuthenticationError,
    ExchangeNotAvailableError,
    GatewayNotConnectedError,
)
from .gateway import (
    CancelResponse,
    ExchangeGateway,
    ExchangeOrder,
    OrderListResponse,
    SubmitOrderResponse,
    INSUFFICIENT_BALANCE_CODE,
    INVALID_REQUEST_CODE,
    ORDER_NOT_EXISTS_CODE,
    LINEAR_CATEGORY,
    SUCCESS_CODE,
)

logger = logging.getLogger(__name__)

# CCXT unified status -> Bybit v5 orderStatus
STATUS_MAPPING = {
    'open': 'New',
    'closed': 'Filled',
    'canceled': 'Cancelled',
    'cancelled': 'Cancelled',
    'rejected': 'Rejected',
    'expired': 'Deactivated',
}

LEVERAGE_NOT_MODIFIED_CODE = '110043'


@dataclass
class BybitGatewayConfig:
    """Configuration for the Bybit gateway."""
    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    testnet: bool = True
    symbol: str = 'APEXUSDT'
    category: str = LINEAR_CATEGORY
    timeout_ms: int = 30000


class BybitGateway(ExchangeGateway):
    """
    Bybit linear-perpetual gateway built on CCXT.

    Example:
        ```python
        gateway = BybitGateway(BybitGatewayConfig(symbol='APEXUSDT'))
        await gateway.connect()

        response = await gateway.submit_order(
            category='linear',
            symbol=gateway.symbol,
            side='Buy',
            order_type='Limit',
            qty=gateway.round_quantity(10),
            price=gateway.round_price(99.98),
            time_in_force='GTC'
        )

        await gateway.close()
        ```
    """

    def __init__(self, config: Optional[BybitGatewayConfig] = None, exchange: Any = None):
        """
        Initialize the gateway.

        Args:
            config: Gateway configuration. Uses defaults if not provided.
            exchange: Pre-built CCXT exchange instance (skips creation in connect()).
        """
        self.config = config or BybitGatewayConfig()
        self.symbol = self.config.symbol
        self.category = self.config.category
        self.tick_size: Optional[float] = None
        self._exchange = exchange
        self._unified_symbol: Optional[str] = None

    @classmethod
    def from_config(cls, config: Any) -> 'BybitGateway':
        """
        Create a gateway from a loaded bot configuration.

        Args:
            config: Configuration object with an ``exchange`` section.

        Returns:
            Configured BybitGateway instance.
        """
        settings = config.exchange
        return cls(BybitGatewayConfig(
            api_key=settings.api_key,
            api_secret=settings.api_secret,
            testnet=settings.testnet,
            symbol=settings.symbol,
            category=settings.category,
            timeout_ms=settings.timeout_ms,
        ))

    async def connect(self) -> None:
        """
        Create the CCXT exchange instance and load markets.

        Raises:
            AuthenticationError: If API credentials are invalid.
            ExchangeNotAvailableError: If the exchange is not accessible.
            ExchangeError: For any other connection failure.
        """
        try:
            if self._exchange is None:
                logger.info("Connecting to bybit exchange...")
                self._exchange = ccxt.bybit({
                    'apiKey': self.config.api_key,
                    'secret': self.config.api_secret,
                    'timeout': self.config.timeout_ms,
                    'enableRateLimit': True,
                    'options': {
                        'defaultType': 'swap',
                    }
                })
                if self.config.testnet:
                    logger.info("Enabling testnet mode")
                    self._exchange.set_sandbox_mode(True)

            await self._exchange.load_markets()
            market = self._exchange.market(self.symbol)
            self._unified_symbol = market['symbol']
            # Bybit markets use ccxt TICK_SIZE precision: the value is the tick itself
            tick = (market.get('precision') or {}).get('price')
            self.tick_size = float(tick) if tick else None
            logger.info(f"Bybit gateway ready for {self.symbol} ({self._unified_symbol})")

        except CCXTAuthenticationError as e:
            raise AuthenticationError(
                message=f"Authentication failed: {str(e)}",
                details={'original_error': str(e)}
            ) from e
        except CCXTExchangeNotAvailable as e:
            raise ExchangeNotAvailableError(
                message=f"Exchange not available: {str(e)}",
                details={'original_error': str(e)}
            ) from e
        except Exception as e:
            raise ExchangeError(
                message=f"Failed to connect: {str(e)}",
                details={'original_error': str(e)}
            ) from e

    async def close(self) -> None:
        """Close the CCXT exchange session."""
        if self._exchange:
            await self._exchange.close()
            self._exchange = None
        self._unified_symbol = None
        self.tick_size = None
        logger.info("Bybit gateway closed")

    # ==================== Formatting ====================

    def round_price(self, price: float) -> str:
        self._ensure_connected()
        return self._exchange.price_to_precision(self._unified_symbol, price)

    def round_quantity(self, quantity: float) -> str:
        self._ensure_connected()
        return self._exchange.amount_to_precision(self._unified_symbol, quantity)

    # ==================== Orders ====================

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
        self._ensure_connected()
        params: Dict[str, Any] = {'category': category}
        if time_in_force:
            params['timeInForce'] = time_in_force

        try:
            order = await self._call(
                self._exchange.create_order,
                self._resolve(symbol),
                order_type.lower(),
                side.lower(),
                float(qty),
                float(price) if price is not None else None,
                params
            )
        except CCXTInsufficientFunds as e:
            return SubmitOrderResponse(INSUFFICIENT_BALANCE_CODE, message=str(e))
        except CCXTInvalidOrder as e:
            return SubmitOrderResponse(INVALID_REQUEST_CODE, message=str(e))
        except CCXTExchangeError as e:
            return SubmitOrderResponse(self._extract_code(e), message=str(e))

        return SubmitOrderResponse(SUCCESS_CODE, order_id=str(order.get('id')))

    async def get_active_orders(self, symbol: str) -> OrderListResponse:
        self._ensure_connected()
        try:
            orders = await self._call(self._exchange.fetch_open_orders, self._resolve(symbol))
        except CCXTExchangeError as e:
            return OrderListResponse(self._extract_code(e), message=str(e))
        return OrderListResponse(SUCCESS_CODE, orders=[self._parse_order(o) for o in orders])

    async def get_historic_orders(
        self,
        symbol: str,
        order_id: Optional[str] = None
    ) -> OrderListResponse:
        self._ensure_connected()
        params = {'orderId': order_id} if order_id else {}
        try:
            orders = await self._call(
                self._exchange.fetch_canceled_and_closed_orders,
                self._resolve(symbol),
                None,
                None,
                params
            )
        except CCXTExchangeError as e:
            return OrderListResponse(self._extract_code(e), message=str(e))
        return OrderListResponse(SUCCESS_CODE, orders=[self._parse_order(o) for o in orders])

    async def cancel_order(self, symbol: str, order_id: str) -> CancelResponse:
        self._ensure_connected()
        try:
            await self._call(self._exchange.cancel_order, order_id, self._resolve(symbol))
        except CCXTOrderNotFound as e:
            return CancelResponse(ORDER_NOT_EXISTS_CODE, message=f"order not exists or too late to cancel: {e}")
        except CCXTExchangeError as e:
            return CancelResponse(self._extract_code(e), message=str(e))
        return CancelResponse(SUCCESS_CODE)

    async def set_leverage(self, leverage: int) -> None:
        """
        Set leverage for the gateway symbol.

        Raises:
            ExchangeError: If the exchange rejects the leverage.
            NetworkError: On transport failure.
        """
        self._ensure_connected()
        try:
            await self._call(self._exchange.set_leverage, leverage, self._unified_symbol)
        except CCXTExchangeError as e:
            if LEVERAGE_NOT_MODIFIED_CODE not in str(e) and 'not modified' not in str(e).lower():
                raise ExchangeError(
                    message=f"Failed to set leverage {leverage}x: {str(e)}",
                    details={'original_error': str(e)}
                ) from e
            logger.debug(f"Leverage already {leverage}x for {self.symbol}")

    async def open_position(self, side, quantity: float, leverage: int) -> str:
        """
        Set leverage and open a position with a market order.

        Raises:
            ExchangeError: If the exchange rejects the leverage or the market order.
            NetworkError: On transport failure.
        """
        self._ensure_connected()
        unified = self._unified_symbol

        await self.set_leverage(leverage)

        amount = float(self.round_quantity(quantity))
        logger.warning(
            f"Placing MARKET order (taker fees apply): {side.order_side} {amount} {self.symbol}"
        )
        try:
            order = await self._call(
                self._exchange.create_order,
                unified,
                'market',
                side.order_side.lower(),
                amount
            )
        except CCXTExchangeError as e:
            raise ExchangeError(
                message=f"Market order failed: {str(e)}",
                error_code=str(self._extract_code(e)),
                details={'original_error': str(e)}
            ) from e

        return str(order.get('id'))

    # ==================== Helpers ====================

    async def _call(self, func: Callable, *args) -> Any:
        """
        Invoke a CCXT coroutine, converting transport failures to NetworkError.

        CCXT API errors (``ccxt.ExchangeError`` subclasses) propagate unchanged
        so each method can map them to result codes.
        """
        try:
            return await func(*args)
        except (CCXTNetworkError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise NetworkError(
                message=f"Transport failure calling {getattr(func, '__name__', func)}: {str(e)}",
                details={'original_error': str(e)}
            ) from e

    def _resolve(self, symbol: str) -> str:
        if symbol == self.symbol and self._unified_symbol:
            return self._unified_symbol
        return self._exchange.market(symbol)['symbol']

    def _ensure_connected(self) -> None:
        if not self._exchange or not self._unified_symbol:
            raise GatewayNotConnectedError()

    @staticmethod
    def _parse_order(order: Dict[str, Any]) -> ExchangeOrder:
        info = order.get('info') or {}
        raw_status = info.get('orderStatus')
        if not raw_status:
            raw_status = STATUS_MAPPING.get((order.get('status') or '').lower(), 'Unknown')

        avg_price = order.get('average')
        if avg_price is None and info.get('avgPrice'):
            try:
                avg_price = float(info['avgPrice'])
            except (ValueError, TypeError):
                avg_price = None

        return ExchangeOrder(
            order_id=str(order.get('id')),
            order_status=raw_status,
            avg_price=avg_price,
        )

    @staticmethod
    def _extract_code(error: Exception) -> int:
        """Pull the Bybit retCode out of a CCXT error message, if present."""
        text = str(error)
        marker = '"retCode":'
        if marker in text:
            tail = text.split(marker, 1)[1].lstrip()
            digits = ''
            for ch in tail:
                if not ch.isdigit():
                    break
                digits += ch
            if digits and int(digits) != SUCCESS_CODE:
                return int(digits)
        return INVALID_REQUEST_CODE
