"""Backpack exchange client.

One async method per API operation. Private operations are signed with the
caller's Ed25519 key pair, which is validated when the client is built, before
any request can be made.

USAGE:
    async with BackpackClient(private_b64, public_b64) as client:
        balances = await client.balance()
        order = await client.execute_order(
            symbol="SOL_USDC", side=Side.BID, order_type=OrderType.LIMIT,
            price=20.5, quantity=1,
        )
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from decimal import Decimal
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel

from bpxc.auth.keys import KeyPair
from bpxc.auth.signing import RequestSigner
from bpxc.config import DEFAULT_BASE_URL, Settings, get_settings
from bpxc.errors import CredentialsError
from bpxc.exchange.normalize import normalize_response
from bpxc.exchange.registry import (
    DEFAULT_REGISTRY,
    HttpMethod,
    OperationDescriptor,
    OperationRegistry,
    build_registry,
)
from bpxc.exchange.transport import Transport, encode_body
from bpxc.logging import get_logger, log_request_event
from bpxc.models import (
    Asset,
    Balances,
    Blockchain,
    Deposit,
    DepositAddress,
    Depth,
    Fill,
    Kline,
    KlineInterval,
    Market,
    Order,
    OrderType,
    SelfTradePrevention,
    Side,
    SystemStatus,
    Ticker,
    TimeInForce,
    Trade,
    Withdrawal,
)
from bpxc.resilience import RetryConfig, SleepFn, retry_call

logger = get_logger("exchange.client")

ModelT = TypeVar("ModelT", bound=BaseModel)

Number = int | float | Decimal


def _clean(params: Mapping[str, Any] | None) -> dict[str, Any]:
    """Drop ``None`` values so optional arguments never reach the wire."""
    return {key: value for key, value in (params or {}).items() if value is not None}


def _parse(model: type[ModelT], data: Any) -> ModelT:
    return model.model_validate(data)


def _parse_list(model: type[ModelT], data: Any) -> list[ModelT]:
    if not isinstance(data, list):
        data = [data] if data else []
    return [model.model_validate(item) for item in data]


class BackpackClient:
    """Async client for the Backpack REST API.

    Public operations work without keys. Private operations need both the
    base64 private key (seed) and the base64 public key; a mismatched pair
    raises InvalidKeyPairError from the constructor.
    """

    def __init__(
        self,
        private_key: str | None = None,
        public_key: str | None = None,
        settings: Settings | None = None,
        registry: OperationRegistry | None = None,
        http_client: httpx.AsyncClient | None = None,
        window: int | None = None,
        clock: Callable[[], int] | None = None,
        sleep_fn: SleepFn | None = None,
    ) -> None:
        """Initialize client.

        Args:
            private_key: Base64 Ed25519 seed (optional for public endpoints)
            public_key: Base64 Ed25519 public key
            settings: Client settings (uses global if not provided)
            registry: Operation catalog (default built from settings.base_url)
            http_client: Pre-built HTTP client, e.g. with a mock transport
            window: Signature validity window in ms (default settings.window_ms)
            clock: Millisecond clock used for timestamps
            sleep_fn: Async sleep used between retries

        Raises:
            InvalidKeyPairError: If the keys are malformed or do not match
            CredentialsError: If only one of the two keys is given
        """
        self._settings = settings or get_settings()
        if registry is not None:
            self._registry = registry
        elif self._settings.base_url == DEFAULT_BASE_URL:
            self._registry = DEFAULT_REGISTRY
        else:
            self._registry = build_registry(self._settings.base_url)

        self._signer: RequestSigner | None = None
        if private_key or public_key:
            if not (private_key and public_key):
                raise CredentialsError("Both private_key and public_key are required")
            keypair = KeyPair.from_base64(private_key, public_key)
            self._signer = RequestSigner(
                keypair,
                window=window or self._settings.window_ms,
                clock=clock,
            )

        self._transport = Transport(settings=self._settings, client=http_client)
        self._retry_config = RetryConfig.from_settings(self._settings)
        self._sleep_fn = sleep_fn

        logger.debug(
            "Backpack client ready",
            extra={"private": self.has_credentials, "operations": len(self._registry)},
        )

    @property
    def registry(self) -> OperationRegistry:
        return self._registry

    @property
    def has_credentials(self) -> bool:
        return self._signer is not None

    async def aclose(self) -> None:
        """Close the HTTP client if the client created it."""
        await self._transport.aclose()

    async def __aenter__(self) -> BackpackClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    # ==========================================================================
    # Request pipeline
    # ==========================================================================

    async def _attempt(self, descriptor: OperationDescriptor, params: dict[str, Any]) -> Any:
        """One signed (if needed) request, sent and normalized."""
        auth_headers = None
        if descriptor.auth_required and self._signer is not None:
            # Fresh timestamp and signature on every attempt
            auth_headers = self._signer.auth_headers(descriptor.name, params)

        response = await self._transport.send(descriptor, params, auth_headers)
        request_body = encode_body(params) if descriptor.method != HttpMethod.GET else None
        return normalize_response(
            response,
            descriptor.name,
            url=descriptor.url,
            request_body=request_body,
        )

    async def api(
        self,
        instruction: str,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        """Call any operation by instruction name.

        Args:
            instruction: Instruction name (e.g. "balanceQuery")
            params: Request parameters; ``None`` values are dropped

        Returns:
            Normalized response envelope

        Raises:
            InvalidOperationError: Unknown instruction (never retried)
            CredentialsError: Private instruction on a client without keys
            TransportError: After retries are exhausted
            ExchangeApiError: Exchange rejected the operation
        """
        descriptor = self._registry.require(instruction)
        if descriptor.auth_required and self._signer is None:
            raise CredentialsError(f"{instruction} is a private operation and needs API keys")
        cleaned = _clean(params)

        log_request_event(
            "REQUEST",
            instruction,
            level=logging.DEBUG,
            method=descriptor.method.value,
            private=descriptor.auth_required,
        )

        return await retry_call(
            lambda: self._attempt(descriptor, cleaned),
            self._retry_config,
            instruction=instruction,
            sleep_fn=self._sleep_fn,
        )

    # ==========================================================================
    # Public Market Data Endpoints
    # ==========================================================================

    async def assets(self) -> list[Asset]:
        """List assets and their per-chain settings."""
        return _parse_list(Asset, await self.api("assets"))

    async def markets(self) -> list[Market]:
        """List markets."""
        return _parse_list(Market, await self.api("markets"))

    async def ticker(self, symbol: str) -> Ticker:
        """Get 24h ticker for a market."""
        return _parse(Ticker, await self.api("ticker", {"symbol": symbol}))

    async def depth(self, symbol: str) -> Depth:
        """Get order book depth for a market."""
        return _parse(Depth, await self.api("depth", {"symbol": symbol}))

    async def klines(
        self,
        symbol: str,
        interval: KlineInterval | str,
        start_time: int | None = None,
        end_time: int | None = None,
    ) -> list[Kline]:
        """Get candles.

        Args:
            symbol: Market symbol
            interval: Candle interval (e.g. "1m", "1h")
            start_time: Start, Unix seconds
            end_time: End, Unix seconds
        """
        params = {
            "symbol": symbol,
            "interval": KlineInterval(interval).value,
            "startTime": start_time,
            "endTime": end_time,
        }
        return _parse_list(Kline, await self.api("klines", params))

    async def status(self) -> SystemStatus:
        """Get exchange system status."""
        return _parse(SystemStatus, await self.api("status"))

    async def ping(self) -> str:
        """Ping the API; returns "pong"."""
        return str(await self.api("ping"))

    async def time(self) -> int:
        """Get server time in milliseconds."""
        return int(await self.api("time"))

    async def recent_trades(self, symbol: str, limit: int | None = None) -> list[Trade]:
        """Get recent public trades for a market."""
        return _parse_list(Trade, await self.api("trades", {"symbol": symbol, "limit": limit}))

    async def historical_trades(
        self,
        symbol: str,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Trade]:
        """Get historical public trades for a market."""
        params = {"symbol": symbol, "limit": limit, "offset": offset}
        return _parse_list(Trade, await self.api("tradesHistory", params))

    # ==========================================================================
    # Authenticated Capital Endpoints
    # ==========================================================================

    async def balance(self) -> Balances:
        """Get account balances keyed by asset symbol."""
        return Balances.model_validate(await self.api("balanceQuery"))

    async def deposits(self, limit: int | None = None, offset: int | None = None) -> list[Deposit]:
        """Get deposit history."""
        params = {"limit": limit, "offset": offset}
        return _parse_list(Deposit, await self.api("depositQueryAll", params))

    async def deposit_address(self, blockchain: Blockchain | str) -> DepositAddress:
        """Get the deposit address for a chain."""
        params = {"blockchain": Blockchain(blockchain).value}
        return _parse(DepositAddress, await self.api("depositAddressQuery", params))

    async def withdrawals(
        self, limit: int | None = None, offset: int | None = None
    ) -> list[Withdrawal]:
        """Get withdrawal history."""
        params = {"limit": limit, "offset": offset}
        return _parse_list(Withdrawal, await self.api("withdrawalQueryAll", params))

    async def withdraw(
        self,
        address: str,
        blockchain: Blockchain | str,
        quantity: Number,
        symbol: str,
        two_factor_token: str,
        client_id: str | None = None,
    ) -> Any:
        """Request a withdrawal.

        Returns:
            The raw response envelope
        """
        params = {
            "address": address,
            "blockchain": Blockchain(blockchain).value,
            "clientId": client_id,
            "quantity": quantity,
            "symbol": symbol,
            "twoFactorToken": two_factor_token,
        }
        return await self.api("withdraw", params)

    # ==========================================================================
    # Authenticated History Endpoints
    # ==========================================================================

    async def order_history(
        self, limit: int | None = None, offset: int | None = None
    ) -> list[Order]:
        """Get order history."""
        params = {"limit": limit, "offset": offset}
        return _parse_list(Order, await self.api("orderHistoryQueryAll", params))

    async def fill_history(
        self,
        order_id: str | None = None,
        symbol: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Fill]:
        """Get fill history."""
        params = {"orderId": order_id, "symbol": symbol, "limit": limit, "offset": offset}
        return _parse_list(Fill, await self.api("fillHistoryQueryAll", params))

    # ==========================================================================
    # Authenticated Order Endpoints
    # ==========================================================================

    async def get_order(
        self,
        symbol: str,
        order_id: str | None = None,
        client_id: int | None = None,
    ) -> Order:
        """Get one open order by exchange id or client id."""
        params = {"symbol": symbol, "orderId": order_id, "clientId": client_id}
        return _parse(Order, await self.api("orderQuery", params))

    async def execute_order(
        self,
        symbol: str,
        side: Side | str,
        order_type: OrderType | str,
        price: Number | None = None,
        quantity: Number | None = None,
        quote_quantity: Number | None = None,
        trigger_price: Number | None = None,
        time_in_force: TimeInForce | str | None = None,
        self_trade_prevention: SelfTradePrevention | str | None = None,
        post_only: bool | None = None,
        client_id: int | None = None,
    ) -> Order:
        """Place an order.

        Args:
            symbol: Market symbol (e.g. "SOL_USDC")
            side: Bid or Ask
            order_type: Limit or Market
            price: Limit price
            quantity: Base quantity
            quote_quantity: Quote quantity (market orders)
            trigger_price: Trigger price
            time_in_force: GTC, IOC or FOK
            self_trade_prevention: Self-trade prevention mode
            post_only: Reject if the order would take liquidity
            client_id: Caller-chosen numeric id

        Returns:
            Order as accepted by the exchange
        """
        params = {
            "symbol": symbol,
            "side": Side(side).value,
            "orderType": OrderType(order_type).value,
            "price": price,
            "quantity": quantity,
            "quoteQuantity": quote_quantity,
            "triggerPrice": trigger_price,
            "timeInForce": TimeInForce(time_in_force).value if time_in_force else None,
            "selfTradePrevention": (
                SelfTradePrevention(self_trade_prevention).value if self_trade_prevention else None
            ),
            "postOnly": post_only,
            "clientId": client_id,
        }
        return _parse(Order, await self.api("orderExecute", params))

    async def cancel_order(
        self,
        symbol: str,
        order_id: str | None = None,
        client_id: int | None = None,
    ) -> Order:
        """Cancel one open order."""
        params = {"symbol": symbol, "orderId": order_id, "clientId": client_id}
        return _parse(Order, await self.api("orderCancel", params))

    async def get_open_orders(self, symbol: str | None = None) -> list[Order]:
        """Get open orders, optionally for one market."""
        return _parse_list(Order, await self.api("orderQueryAll", {"symbol": symbol}))

    async def cancel_open_orders(self, symbol: str) -> list[Order]:
        """Cancel all open orders on a market."""
        return _parse_list(Order, await self.api("orderCancelAll", {"symbol": symbol}))
