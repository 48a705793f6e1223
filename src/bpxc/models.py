"""Pydantic v2 models for Backpack request enums and response shapes.

Responses arrive already numerically coerced, so identifiers that look like
numbers may be ints; ``coerce_numbers_to_str`` turns them back into strings
where the field is declared as ``str``.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, RootModel


class Blockchain(str, Enum):
    """Supported deposit/withdrawal chains."""

    SOLANA = "Solana"
    ETHEREUM = "Ethereum"
    POLYGON = "Polygon"
    BITCOIN = "Bitcoin"


class Side(str, Enum):
    """Order side."""

    BID = "Bid"
    ASK = "Ask"


class OrderType(str, Enum):
    """Order type for order execution."""

    LIMIT = "Limit"
    MARKET = "Market"


class TimeInForce(str, Enum):
    """Time in force."""

    GTC = "GTC"
    IOC = "IOC"
    FOK = "FOK"


class SelfTradePrevention(str, Enum):
    """Self-trade prevention mode."""

    REJECT_TAKER = "RejectTaker"
    REJECT_MAKER = "RejectMaker"
    REJECT_BOTH = "RejectBoth"
    ALLOW = "Allow"


class OrderStatus(str, Enum):
    """Order status."""

    CANCELLED = "Cancelled"
    EXPIRED = "Expired"
    FILLED = "Filled"
    NEW = "New"
    PARTIALLY_FILLED = "PartiallyFilled"
    TRIGGERED = "Triggered"


class KlineInterval(str, Enum):
    """Candle interval."""

    M1 = "1m"
    M3 = "3m"
    M5 = "5m"
    M15 = "15m"
    M30 = "30m"
    H1 = "1h"
    H2 = "2h"
    H4 = "4h"
    H6 = "6h"
    H8 = "8h"
    H12 = "12h"
    D1 = "1d"
    D3 = "3d"
    MONTH = "1month"


class BackpackModel(BaseModel):
    """Base for response models."""

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )


# =============================================================================
# Markets
# =============================================================================


class AssetToken(BackpackModel):
    """Per-chain settings of an asset."""

    blockchain: str
    deposit_enabled: bool = Field(default=False, alias="depositEnabled")
    minimum_deposit: float = Field(default=0.0, alias="minimumDeposit")
    withdraw_enabled: bool = Field(default=False, alias="withdrawEnabled")
    minimum_withdrawal: float = Field(default=0.0, alias="minimumWithdrawal")
    maximum_withdrawal: float | None = Field(default=None, alias="maximumWithdrawal")
    withdrawal_fee: float = Field(default=0.0, alias="withdrawalFee")


class Asset(BackpackModel):
    """Asset with its supported chains."""

    symbol: str
    tokens: list[AssetToken] = Field(default_factory=list)


class Market(BackpackModel):
    """Market definition with price/quantity filters."""

    symbol: str
    base_symbol: str = Field(default="", alias="baseSymbol")
    quote_symbol: str = Field(default="", alias="quoteSymbol")
    filters: dict[str, dict[str, Any]] = Field(default_factory=dict)

    @property
    def tick_size(self) -> Any:
        """Price increment, if the market reports one."""
        return self.filters.get("price", {}).get("tickSize")

    @property
    def step_size(self) -> Any:
        """Quantity increment, if the market reports one."""
        return self.filters.get("quantity", {}).get("stepSize")


class Ticker(BackpackModel):
    """24h ticker statistics."""

    symbol: str
    first_price: float = Field(default=0.0, alias="firstPrice")
    last_price: float = Field(default=0.0, alias="lastPrice")
    price_change: float = Field(default=0.0, alias="priceChange")
    price_change_percent: float = Field(default=0.0, alias="priceChangePercent")
    high: float = 0.0
    low: float = 0.0
    volume: float = 0.0
    trades: int = 0


class Depth(BackpackModel):
    """Order book depth; levels are [price, quantity]."""

    asks: list[tuple[float, float]] = Field(default_factory=list)
    bids: list[tuple[float, float]] = Field(default_factory=list)
    last_updated: int | None = Field(default=None, alias="lastUpdated")

    @property
    def best_bid(self) -> float | None:
        return max((price for price, _ in self.bids), default=None)

    @property
    def best_ask(self) -> float | None:
        return min((price for price, _ in self.asks), default=None)


class Kline(BackpackModel):
    """OHLCV candle."""

    start: str
    end: str | None = None
    open: float | None = None
    high: float | None = None
    low: float | None = None
    close: float | None = None
    volume: float | None = None
    trades: int | None = None


class Trade(BackpackModel):
    """Public trade."""

    id: str
    price: float
    quantity: float
    quote_quantity: float = Field(default=0.0, alias="quoteQuantity")
    timestamp: int
    is_buyer_maker: bool = Field(default=False, alias="isBuyerMaker")


class SystemStatus(BackpackModel):
    """Exchange status."""

    status: str
    message: str | None = None

    @property
    def is_ok(self) -> bool:
        return self.status == "Ok"


# =============================================================================
# Capital
# =============================================================================


class BalanceEntry(BackpackModel):
    """Balance of one asset."""

    available: float = 0.0
    locked: float = 0.0
    staked: float = 0.0

    @property
    def total(self) -> float:
        return self.available + self.locked + self.staked


class Balances(RootModel[dict[str, BalanceEntry]]):
    """Balances keyed by asset symbol."""

    def __getitem__(self, symbol: str) -> BalanceEntry:
        return self.root[symbol]

    def __contains__(self, symbol: object) -> bool:
        return symbol in self.root

    def symbols(self) -> list[str]:
        return sorted(self.root)


class Deposit(BackpackModel):
    """Deposit record."""

    id: str
    to_address: str | None = Field(default=None, alias="toAddress")
    from_address: str | None = Field(default=None, alias="fromAddress")
    confirmation_block_number: int | None = Field(default=None, alias="confirmationBlockNumber")
    identifier: str | None = None
    source: str | None = None
    status: str
    symbol: str
    quantity: float
    created_at: str | None = Field(default=None, alias="createdAt")


class DepositAddress(BackpackModel):
    """Deposit address for a chain."""

    address: str


class Withdrawal(BackpackModel):
    """Withdrawal record."""

    id: str
    blockchain: str
    client_id: str | None = Field(default=None, alias="clientId")
    identifier: str | None = None
    quantity: float
    fee: float = 0.0
    symbol: str
    status: str
    to_address: str | None = Field(default=None, alias="toAddress")
    transaction_hash: str | None = Field(default=None, alias="transactionHash")
    created_at: str | None = Field(default=None, alias="createdAt")


# =============================================================================
# Orders and history
# =============================================================================


class Order(BackpackModel):
    """Open or recently changed order.

    Cancel and execute responses may only contain ``id``.
    """

    id: str
    order_type: str | None = Field(default=None, alias="orderType")
    client_id: int | None = Field(default=None, alias="clientId")
    symbol: str | None = None
    side: Side | None = None
    price: float | None = None
    quantity: float | None = None
    executed_quantity: float | None = Field(default=None, alias="executedQuantity")
    quote_quantity: float | None = Field(default=None, alias="quoteQuantity")
    executed_quote_quantity: float | None = Field(default=None, alias="executedQuoteQuantity")
    trigger_price: float | None = Field(default=None, alias="triggerPrice")
    time_in_force: TimeInForce | None = Field(default=None, alias="timeInForce")
    self_trade_prevention: SelfTradePrevention | None = Field(
        default=None, alias="selfTradePrevention"
    )
    post_only: bool | None = Field(default=None, alias="postOnly")
    status: OrderStatus | None = None
    created_at: int | None = Field(default=None, alias="createdAt")

    @property
    def is_open(self) -> bool:
        return self.status in (OrderStatus.NEW, OrderStatus.PARTIALLY_FILLED)


class Fill(BackpackModel):
    """Own trade fill."""

    id: str | None = None
    trade_id: str | None = Field(default=None, alias="tradeId")
    order_id: str = Field(alias="orderId")
    symbol: str
    side: Side
    price: float
    quantity: float
    fee: float = 0.0
    fee_symbol: str | None = Field(default=None, alias="feeSymbol")
    is_maker: bool = Field(default=False, alias="isMaker")
    timestamp: str | None = None
